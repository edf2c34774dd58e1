"""Endpoint fallback chain: try candidate APIs in order, commit to the first that works."""

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import structlog

from harvester.core.exceptions import EndpointExhausted, EndpointUnusable
from harvester.scrapers.base import (
    Collection,
    EndpointAttempt,
    HarvestKind,
    Platform,
    ProgressCallback,
)
from harvester.scrapers.endpoints import Endpoint, get_candidates
from harvester.scrapers.paginator import PageSequence, Paginator, RawPage


logger = structlog.get_logger(__name__)


@dataclass
class CommittedEndpoint:
    """The endpoint a harvest committed to, with its first page already read.

    Iterating yields the first page (if any) and then the rest of the
    sequence. The mapper never changes after commit, even if a later page
    fails.
    """

    endpoint: Endpoint
    sequence: PageSequence
    first_page: Optional[RawPage]
    attempts: Tuple[EndpointAttempt, ...]

    @property
    def fallback_attempts(self) -> int:
        """Number of candidates abandoned before this one."""
        return len(self.attempts)

    async def pages(self):
        if self.first_page is not None:
            yield self.first_page
        async for page in self.sequence:
            yield page


class FallbackChain:
    """Ordered endpoint candidates per (platform, kind).

    A candidate is unusable when its first page returns non-2xx, fails at the
    network level, or is not a JSON list. 401 falls through immediately
    without retrying.
    """

    def __init__(self, paginator: Paginator):
        self.paginator = paginator

    async def open(
        self,
        origin: str,
        platform: Platform,
        kind: HarvestKind,
        *,
        collection: Optional[Collection] = None,
        page_size: Optional[int] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CommittedEndpoint:
        """Find the first usable endpoint and commit to it.

        Raises:
            EndpointExhausted: If every candidate was unusable
            Cancelled: If cancel_event fires while probing candidates
        """
        attempts: List[EndpointAttempt] = []
        log = logger.bind(origin=origin, platform=platform.value, kind=kind.value)

        for endpoint in get_candidates(platform, kind):
            if collection is not None and not endpoint.supports_members():
                attempts.append(EndpointAttempt(endpoint.name, "unsupported_filter"))
                continue

            sequence = self.paginator.paginate(
                endpoint,
                origin,
                page_size=page_size,
                collection=collection,
                progress_callback=progress_callback,
                cancel_event=cancel_event,
            )
            try:
                first_page = await sequence.__anext__()
            except StopAsyncIteration:
                first_page = None
            except EndpointUnusable as e:
                log.info(
                    "endpoint_unusable",
                    endpoint=endpoint.name,
                    reason=e.reason,
                    status_code=e.status_code,
                )
                attempts.append(EndpointAttempt(endpoint.name, e.reason, e.status_code))
                continue

            log.info(
                "endpoint_committed",
                endpoint=endpoint.name,
                shape=endpoint.shape.value,
                fallback_attempts=len(attempts),
            )
            return CommittedEndpoint(
                endpoint=endpoint,
                sequence=sequence,
                first_page=first_page,
                attempts=tuple(attempts),
            )

        log.error(
            "endpoints_exhausted",
            attempts=[(a.endpoint, a.reason) for a in attempts],
        )
        raise EndpointExhausted(platform.value, kind.value, attempts)

    async def fetch_all(
        self,
        origin: str,
        platform: Platform,
        kind: HarvestKind,
        **kwargs: Any,
    ) -> Tuple[List[Any], CommittedEndpoint]:
        """Read every raw record through the committed endpoint.

        Returns:
            Tuple of (raw records, committed endpoint with shape and failures)
        """
        committed = await self.open(origin, platform, kind, **kwargs)
        records: List[Any] = []
        async for page in committed.pages():
            records.extend(page.records)
        return records, committed
