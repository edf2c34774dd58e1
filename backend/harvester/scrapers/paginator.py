"""Pull-based pagination over one list endpoint."""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import structlog

from harvester.config import settings
from harvester.core.exceptions import EndpointUnusable, NetworkError
from harvester.scrapers.base import Collection, PartialFailure, ProgressCallback
from harvester.scrapers.client import FetchResponse, StorefrontClient
from harvester.scrapers.endpoints import Endpoint
from harvester.scrapers.utils.rate_limiter import PolitenessDelay, run_cancellable


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RawPage:
    """One page of raw JSON records."""

    endpoint: Endpoint
    number: int
    records: List[Any]
    total: Optional[int] = None
    total_pages: Optional[int] = None


class PageSequence:
    """Lazy, forward-only, non-restartable sequence of pages.

    Each advance issues at most one request. The sequence ends when:
    - the body is not a list, or is an empty list
    - a page is shorter than the page size
    - the X-WP-TotalPages header says the last page was reached
    - MAX_PAGES pages were read

    A failure on page 1 raises EndpointUnusable. A failure on a later page
    ends the sequence and is recorded in `failures`.
    """

    def __init__(
        self,
        client: StorefrontClient,
        endpoint: Endpoint,
        origin: str,
        *,
        page_size: int,
        delay: PolitenessDelay,
        max_pages: int,
        collection: Optional[Collection] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.client = client
        self.endpoint = endpoint
        self.origin = origin
        self.page_size = min(page_size, endpoint.max_page_size)
        self.delay = delay
        self.max_pages = max_pages
        self.collection = collection
        self.progress_callback = progress_callback
        self.cancel_event = cancel_event

        self.url = endpoint.url(origin, collection)
        self.failures: List[PartialFailure] = []
        self.pages_fetched = 0
        self.accumulated = 0
        self.total: Optional[int] = None
        self._next_page = 1
        self._done = False
        self.logger = logger.bind(endpoint=endpoint.name, origin=origin)

    def __aiter__(self) -> "PageSequence":
        return self

    async def __anext__(self) -> RawPage:
        if self._done:
            raise StopAsyncIteration

        page = self._next_page
        if page > self.max_pages:
            self.logger.warning("max_pages_reached", max_pages=self.max_pages)
            self.failures.append(
                PartialFailure(self.endpoint.name, page, f"stopped after {self.max_pages} pages")
            )
            return self._finish()

        await self.delay.wait(self.cancel_event)

        try:
            response = await run_cancellable(self._request(page), self.cancel_event)
        except NetworkError as e:
            return self._handle_failure(page, e)
        finally:
            self.delay.mark()

        records = self._unwrap(response.data)
        if records is None:
            if page == 1:
                raise EndpointUnusable(self.endpoint.name, "malformed_body", response.status_code)
            self.logger.warning("page_not_a_list", page=page)
            return self._finish()

        if not records:
            self.logger.debug("empty_page", page=page)
            return self._finish()

        self.pages_fetched += 1
        self.accumulated += len(records)
        total_pages = self._header(response, self.endpoint.total_pages_header)
        total = self._header(response, self.endpoint.total_header)
        if total is not None:
            self.total = total

        self.logger.info(
            "page_fetched",
            page=page,
            records=len(records),
            accumulated=self.accumulated,
            total=self.total,
        )
        self._notify_progress()

        if len(records) < self.page_size:
            self._done = True
        elif total_pages is not None and page >= total_pages:
            self._done = True
        self._next_page = page + 1

        return RawPage(
            endpoint=self.endpoint,
            number=page,
            records=records,
            total=self.total,
            total_pages=total_pages,
        )

    async def _request(self, page: int) -> FetchResponse:
        return await self.client.get_json(
            self.url,
            params=self.endpoint.params(page, self.page_size, self.collection),
            retry=True,
            auth=self.endpoint.auth,
        )

    def _handle_failure(self, page: int, error: NetworkError) -> RawPage:
        if page == 1:
            raise EndpointUnusable(self.endpoint.name, error.reason, error.status_code) from error

        self.logger.warning("page_failed", page=page, reason=error.reason, error=error.message)
        self.failures.append(PartialFailure(self.endpoint.name, page, error.reason))
        return self._finish()

    def _finish(self):
        self._done = True
        raise StopAsyncIteration

    def _unwrap(self, data: Any) -> Optional[List[Any]]:
        if self.endpoint.envelope and isinstance(data, dict):
            data = data.get(self.endpoint.envelope)
        if not isinstance(data, list):
            return None
        return data

    @staticmethod
    def _header(response: FetchResponse, name: Optional[str]) -> Optional[int]:
        if not name:
            return None
        return response.header_int(name)

    def _notify_progress(self) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(self.accumulated, self.total)
        except Exception as e:
            # A broken UI relay must not end the harvest
            self.logger.warning("progress_callback_failed", error=str(e))


class Paginator:
    """Builds PageSequences sharing one client and politeness delay."""

    def __init__(
        self,
        client: StorefrontClient,
        *,
        page_size: Optional[int] = None,
        shopify_page_size: Optional[int] = None,
        delay_ms: Optional[int] = None,
        max_pages: Optional[int] = None,
        sleep: Optional[Callable] = None,
    ):
        """Initialize paginator.

        Args:
            client: Storefront client
            page_size: WordPress-family page size (default PAGE_SIZE)
            shopify_page_size: Shopify page size (default SHOPIFY_PAGE_SIZE)
            delay_ms: Politeness delay between pages (default POLITENESS_DELAY_MS)
            max_pages: Hard cap on pages per endpoint (default MAX_PAGES)
            sleep: Sleep coroutine override for tests
        """
        self.client = client
        self.page_size = page_size or settings.PAGE_SIZE
        self.shopify_page_size = shopify_page_size or settings.SHOPIFY_PAGE_SIZE
        self.max_pages = max_pages or settings.MAX_PAGES
        self.delay = PolitenessDelay(
            settings.POLITENESS_DELAY_MS if delay_ms is None else delay_ms,
            sleep=sleep,
        )

    def paginate(
        self,
        endpoint: Endpoint,
        origin: str,
        *,
        page_size: Optional[int] = None,
        collection: Optional[Collection] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> PageSequence:
        """Start a new page sequence for an endpoint."""
        if page_size is None:
            page_size = self.shopify_page_size if endpoint.size_param == "limit" else self.page_size
        return PageSequence(
            self.client,
            endpoint,
            origin,
            page_size=page_size,
            delay=self.delay,
            max_pages=self.max_pages,
            collection=collection,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )
