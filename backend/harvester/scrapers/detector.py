"""Commerce platform detection by probing well-known endpoints."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog

from harvester.config import settings
from harvester.scrapers.base import Platform
from harvester.scrapers.client import StorefrontClient
from harvester.scrapers.endpoints import PLATFORM_PROBES


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Detection:
    """A platform observed for an origin at a point in time."""

    origin: str
    platform: Platform
    detected_at: datetime
    probe: Optional[str] = None  # path that answered 2xx


@dataclass
class PlatformCache:
    """Per-session detection cache keyed by origin.

    Lives exactly as long as the HarvestSession that owns it; never shared
    between sessions.
    """

    _entries: Dict[str, Detection] = field(default_factory=dict)

    def get(self, origin: str) -> Optional[Detection]:
        return self._entries.get(origin)

    def put(self, detection: Detection) -> None:
        self._entries[detection.origin] = detection

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, origin: str) -> bool:
        return origin in self._entries


class PlatformDetector:
    """Probes an origin and reports which platform answers.

    Probes run in a fixed order with a short timeout and no retries:
    Store API products, REST v3 products, then Shopify products.json.
    """

    def __init__(self, client: StorefrontClient, timeout: Optional[float] = None):
        """Initialize detector.

        Args:
            client: Storefront client used for the probe requests
            timeout: Per-probe timeout in seconds (default PROBE_TIMEOUT_SECONDS)
        """
        self.client = client
        self.timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS

    async def detect(self, origin: str) -> Platform:
        """Return the platform of an origin, or Platform.UNKNOWN."""
        return (await self.detect_with_details(origin)).platform

    async def detect_with_details(self, origin: str) -> Detection:
        """Probe an origin and return the full Detection record."""
        base = origin.rstrip("/")
        for path, platform in PLATFORM_PROBES:
            status = await self.client.probe(f"{base}{path}", timeout=self.timeout)
            logger.debug("platform_probe", origin=base, path=path, status=status)
            if status is not None and 200 <= status < 300:
                logger.info("platform_detected", origin=base, platform=platform.value, probe=path)
                return Detection(
                    origin=base,
                    platform=platform,
                    detected_at=datetime.now(timezone.utc),
                    probe=path,
                )

        logger.warning("platform_detection_failed", origin=base)
        return Detection(
            origin=base,
            platform=Platform.UNKNOWN,
            detected_at=datetime.now(timezone.utc),
        )
