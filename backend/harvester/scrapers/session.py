"""Per-harvest session: one HTTP client, one platform cache, one politeness clock."""

import asyncio
from typing import Callable, Optional, Tuple

import httpx
import structlog

from harvester.config import settings
from harvester.scrapers.base import Platform
from harvester.scrapers.client import StorefrontClient
from harvester.scrapers.detector import Detection, PlatformCache, PlatformDetector
from harvester.scrapers.fallback import FallbackChain
from harvester.scrapers.paginator import Paginator
from harvester.scrapers.utils.rate_limiter import run_cancellable


logger = structlog.get_logger(__name__)


class HarvestSession:
    """Everything a harvest needs that outlives a single request.

    Sessions are never shared between concurrent harvests; harvest_many
    opens one per origin. The platform cache lives exactly as long as the
    session.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        bearer_token: Optional[str] = None,
        basic_auth: Optional[Tuple[str, str]] = None,
        delay_ms: Optional[int] = None,
        page_size: Optional[int] = None,
        shopify_page_size: Optional[int] = None,
        max_pages: Optional[int] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_max: Optional[float] = None,
        probe_timeout: Optional[float] = None,
        sleep: Optional[Callable] = None,
    ):
        """Initialize session.

        Args:
            http_client: Existing httpx.AsyncClient, e.g. one on a MockTransport
            bearer_token: Overrides settings.API_TOKEN
            basic_auth: Overrides settings WC_CONSUMER_KEY / WC_CONSUMER_SECRET
            delay_ms: Overrides settings.POLITENESS_DELAY_MS
            page_size: Overrides settings.PAGE_SIZE
            shopify_page_size: Overrides settings.SHOPIFY_PAGE_SIZE
            max_pages: Overrides settings.MAX_PAGES
            retry_attempts: Overrides settings.HTTP_MAX_RETRIES
            retry_wait_max: Overrides settings.HTTP_RETRY_WAIT_MAX_SECONDS
            probe_timeout: Overrides settings.PROBE_TIMEOUT_SECONDS
            sleep: Sleep coroutine for the politeness delay (tests)
        """
        self.client = StorefrontClient(
            http_client,
            bearer_token=bearer_token if bearer_token is not None else settings.get_bearer_token(),
            basic_auth=basic_auth if basic_auth is not None else settings.get_wc_credentials(),
            retry_attempts=retry_attempts,
            retry_wait_max=retry_wait_max,
        )
        self.cache = PlatformCache()
        self.detector = PlatformDetector(self.client, timeout=probe_timeout)
        self.paginator = Paginator(
            self.client,
            page_size=page_size,
            shopify_page_size=shopify_page_size,
            delay_ms=delay_ms,
            max_pages=max_pages,
            sleep=sleep,
        )
        self.fallback = FallbackChain(self.paginator)

    async def __aenter__(self) -> "HarvestSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()

    @property
    def has_credentials(self) -> bool:
        """True when WooCommerce REST consumer credentials are configured."""
        return self.client.basic_auth is not None

    async def detect(
        self, origin: str, cancel_event: Optional[asyncio.Event] = None
    ) -> Detection:
        """Detect an origin's platform, reusing this session's cached answer.

        Raises:
            Cancelled: If cancel_event is set before or during probing
        """
        cached = self.cache.get(origin)
        if cached is not None:
            logger.debug("platform_cache_hit", origin=origin, platform=cached.platform.value)
            return cached

        detection = await run_cancellable(
            self.detector.detect_with_details(origin), cancel_event
        )
        # UNKNOWN is not cached so a later call in the same session can retry
        if detection.platform != Platform.UNKNOWN:
            self.cache.put(detection)
        return detection
