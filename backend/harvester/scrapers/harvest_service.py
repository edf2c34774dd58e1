"""Harvest orchestration service.

This service ties the detector, fallback chain, paginator and shape
mappers together. It handles the end-to-end flow from an origin URL to an
immutable HarvestResult: detect platform -> commit to an endpoint ->
page through it -> map, filter and dedup records.
"""

import asyncio
import dataclasses
from typing import Callable, Dict, Iterable, List, Optional, Union

import structlog

from harvester.config import settings
from harvester.core.exceptions import (
    Cancelled,
    EndpointExhausted,
    HarvesterException,
    InvalidOrigin,
    MalformedRecord,
    NetworkError,
    UnsupportedPlatform,
)
from harvester.scrapers.base import (
    Collection,
    EndpointAttempt,
    HarvestKind,
    HarvestOptions,
    HarvestResult,
    Platform,
    Product,
    Record,
    SiteValidation,
)
from harvester.scrapers.endpoints import SINGLE_PRODUCT_ENDPOINTS, WOO_REST_V3_PRODUCTS
from harvester.scrapers.factory import get_adapter_factory
from harvester.scrapers.session import HarvestSession
from harvester.scrapers.utils.normalizer import normalize_origin

logger = structlog.get_logger(__name__)

HarvestOutcome = Union[HarvestResult, HarvesterException]


class HarvestService:
    """Service for harvesting product catalogs from storefront JSON APIs.

    One service wraps one HarvestSession. Harvests through the same service
    run one request at a time; use harvest_many for several origins.
    """

    def __init__(
        self,
        session: Optional[HarvestSession] = None,
        *,
        session_factory: Optional[Callable[[], HarvestSession]] = None,
    ):
        """Initialize harvest service.

        Args:
            session: Harvest session (created from session_factory when omitted)
            session_factory: Builds fresh sessions for harvest_many
        """
        self.session_factory = session_factory or HarvestSession
        self.session = session or self.session_factory()
        self.adapter_factory = get_adapter_factory()
        self.logger = logger.bind(service="harvest_service")

    async def __aenter__(self) -> "HarvestService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.session.aclose()

    async def detect_platform(self, origin: str) -> Platform:
        """Detect the commerce platform behind an origin."""
        origin = self._normalize_origin(origin)
        return (await self.session.detect(origin)).platform

    async def harvest(
        self,
        origin: str,
        kind: Union[HarvestKind, str] = HarvestKind.PRODUCTS,
        options: Optional[HarvestOptions] = None,
    ) -> HarvestResult:
        """Harvest every product or collection an origin exposes.

        This is the main entry point for a harvest run.

        Args:
            origin: Storefront URL; reduced to scheme://host
            kind: "products" or "collections"
            options: Category filter, progress callback, cancel event,
                page size and optional collection to restrict products to

        Returns:
            HarvestResult with deduplicated records. Later-page failures are
            listed in errors; a cancelled harvest has cancelled=True and
            whatever was collected before the signal.

        Raises:
            InvalidOrigin: If origin is not an absolute http(s) URL
            UnsupportedPlatform: If no platform probe answered
            EndpointExhausted: If every candidate endpoint was unusable
        """
        options = options or HarvestOptions()
        kind = HarvestKind(kind)
        origin = self._normalize_origin(origin)
        log = self.logger.bind(origin=origin, kind=kind.value)
        log.info(
            "harvest_started",
            category_filter=list(options.category_filter),
            collection=options.collection.id if options.collection else None,
        )

        try:
            detection = await self.session.detect(origin, options.cancel_event)
        except Cancelled:
            log.info("harvest_cancelled", stage="detection")
            return HarvestResult(origin=origin, platform=Platform.UNKNOWN, kind=kind, cancelled=True)

        platform = detection.platform
        if platform == Platform.UNKNOWN:
            raise UnsupportedPlatform(origin)

        try:
            committed = await self.session.fallback.open(
                origin,
                platform,
                kind,
                collection=options.collection,
                page_size=options.page_size,
                progress_callback=options.progress_callback,
                cancel_event=options.cancel_event,
            )
        except Cancelled:
            log.info("harvest_cancelled", stage="endpoint_selection")
            return HarvestResult(origin=origin, platform=platform, kind=kind, cancelled=True)

        mapper = self.adapter_factory.get_mapper(committed.endpoint.shape, kind)
        if mapper is None:
            raise HarvesterException(f"No mapper registered for {committed.endpoint.shape.value}")

        items: Dict[str, Record] = {}
        skipped = 0
        duplicates = 0
        cancelled = False

        try:
            async for page in committed.pages():
                for raw in page.records:
                    record = self._map_record(mapper, raw, origin, log)
                    if record is None:
                        skipped += 1
                        continue
                    if not record.in_categories(options.category_filter):
                        continue
                    if record.id in items:
                        duplicates += 1
                        continue
                    items[record.id] = record
        except Cancelled:
            cancelled = True
            log.info("harvest_cancelled", stage="pagination", collected=len(items))

        sequence = committed.sequence
        result = HarvestResult(
            origin=origin,
            platform=platform,
            kind=kind,
            items=tuple(items.values()),
            shape=committed.endpoint.shape,
            endpoint=committed.endpoint.name,
            pages_fetched=sequence.pages_fetched,
            fallback_attempts=committed.fallback_attempts,
            attempts=committed.attempts,
            errors=tuple(sequence.failures),
            skipped=skipped,
            cancelled=cancelled,
        )

        log.info(
            "harvest_complete",
            platform=platform.value,
            shape=result.shape.value,
            items=len(result.items),
            pages=result.pages_fetched,
            fallback_attempts=result.fallback_attempts,
            errors=len(result.errors),
            skipped=skipped,
            duplicates=duplicates,
            cancelled=cancelled,
        )
        return result

    async def harvest_collection_products(
        self,
        origin: str,
        collection: Union[Collection, str],
        options: Optional[HarvestOptions] = None,
    ) -> HarvestResult:
        """Harvest the member products of one collection.

        WooCommerce endpoints filter by category id; Shopify reads
        /collections/{handle}/products.json.

        Args:
            origin: Storefront URL
            collection: Collection record, or a bare category id / handle
            options: Same as harvest(); options.collection is overridden
        """
        if isinstance(collection, str):
            value = collection.strip()
            if not value:
                raise ValueError("collection id or handle is required")
            collection = Collection(id=value, name=value, slug=value)

        options = dataclasses.replace(options or HarvestOptions(), collection=collection)
        return await self.harvest(origin, HarvestKind.PRODUCTS, options)

    async def fetch_product(self, origin: str, product_id: str) -> Product:
        """Look up one product by id (WooCommerce) or handle (Shopify).

        Tries the Store API first and then REST v3 on WooCommerce.

        Raises:
            UnsupportedPlatform: If no platform probe answered
            EndpointExhausted: If no lookup endpoint returned the product
        """
        origin = self._normalize_origin(origin)
        product_id = str(product_id).strip()
        if not product_id:
            raise ValueError("product_id is required")

        platform = (await self.session.detect(origin)).platform
        if platform == Platform.UNKNOWN:
            raise UnsupportedPlatform(origin)

        attempts: List[EndpointAttempt] = []
        for item_endpoint in SINGLE_PRODUCT_ENDPOINTS.get(platform, ()):
            url = item_endpoint.url(origin, product_id)
            try:
                response = await self.session.client.get_json(url, auth=item_endpoint.auth)
            except NetworkError as e:
                self.logger.info("product_lookup_failed", url=url, reason=e.reason)
                attempts.append(EndpointAttempt(item_endpoint.path, e.reason, e.status_code))
                continue

            data = response.data
            if item_endpoint.envelope and isinstance(data, dict):
                data = data.get(item_endpoint.envelope)

            adapter = self.adapter_factory.get_adapter(item_endpoint.shape)
            try:
                product = adapter.map(data, origin, HarvestKind.PRODUCTS)
            except (MalformedRecord, ValueError) as e:
                self.logger.warning("product_lookup_malformed", url=url, error=str(e))
                attempts.append(EndpointAttempt(item_endpoint.path, "malformed_body"))
                continue

            self.logger.info("product_fetched", origin=origin, product_id=product.id, url=url)
            return product

        raise EndpointExhausted(platform.value, "product", attempts)

    async def validate_site(self, origin: str) -> SiteValidation:
        """Report whether an origin is harvestable and whether REST v3 accepts our credentials."""
        origin = self._normalize_origin(origin)
        platform = (await self.session.detect(origin)).platform

        if platform == Platform.UNKNOWN:
            return SiteValidation(
                origin=origin,
                platform=platform,
                supported=False,
                message="No WooCommerce or Shopify API answered",
            )

        if platform != Platform.WOOCOMMERCE:
            return SiteValidation(origin=origin, platform=platform, supported=True)

        if not self.session.has_credentials:
            return SiteValidation(
                origin=origin,
                platform=platform,
                supported=True,
                message="No WooCommerce consumer credentials configured",
            )

        try:
            await self.session.client.get_json(
                WOO_REST_V3_PRODUCTS.url(origin),
                params={"per_page": 1},
                retry=False,
                auth=True,
            )
        except NetworkError as e:
            if e.status_code in (401, 403):
                return SiteValidation(
                    origin=origin,
                    platform=platform,
                    supported=True,
                    rest_api_authorized=False,
                    message="Invalid API credentials",
                )
            return SiteValidation(
                origin=origin,
                platform=platform,
                supported=True,
                message=f"REST API check failed: {e.reason}",
            )

        return SiteValidation(
            origin=origin, platform=platform, supported=True, rest_api_authorized=True
        )

    async def harvest_many(
        self,
        origins: Iterable[str],
        kind: Union[HarvestKind, str] = HarvestKind.PRODUCTS,
        options: Optional[HarvestOptions] = None,
        max_concurrency: Optional[int] = None,
    ) -> Dict[str, HarvestOutcome]:
        """Harvest several origins concurrently, each in its own session.

        Args:
            origins: Storefront URLs
            kind: "products" or "collections"
            options: Shared options (the cancel event stops every harvest)
            max_concurrency: Cap on simultaneous harvests
                (default MAX_CONCURRENT_HARVESTS)

        Returns:
            Dict of origin (as given) -> HarvestResult, or the
            HarvesterException that ended that origin's harvest
        """
        origins = list(dict.fromkeys(origins))
        semaphore = asyncio.Semaphore(max(1, max_concurrency or settings.MAX_CONCURRENT_HARVESTS))

        async def run(origin: str) -> HarvestOutcome:
            async with semaphore:
                async with HarvestService(
                    self.session_factory(), session_factory=self.session_factory
                ) as service:
                    try:
                        return await service.harvest(origin, kind, options)
                    except HarvesterException as e:
                        self.logger.warning(
                            "harvest_failed",
                            origin=origin,
                            error_type=e.__class__.__name__,
                            error=e.message,
                        )
                        return e

        outcomes = await asyncio.gather(*(run(origin) for origin in origins))
        return dict(zip(origins, outcomes))

    def _map_record(self, mapper, raw, origin: str, log) -> Optional[Record]:
        try:
            return mapper(raw, origin)
        except (MalformedRecord, ValueError, TypeError, ArithmeticError, AttributeError) as e:
            record_id = raw.get("id") if isinstance(raw, dict) else None
            log.warning("record_skipped", record_id=record_id, error=str(e))
            return None

    @staticmethod
    def _normalize_origin(origin: str) -> str:
        try:
            return normalize_origin(origin)
        except ValueError as e:
            raise InvalidOrigin(origin) from e
