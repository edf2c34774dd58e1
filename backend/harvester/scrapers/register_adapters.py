"""Register all shape adapters with the factory."""

from typing import Optional

import structlog

from harvester.scrapers.base import ApiShape
from harvester.scrapers.factory import AdapterFactory
from harvester.scrapers.adapters import (
    ShopifyAdapter,
    WooRestV3Adapter,
    WooStoreApiAdapter,
    WordPressAdapter,
)

logger = structlog.get_logger(__name__)


def register_all_adapters(factory: Optional[AdapterFactory] = None) -> AdapterFactory:
    """Register the built-in adapters with a factory.

    Args:
        factory: Target factory (default: the global one)

    Returns:
        The factory the adapters were registered with
    """
    if factory is None:
        from harvester.scrapers.factory import adapter_factory

        factory = adapter_factory

    adapters = [
        (ApiShape.WOO_STORE_V1, WooStoreApiAdapter),
        (ApiShape.WOO_REST_V3, WooRestV3Adapter),
        (ApiShape.WOO_WP_FALLBACK, WordPressAdapter),
        (ApiShape.SHOPIFY, ShopifyAdapter),
    ]

    for shape, adapter_class in adapters:
        factory.register_adapter(shape, adapter_class)

    logger.debug(
        "all_adapters_registered",
        count=len(factory.get_registered_shapes()),
        shapes=[s.value for s in factory.get_registered_shapes()],
    )
    return factory
