"""API-shape mapper implementations.

Each module implements a class that inherits from BaseShapeAdapter and
maps one raw JSON variant to canonical Product/Collection records.
"""

from .woocommerce_store import WooStoreApiAdapter
from .woocommerce_rest import WooRestV3Adapter
from .wordpress import WordPressAdapter
from .shopify import ShopifyAdapter

__all__ = [
    "WooStoreApiAdapter",
    "WooRestV3Adapter",
    "WordPressAdapter",
    "ShopifyAdapter",
]
