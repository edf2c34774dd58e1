"""Candidate API endpoints per platform and harvest kind, in priority order."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from harvester.scrapers.base import ApiShape, Collection, HarvestKind, Platform


@dataclass(frozen=True)
class Endpoint:
    """One paginated list endpoint and how to talk to it."""

    name: str
    path: str
    shape: ApiShape
    kind: HarvestKind
    size_param: str = "per_page"
    max_page_size: int = 100
    envelope: Optional[str] = None  # key wrapping the record list (Shopify)
    total_header: Optional[str] = "X-WP-Total"
    total_pages_header: Optional[str] = "X-WP-TotalPages"
    member_param: Optional[str] = None  # query param restricting to one category
    member_path: Optional[str] = None  # path template restricting to one collection
    auth: bool = False  # send WooCommerce consumer credentials
    fixed_params: Tuple[Tuple[str, str], ...] = ()

    def url(self, origin: str, collection: Optional[Collection] = None) -> str:
        """Absolute URL for this endpoint, optionally scoped to a collection."""
        origin = origin.rstrip("/")
        if collection is not None and self.member_path:
            return origin + self.member_path.format(
                handle=collection.slug or collection.id, id=collection.id
            )
        return origin + self.path

    def params(
        self, page: int, page_size: int, collection: Optional[Collection] = None
    ) -> Dict[str, Any]:
        """Query parameters for one page."""
        params: Dict[str, Any] = dict(self.fixed_params)
        params["page"] = page
        params[self.size_param] = min(page_size, self.max_page_size)
        if collection is not None and self.member_param:
            params[self.member_param] = collection.id
        return params

    def supports_members(self) -> bool:
        return bool(self.member_param or self.member_path)


# WooCommerce Store API (public, no auth)
WOO_STORE_V1_PRODUCTS = Endpoint(
    name="woocommerce-store-v1-products",
    path="/wp-json/wc/store/v1/products",
    shape=ApiShape.WOO_STORE_V1,
    kind=HarvestKind.PRODUCTS,
    member_param="category",
)
WOO_STORE_PRODUCTS = Endpoint(
    name="woocommerce-store-products",
    path="/wp-json/wc/store/products",
    shape=ApiShape.WOO_STORE_V1,
    kind=HarvestKind.PRODUCTS,
    member_param="category",
)
WOO_STORE_V1_CATEGORIES = Endpoint(
    name="woocommerce-store-v1-categories",
    path="/wp-json/wc/store/v1/products/categories",
    shape=ApiShape.WOO_STORE_V1,
    kind=HarvestKind.COLLECTIONS,
)
WOO_STORE_CATEGORIES = Endpoint(
    name="woocommerce-store-categories",
    path="/wp-json/wc/store/products/categories",
    shape=ApiShape.WOO_STORE_V1,
    kind=HarvestKind.COLLECTIONS,
)

# WooCommerce REST API v3 (usually needs consumer credentials)
WOO_REST_V3_PRODUCTS = Endpoint(
    name="woocommerce-rest-v3-products",
    path="/wp-json/wc/v3/products",
    shape=ApiShape.WOO_REST_V3,
    kind=HarvestKind.PRODUCTS,
    member_param="category",
    auth=True,
)
WOO_REST_V3_CATEGORIES = Endpoint(
    name="woocommerce-rest-v3-categories",
    path="/wp-json/wc/v3/products/categories",
    shape=ApiShape.WOO_REST_V3,
    kind=HarvestKind.COLLECTIONS,
    auth=True,
)

# Plain WordPress REST API over the product post type / taxonomy
WP_PRODUCTS = Endpoint(
    name="wordpress-product",
    path="/wp-json/wp/v2/product",
    shape=ApiShape.WOO_WP_FALLBACK,
    kind=HarvestKind.PRODUCTS,
    member_param="product_cat",
    fixed_params=(("_embed", "1"),),
)
WP_PRODUCT_CATEGORIES = Endpoint(
    name="wordpress-product-cat",
    path="/wp-json/wp/v2/product_cat",
    shape=ApiShape.WOO_WP_FALLBACK,
    kind=HarvestKind.COLLECTIONS,
)

# Shopify public storefront JSON
SHOPIFY_PRODUCTS = Endpoint(
    name="shopify-products",
    path="/products.json",
    shape=ApiShape.SHOPIFY,
    kind=HarvestKind.PRODUCTS,
    size_param="limit",
    max_page_size=250,
    envelope="products",
    total_header=None,
    total_pages_header=None,
    member_path="/collections/{handle}/products.json",
)
SHOPIFY_COLLECTIONS = Endpoint(
    name="shopify-collections",
    path="/collections.json",
    shape=ApiShape.SHOPIFY,
    kind=HarvestKind.COLLECTIONS,
    size_param="limit",
    max_page_size=250,
    envelope="collections",
    total_header=None,
    total_pages_header=None,
)


FALLBACK_CHAINS: Dict[Tuple[Platform, HarvestKind], Tuple[Endpoint, ...]] = {
    (Platform.WOOCOMMERCE, HarvestKind.PRODUCTS): (
        WOO_STORE_V1_PRODUCTS,
        WOO_STORE_PRODUCTS,
        WOO_REST_V3_PRODUCTS,
        WP_PRODUCTS,
    ),
    (Platform.WOOCOMMERCE, HarvestKind.COLLECTIONS): (
        WOO_STORE_V1_CATEGORIES,
        WOO_STORE_CATEGORIES,
        WOO_REST_V3_CATEGORIES,
        WP_PRODUCT_CATEGORIES,
    ),
    (Platform.SHOPIFY, HarvestKind.PRODUCTS): (SHOPIFY_PRODUCTS,),
    (Platform.SHOPIFY, HarvestKind.COLLECTIONS): (SHOPIFY_COLLECTIONS,),
}


# Platform probes, issued in this order
PLATFORM_PROBES: Tuple[Tuple[str, Platform], ...] = (
    ("/wp-json/wc/store/v1/products", Platform.WOOCOMMERCE),
    ("/wp-json/wc/v3/products", Platform.WOOCOMMERCE),
    ("/products.json", Platform.SHOPIFY),
)


@dataclass(frozen=True)
class ItemEndpoint:
    """Single-record lookup endpoint."""

    path: str  # template with {id}
    shape: ApiShape
    envelope: Optional[str] = None
    auth: bool = False

    def url(self, origin: str, product_id: str) -> str:
        return origin.rstrip("/") + self.path.format(id=product_id)


SINGLE_PRODUCT_ENDPOINTS: Dict[Platform, Tuple[ItemEndpoint, ...]] = {
    Platform.WOOCOMMERCE: (
        ItemEndpoint("/wp-json/wc/store/v1/products/{id}", ApiShape.WOO_STORE_V1),
        ItemEndpoint("/wp-json/wc/v3/products/{id}", ApiShape.WOO_REST_V3, auth=True),
    ),
    Platform.SHOPIFY: (
        ItemEndpoint("/products/{id}.json", ApiShape.SHOPIFY, envelope="product"),
    ),
}


def get_candidates(platform: Platform, kind: HarvestKind) -> Tuple[Endpoint, ...]:
    """Ordered candidate endpoints for a platform/kind pair (empty if none)."""
    return FALLBACK_CHAINS.get((platform, kind), ())
