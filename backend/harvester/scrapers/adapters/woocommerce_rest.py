"""WooCommerce REST API v3 (wc/v3) mapper.

Prices are major-unit strings ("19.99", "" when unset) and stock is exposed
directly through stock_status / stock_quantity.
"""

from typing import Any

from harvester.scrapers.base import (
    ApiShape,
    BaseShapeAdapter,
    Collection,
    Platform,
    Product,
    ProductAttribute,
    StockStatus,
)
from harvester.scrapers.utils.normalizer import (
    PriceNormalizer,
    extract_image_urls,
    extract_term_field,
    extract_term_names,
    normalize_url,
    parse_non_negative_int,
    strip_html,
    to_absolute_url,
    unique_strings,
)


STOCK_STATUSES = {
    "instock": StockStatus.IN_STOCK,
    "outofstock": StockStatus.OUT_OF_STOCK,
    "onbackorder": StockStatus.OUT_OF_STOCK,
}


class WooRestV3Adapter(BaseShapeAdapter):
    """Maps wc/v3 products and product categories."""

    shape = ApiShape.WOO_REST_V3
    platform = Platform.WOOCOMMERCE

    def map_product(self, raw: dict, origin: str) -> Product:
        product_id = self._require_id(raw)
        sale_price = PriceNormalizer.normalize(raw.get("sale_price"))

        return Product(
            id=product_id,
            name=strip_html(raw.get("name")),
            url=normalize_url(to_absolute_url(raw.get("permalink"), origin)),
            description=strip_html(raw.get("description")),
            short_description=strip_html(raw.get("short_description")),
            sku=str(raw.get("sku") or "").strip(),
            price=PriceNormalizer.normalize(raw.get("price")),
            regular_price=PriceNormalizer.normalize(raw.get("regular_price")),
            sale_price=sale_price,
            on_sale=bool(raw.get("on_sale")) or sale_price is not None,
            stock_status=self._stock_status(raw),
            stock_quantity=parse_non_negative_int(raw.get("stock_quantity")),
            categories=extract_term_names(raw.get("categories")),
            category_ids=extract_term_field(raw.get("categories"), "id"),
            category_slugs=extract_term_field(raw.get("categories"), "slug"),
            tags=extract_term_names(raw.get("tags")),
            images=extract_image_urls(raw.get("images"), origin),
            attributes=self._attributes(raw.get("attributes")),
            variation_count=len(raw["variations"]) if isinstance(raw.get("variations"), list) else 0,
            date_created=raw.get("date_created"),
            date_modified=raw.get("date_modified"),
        )

    def map_collection(self, raw: dict, origin: str) -> Collection:
        image = raw.get("image")
        image_urls = extract_image_urls(image, origin) if image else ()
        return Collection(
            id=self._require_id(raw),
            name=strip_html(raw.get("name")),
            slug=str(raw.get("slug") or ""),
            description=strip_html(raw.get("description")),
            product_count=parse_non_negative_int(raw.get("count")) or 0,
            parent_id=self._optional_id(raw.get("parent")),
            image_url=image_urls[0] if image_urls else None,
        )

    @staticmethod
    def _stock_status(raw: dict) -> StockStatus:
        status = raw.get("stock_status")
        if isinstance(status, str):
            return STOCK_STATUSES.get(status.strip().lower(), StockStatus.UNKNOWN)
        # Very old stores only report in_stock
        if raw.get("in_stock") is True:
            return StockStatus.IN_STOCK
        if raw.get("in_stock") is False:
            return StockStatus.OUT_OF_STOCK
        return StockStatus.UNKNOWN

    @staticmethod
    def _attributes(raw_attributes: Any) -> tuple:
        if not isinstance(raw_attributes, list):
            return ()
        attributes = []
        for attribute in raw_attributes:
            if not isinstance(attribute, dict):
                continue
            name = strip_html(attribute.get("name"))
            if not name:
                continue
            options = attribute.get("options") or []
            if not isinstance(options, list):
                options = [options]
            attributes.append(ProductAttribute(name=name, options=unique_strings(options)))
        return tuple(attributes)
