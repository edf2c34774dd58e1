"""Shopify storefront JSON (/products.json, /collections.json) mapper.

Shopify exposes one stable public surface. Prices live on variants as
major-unit strings; the first variant is the product's headline offer.
"""

from typing import Any, List, Optional

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
    extract_term_names,
    parse_non_negative_int,
    strip_html,
    unique_strings,
)


class ShopifyAdapter(BaseShapeAdapter):
    """Maps Shopify products and custom/smart collections."""

    shape = ApiShape.SHOPIFY
    platform = Platform.SHOPIFY

    def map_product(self, raw: dict, origin: str) -> Product:
        product_id = self._require_id(raw)
        variants = [v for v in raw.get("variants") or [] if isinstance(v, dict)]
        first = variants[0] if variants else {}

        price = PriceNormalizer.normalize(first.get("price"))
        compare_at = PriceNormalizer.normalize(first.get("compare_at_price"))
        on_sale = price is not None and compare_at is not None and compare_at > price

        handle = str(raw.get("handle") or "").strip()
        product_type = strip_html(raw.get("product_type"))

        return Product(
            id=product_id,
            name=strip_html(raw.get("title")),
            url=f"{origin.rstrip('/')}/products/{handle}" if handle else "",
            description=strip_html(raw.get("body_html")),
            sku=str(first.get("sku") or "").strip(),
            price=price,
            regular_price=compare_at if on_sale else price,
            sale_price=price if on_sale else None,
            on_sale=on_sale,
            stock_status=self._stock_status(first.get("available")),
            stock_quantity=self._stock_quantity(variants),
            categories=(product_type,) if product_type else (),
            tags=extract_term_names(raw.get("tags")),
            images=extract_image_urls(raw.get("images"), origin),
            attributes=self._attributes(raw.get("options")),
            variation_count=len(variants) if len(variants) > 1 else 0,
            date_created=raw.get("created_at"),
            date_modified=raw.get("updated_at"),
        )

    def map_collection(self, raw: dict, origin: str) -> Collection:
        handle = str(raw.get("handle") or "").strip()
        image = raw.get("image")
        image_urls = extract_image_urls(image, origin) if image else ()
        return Collection(
            id=self._require_id(raw),
            name=strip_html(raw.get("title")),
            slug=handle,
            description=strip_html(raw.get("body_html") or raw.get("description")),
            product_count=parse_non_negative_int(raw.get("products_count")) or 0,
            parent_id=None,
            image_url=image_urls[0] if image_urls else None,
            url=f"{origin.rstrip('/')}/collections/{handle}" if handle else "",
        )

    @staticmethod
    def _stock_status(available: Any) -> StockStatus:
        if available is True:
            return StockStatus.IN_STOCK
        if available is False:
            return StockStatus.OUT_OF_STOCK
        return StockStatus.UNKNOWN

    @staticmethod
    def _stock_quantity(variants: List[dict]) -> Optional[int]:
        quantities = [
            parse_non_negative_int(v.get("inventory_quantity"))
            for v in variants
            if v.get("inventory_quantity") is not None
        ]
        known = [q for q in quantities if q is not None]
        if not known:
            return None
        return sum(known)

    @staticmethod
    def _attributes(options: Any) -> tuple:
        if not isinstance(options, list):
            return ()
        attributes = []
        for option in options:
            if not isinstance(option, dict):
                continue
            name = strip_html(option.get("name"))
            values = unique_strings(option.get("values") or [])
            # Single-variant products carry a placeholder "Title: Default Title" option
            if not name or (name == "Title" and values == ("Default Title",)):
                continue
            attributes.append(ProductAttribute(name=name, options=values))
        return tuple(attributes)
