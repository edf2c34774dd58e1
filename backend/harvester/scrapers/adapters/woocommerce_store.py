"""WooCommerce Store API (wc/store/v1) mapper.

The Store API is public and unauthenticated. Prices arrive as minor-unit
strings inside a "prices" object together with currency_minor_unit.
Documentation: https://github.com/woocommerce/woocommerce/tree/trunk/plugins/woocommerce/src/StoreApi/docs
"""

from decimal import Decimal
from typing import Any, Optional

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


class WooStoreApiAdapter(BaseShapeAdapter):
    """Maps wc/store/v1 products and product categories."""

    shape = ApiShape.WOO_STORE_V1
    platform = Platform.WOOCOMMERCE

    def map_product(self, raw: dict, origin: str) -> Product:
        product_id = self._require_id(raw)
        prices = raw.get("prices") if isinstance(raw.get("prices"), dict) else {}

        price = self._price(prices, "price")
        regular_price = self._price(prices, "regular_price")
        sale_price = self._price(prices, "sale_price")
        on_sale = bool(raw.get("on_sale"))
        if not on_sale or (regular_price is not None and sale_price == regular_price):
            sale_price = None

        return Product(
            id=product_id,
            name=strip_html(raw.get("name")),
            url=normalize_url(to_absolute_url(raw.get("permalink"), origin)),
            description=strip_html(raw.get("description")),
            short_description=strip_html(raw.get("short_description")),
            sku=str(raw.get("sku") or "").strip(),
            price=price,
            regular_price=regular_price,
            sale_price=sale_price,
            on_sale=on_sale,
            stock_status=self._stock_status(raw.get("is_in_stock")),
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
            url=to_absolute_url(raw.get("permalink"), origin),
        )

    @staticmethod
    def _price(prices: dict, key: str) -> Optional[Decimal]:
        value = prices.get(key)
        if value in (None, ""):
            return None
        if prices.get("currency_minor_unit") is not None:
            converted = PriceNormalizer.minor_units_to_decimal(value, prices["currency_minor_unit"])
            if converted is not None:
                return converted
        return PriceNormalizer.normalize(value)

    @staticmethod
    def _stock_status(is_in_stock: Any) -> StockStatus:
        if is_in_stock is True:
            return StockStatus.IN_STOCK
        if is_in_stock is False:
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
            terms = attribute.get("terms") or []
            options = unique_strings(
                strip_html(t.get("name")) if isinstance(t, dict) else t for t in terms
            )
            attributes.append(ProductAttribute(name=name, options=options))
        return tuple(attributes)
