"""Plain WordPress REST API (wp/v2) mapper for the product post type.

Last resort for stores that lock down both WooCommerce APIs. There is no
price or stock concept here; names and bodies come as {"rendered": html}.
Category names are only available when the request asked for _embed.
"""

from typing import Any, List, Tuple

from harvester.scrapers.base import (
    ApiShape,
    BaseShapeAdapter,
    Collection,
    Platform,
    Product,
    StockStatus,
)
from harvester.scrapers.utils.normalizer import (
    extract_image_urls,
    normalize_url,
    parse_non_negative_int,
    strip_html,
    to_absolute_url,
    unique_strings,
)


class WordPressAdapter(BaseShapeAdapter):
    """Maps wp/v2/product posts and wp/v2/product_cat terms."""

    shape = ApiShape.WOO_WP_FALLBACK
    platform = Platform.WOOCOMMERCE

    def map_product(self, raw: dict, origin: str) -> Product:
        product_id = self._require_id(raw)
        embedded = raw.get("_embedded") if isinstance(raw.get("_embedded"), dict) else {}

        categories = self._embedded_terms(embedded, "product_cat")
        tags = self._embedded_terms(embedded, "product_tag")
        category_ids = raw.get("product_cat") if isinstance(raw.get("product_cat"), list) else []

        return Product(
            id=product_id,
            name=strip_html(raw.get("title")),
            url=normalize_url(to_absolute_url(raw.get("link"), origin)),
            description=strip_html(raw.get("content")),
            short_description=strip_html(raw.get("excerpt")),
            stock_status=StockStatus.UNKNOWN,
            categories=tuple(name for name, _ in categories),
            category_ids=unique_strings(category_ids),
            category_slugs=tuple(slug for _, slug in categories if slug),
            tags=tuple(name for name, _ in tags),
            images=extract_image_urls(embedded.get("wp:featuredmedia"), origin),
            date_created=raw.get("date_gmt") or raw.get("date"),
            date_modified=raw.get("modified_gmt") or raw.get("modified"),
        )

    def map_collection(self, raw: dict, origin: str) -> Collection:
        return Collection(
            id=self._require_id(raw),
            name=strip_html(raw.get("name")),
            slug=str(raw.get("slug") or ""),
            description=strip_html(raw.get("description")),
            product_count=parse_non_negative_int(raw.get("count")) or 0,
            parent_id=self._optional_id(raw.get("parent")),
            url=to_absolute_url(raw.get("link"), origin),
        )

    @staticmethod
    def _embedded_terms(embedded: dict, taxonomy: str) -> Tuple[Tuple[str, str], ...]:
        """(name, slug) pairs of one taxonomy from _embedded["wp:term"], deduplicated."""
        groups: Any = embedded.get("wp:term") or []
        seen: List[str] = []
        terms: List[Tuple[str, str]] = []
        for group in groups if isinstance(groups, list) else []:
            for term in group if isinstance(group, list) else []:
                if not isinstance(term, dict) or term.get("taxonomy") != taxonomy:
                    continue
                name = strip_html(term.get("name"))
                if name and name not in seen:
                    seen.append(name)
                    terms.append((name, str(term.get("slug") or "")))
        return tuple(terms)
