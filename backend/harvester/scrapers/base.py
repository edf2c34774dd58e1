"""Canonical record types shared by every API-shape mapper.

All mappers return Product or Collection instances; the harvest service
collects them into an immutable HarvestResult.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Union

import structlog

from harvester.core.exceptions import Cancelled, MalformedRecord


class Platform(str, Enum):
    """Commerce backend powering a storefront."""

    WOOCOMMERCE = "woocommerce"
    SHOPIFY = "shopify"
    UNKNOWN = "unknown"


class HarvestKind(str, Enum):
    """What a harvest collects."""

    PRODUCTS = "products"
    COLLECTIONS = "collections"


class ApiShape(str, Enum):
    """Raw JSON variant a mapper understands."""

    WOO_STORE_V1 = "woocommerce-store-v1"
    WOO_REST_V3 = "woocommerce-rest-v3"
    WOO_WP_FALLBACK = "woocommerce-wp-fallback"
    SHOPIFY = "shopify"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    UNKNOWN = "unknown"


ProgressCallback = Callable[[int, Optional[int]], None]


def _filter_terms(wanted) -> set:
    """Casefolded, non-blank category filter terms."""
    return {w.strip().casefold() for w in wanted if w and w.strip()}


@dataclass(frozen=True)
class ProductAttribute:
    """A named product attribute with its selectable options."""

    name: str
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Product:
    """Canonical product record, independent of the source API variant."""

    id: str
    name: str
    url: str = ""
    description: str = ""
    short_description: str = ""
    sku: str = ""
    price: Optional[Decimal] = None
    regular_price: Optional[Decimal] = None
    sale_price: Optional[Decimal] = None
    on_sale: bool = False
    stock_status: StockStatus = StockStatus.UNKNOWN
    stock_quantity: Optional[int] = None
    categories: Tuple[str, ...] = ()
    category_ids: Tuple[str, ...] = ()
    category_slugs: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    images: Tuple[str, ...] = ()
    attributes: Tuple[ProductAttribute, ...] = ()
    variation_count: int = 0
    date_created: Optional[str] = None
    date_modified: Optional[str] = None

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        for name in ("price", "regular_price", "sale_price"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be a non-negative Decimal")
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValueError("stock_quantity must be non-negative")
        if self.variation_count < 0:
            raise ValueError("variation_count must be non-negative")

    def in_categories(self, wanted: Tuple[str, ...]) -> bool:
        """Case-insensitive match of any wanted name against this product's categories."""
        wanted = _filter_terms(wanted)
        if not wanted:
            return True
        names = {c.casefold() for c in self.categories}
        return any(w in names for w in wanted)


@dataclass(frozen=True)
class Collection:
    """Canonical product category / collection record."""

    id: str
    name: str
    slug: str = ""
    description: str = ""
    product_count: int = 0
    parent_id: Optional[str] = None
    image_url: Optional[str] = None
    url: str = ""

    def __post_init__(self):
        """Validate data after initialization."""
        if not self.id:
            raise ValueError("id is required")
        if self.product_count < 0:
            raise ValueError("product_count must be non-negative")

    def in_categories(self, wanted: Tuple[str, ...]) -> bool:
        """Collections match a filter by their own name."""
        wanted = _filter_terms(wanted)
        if not wanted:
            return True
        return self.name.casefold() in wanted


Record = Union[Product, Collection]


@dataclass(frozen=True)
class PartialFailure:
    """A later page of a committed endpoint failed; earlier pages were kept."""

    endpoint: str
    page: int
    reason: str


@dataclass(frozen=True)
class EndpointAttempt:
    """One candidate endpoint the fallback chain tried and gave up on."""

    endpoint: str
    reason: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class HarvestResult:
    """Outcome of one harvest run. Rebuilt for every run, never mutated."""

    origin: str
    platform: Platform
    kind: HarvestKind
    items: Tuple[Record, ...] = ()
    shape: Optional[ApiShape] = None
    endpoint: Optional[str] = None
    pages_fetched: int = 0
    fallback_attempts: int = 0
    attempts: Tuple[EndpointAttempt, ...] = ()
    errors: Tuple[PartialFailure, ...] = ()
    skipped: int = 0
    cancelled: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    @property
    def complete(self) -> bool:
        """True when nothing was cut short by page failures or cancellation."""
        return not self.errors and not self.cancelled

    def raise_for_cancelled(self) -> None:
        """Raise Cancelled if this result was cut short by a cancel signal."""
        if self.cancelled:
            raise Cancelled(self.origin)


@dataclass(frozen=True)
class SiteValidation:
    """Whether an origin can be harvested, and with which access.

    rest_api_authorized is None when it was not checked (no credentials
    configured, or the platform has no authenticated API).
    """

    origin: str
    platform: Platform
    supported: bool
    rest_api_authorized: Optional[bool] = None
    message: str = ""


@dataclass
class HarvestOptions:
    """Per-call harvest options."""

    category_filter: Tuple[str, ...] = ()
    progress_callback: Optional[ProgressCallback] = None
    cancel_event: Optional[object] = None  # asyncio.Event
    page_size: Optional[int] = None
    collection: Optional[Collection] = None  # restrict a products harvest to members

    def __post_init__(self):
        self.category_filter = tuple(
            c.strip() for c in (self.category_filter or ()) if c and c.strip()
        )


class BaseShapeAdapter(ABC):
    """Abstract base class for raw-JSON-shape mappers.

    One subclass per API variant. Mapping methods must be pure: the same raw
    record and origin always produce the same canonical record.
    """

    shape: ApiShape  # Must be overridden in subclass
    platform: Platform = Platform.UNKNOWN

    def __init__(self):
        """Initialize the adapter logger."""
        self.logger = structlog.get_logger(adapter=self.shape.value)

    @abstractmethod
    def map_product(self, raw: dict, origin: str) -> Product:
        """Map one raw product record to a canonical Product.

        Raises:
            MalformedRecord: If the record cannot be mapped
        """

    @abstractmethod
    def map_collection(self, raw: dict, origin: str) -> Collection:
        """Map one raw category/collection record to a canonical Collection.

        Raises:
            MalformedRecord: If the record cannot be mapped
        """

    def map(self, raw: Any, origin: str, kind: HarvestKind) -> Record:
        """Dispatch on harvest kind after checking the record is an object."""
        if not isinstance(raw, dict):
            raise MalformedRecord(f"expected object, got {type(raw).__name__}")
        if kind == HarvestKind.PRODUCTS:
            return self.map_product(raw, origin)
        return self.map_collection(raw, origin)

    @staticmethod
    def _require_id(raw: dict, key: str = "id") -> str:
        """Stringified record id, or MalformedRecord when missing."""
        value = raw.get(key)
        if value is None or isinstance(value, (dict, list, bool)) or str(value).strip() == "":
            raise MalformedRecord(f"missing {key}")
        return str(value).strip()

    @staticmethod
    def _optional_id(value: Any) -> Optional[str]:
        """Parent ids: 0, "", None and junk mean no parent."""
        if value is None or isinstance(value, (dict, list, bool)):
            return None
        text = str(value).strip()
        if text in ("", "0"):
            return None
        return text
