"""Harvesting system for storefront JSON APIs.

This package provides:
- Canonical Product/Collection records and one mapper adapter per API shape
- Platform detection, endpoint fallback and pagination
- Factory for looking up mappers by API shape
- HarvestService, the orchestration entry point
"""

from .base import (
    ApiShape,
    BaseShapeAdapter,
    Collection,
    HarvestKind,
    HarvestOptions,
    HarvestResult,
    PartialFailure,
    Platform,
    Product,
    ProductAttribute,
    SiteValidation,
    StockStatus,
)
from .factory import AdapterFactory, adapter_factory, get_adapter_factory
from .session import HarvestSession
from .harvest_service import HarvestService

__all__ = [
    # Base classes
    "BaseShapeAdapter",
    # Data structures
    "ApiShape",
    "Collection",
    "HarvestKind",
    "HarvestOptions",
    "HarvestResult",
    "PartialFailure",
    "Platform",
    "Product",
    "ProductAttribute",
    "SiteValidation",
    "StockStatus",
    # Factory
    "AdapterFactory",
    "adapter_factory",
    "get_adapter_factory",
    # Orchestration
    "HarvestSession",
    "HarvestService",
]
