"""Export harvested records as CSV or JSON.

Columns and keys use the canonical camelCase field names. Prices are
written as decimal strings so no precision is lost.
"""

import csv
import io
import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse

import structlog

from harvester.config import settings
from harvester.scrapers.base import Collection, HarvestKind, HarvestResult, Product, Record

logger = structlog.get_logger(__name__)

PRODUCT_COLUMNS = [
    "id",
    "name",
    "description",
    "shortDescription",
    "sku",
    "price",
    "regularPrice",
    "salePrice",
    "onSale",
    "stockStatus",
    "stockQuantity",
    "categories",
    "tags",
    "images",
    "attributes",
    "variationCount",
    "url",
    "dateCreated",
    "dateModified",
]

COLLECTION_COLUMNS = [
    "id",
    "name",
    "slug",
    "description",
    "productCount",
    "parentId",
    "imageUrl",
    "url",
]

MULTI_VALUE_SEPARATOR = "; "

EXPORT_FORMATS = ("csv", "json")


def _price(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else str(value)


def product_to_dict(product: Product) -> Dict[str, Any]:
    """Canonical JSON-ready dict for a Product."""
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "shortDescription": product.short_description,
        "sku": product.sku,
        "price": _price(product.price),
        "regularPrice": _price(product.regular_price),
        "salePrice": _price(product.sale_price),
        "onSale": product.on_sale,
        "stockStatus": product.stock_status.value,
        "stockQuantity": product.stock_quantity,
        "categories": list(product.categories),
        "tags": list(product.tags),
        "images": list(product.images),
        "attributes": [
            {"name": a.name, "options": list(a.options)} for a in product.attributes
        ],
        "variationCount": product.variation_count,
        "url": product.url,
        "dateCreated": product.date_created,
        "dateModified": product.date_modified,
    }


def collection_to_dict(collection: Collection) -> Dict[str, Any]:
    """Canonical JSON-ready dict for a Collection."""
    return {
        "id": collection.id,
        "name": collection.name,
        "slug": collection.slug,
        "description": collection.description,
        "productCount": collection.product_count,
        "parentId": collection.parent_id,
        "imageUrl": collection.image_url,
        "url": collection.url,
    }


def record_to_dict(record: Record) -> Dict[str, Any]:
    if isinstance(record, Product):
        return product_to_dict(record)
    return collection_to_dict(record)


class ExportService:
    """Serializes HarvestResults to CSV/JSON and writes result files."""

    def __init__(self, results_dir: Optional[Union[str, Path]] = None):
        """Initialize export service.

        Args:
            results_dir: Directory for written files (default RESULTS_DIR)
        """
        self.results_dir = Path(results_dir or settings.RESULTS_DIR)
        self.logger = logger.bind(service="export_service")

    def to_rows(self, result: HarvestResult) -> List[Dict[str, Any]]:
        """Flatten records into CSV rows; multi-value cells are joined with "; "."""
        rows = []
        for record in result.items:
            row = record_to_dict(record)
            for key in ("categories", "tags", "images"):
                if key in row:
                    row[key] = MULTI_VALUE_SEPARATOR.join(row[key])
            if "attributes" in row:
                row["attributes"] = MULTI_VALUE_SEPARATOR.join(
                    f"{a['name']}: {', '.join(a['options'])}" for a in row["attributes"]
                )
            if "onSale" in row:
                row["onSale"] = "true" if row["onSale"] else "false"
            rows.append({k: "" if v is None else v for k, v in row.items()})
        return rows

    def to_csv(self, result: HarvestResult) -> str:
        """Render a result as CSV text with a header row."""
        columns = PRODUCT_COLUMNS if result.kind == HarvestKind.PRODUCTS else COLLECTION_COLUMNS
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=columns, quoting=csv.QUOTE_MINIMAL)
        writer.writeheader()
        writer.writerows(self.to_rows(result))
        return buffer.getvalue()

    def to_json(self, result: HarvestResult, indent: Optional[int] = 2) -> str:
        """Render a result as a JSON array of canonical records."""
        return json.dumps(
            [record_to_dict(r) for r in result.items],
            ensure_ascii=False,
            indent=indent,
        )

    def render(self, result: HarvestResult, fmt: str) -> str:
        fmt = fmt.lower()
        if fmt == "csv":
            return self.to_csv(result)
        if fmt == "json":
            return self.to_json(result)
        raise ValueError(f"Unsupported export format: {fmt!r} (expected one of {EXPORT_FORMATS})")

    def filename(self, result: HarvestResult, fmt: str, now: Optional[datetime] = None) -> str:
        """{kind}_{host}_{timestamp}.{fmt}, e.g. products_shop.example.com_20240101T120000Z.csv"""
        host = urlparse(result.origin).netloc.replace(":", "_") or "unknown"
        stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%dT%H%M%SZ")
        return f"{result.kind.value}_{host}_{stamp}.{fmt.lower()}"

    def write(
        self,
        result: HarvestResult,
        fmt: str = "json",
        directory: Optional[Union[str, Path]] = None,
    ) -> Path:
        """Write a result file and return its path.

        Args:
            result: Harvest result to export
            fmt: "csv" or "json"
            directory: Target directory (default: this service's results_dir)
        """
        content = self.render(result, fmt)
        target_dir = Path(directory) if directory is not None else self.results_dir
        target_dir.mkdir(parents=True, exist_ok=True)

        path = target_dir / self.filename(result, fmt)
        path.write_text(content, encoding="utf-8", newline="")

        self.logger.info(
            "export_written",
            path=str(path),
            format=fmt,
            records=len(result.items),
        )
        return path
