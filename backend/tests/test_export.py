"""Tests for CSV/JSON export."""

import csv
import io
import json
from datetime import datetime, timezone
from decimal import Decimal

import jsonschema
import pytest

from harvester.scrapers.base import (
    Collection,
    HarvestKind,
    HarvestResult,
    Platform,
    Product,
    ProductAttribute,
    StockStatus,
)
from harvester.services.export_service import (
    COLLECTION_COLUMNS,
    PRODUCT_COLUMNS,
    ExportService,
    product_to_dict,
)

PRODUCT_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "required": PRODUCT_COLUMNS,
        "properties": {
            "id": {"type": "string"},
            "name": {"type": "string"},
            "price": {"type": ["string", "null"], "pattern": r"^\d+(\.\d+)?$"},
            "regularPrice": {"type": ["string", "null"]},
            "salePrice": {"type": ["string", "null"]},
            "onSale": {"type": "boolean"},
            "stockStatus": {"enum": ["in_stock", "out_of_stock", "unknown"]},
            "stockQuantity": {"type": ["integer", "null"], "minimum": 0},
            "categories": {"type": "array", "items": {"type": "string"}},
            "tags": {"type": "array", "items": {"type": "string"}},
            "images": {"type": "array", "items": {"type": "string"}},
            "attributes": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["name", "options"],
                    "properties": {
                        "name": {"type": "string"},
                        "options": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
            "variationCount": {"type": "integer", "minimum": 0},
        },
    },
}


@pytest.fixture
def product() -> Product:
    return Product(
        id="12",
        name='Chair, "Oak"',
        url="https://shop.example.com/product/chair/",
        description="Line one\nLine two",
        sku="CH-12",
        price=Decimal("149.00"),
        regular_price=Decimal("199.00"),
        sale_price=Decimal("149.00"),
        on_sale=True,
        stock_status=StockStatus.IN_STOCK,
        stock_quantity=3,
        categories=("Furniture", "Chairs"),
        tags=("Oak",),
        images=("https://cdn.example.com/a.jpg", "https://cdn.example.com/b.jpg"),
        attributes=(ProductAttribute("Finish", ("Natural", "Dark")),),
        variation_count=2,
    )


@pytest.fixture
def result(product) -> HarvestResult:
    bare = Product(id="13", name="Stool")
    return HarvestResult(
        origin="https://shop.example.com",
        platform=Platform.WOOCOMMERCE,
        kind=HarvestKind.PRODUCTS,
        items=(product, bare),
    )


class TestCsvExport:
    """Tests for CSV rendering."""

    def test_header_and_quoting(self, result):
        """Test commas, quotes and newlines survive a CSV round trip."""
        text = ExportService().to_csv(result)
        rows = list(csv.DictReader(io.StringIO(text)))

        assert text.splitlines()[0].split(",") == PRODUCT_COLUMNS
        assert rows[0]["name"] == 'Chair, "Oak"'
        assert rows[0]["description"] == "Line one\nLine two"
        assert len(rows) == 2

    def test_multi_value_cells(self, result):
        """Test lists are joined with "; " and attributes rendered as name: options."""
        row = ExportService().to_rows(result)[0]

        assert row["categories"] == "Furniture; Chairs"
        assert row["images"] == "https://cdn.example.com/a.jpg; https://cdn.example.com/b.jpg"
        assert row["attributes"] == "Finish: Natural, Dark"
        assert row["onSale"] == "true"
        assert row["price"] == "149.00"

    def test_missing_values_are_empty_cells(self, result):
        """Test None prices and quantities become empty strings."""
        row = ExportService().to_rows(result)[1]

        assert row["price"] == ""
        assert row["stockQuantity"] == ""
        assert row["categories"] == ""
        assert row["onSale"] == "false"

    def test_collections_use_collection_columns(self):
        """Test collection results use the collection column set."""
        collections = HarvestResult(
            origin="https://shop.example.com",
            platform=Platform.SHOPIFY,
            kind=HarvestKind.COLLECTIONS,
            items=(Collection(id="55", name="Summer", slug="summer", product_count=8),),
        )
        text = ExportService().to_csv(collections)
        rows = list(csv.DictReader(io.StringIO(text)))

        assert list(rows[0].keys()) == COLLECTION_COLUMNS
        assert rows[0]["productCount"] == "8"
        assert rows[0]["parentId"] == ""


class TestJsonExport:
    """Tests for JSON rendering."""

    def test_matches_schema(self, result):
        """Test JSON output validates against the canonical record schema."""
        data = json.loads(ExportService().to_json(result))
        jsonschema.validate(data, PRODUCT_SCHEMA)
        assert all(list(item) == PRODUCT_COLUMNS for item in data)

    def test_prices_are_decimal_strings(self, product):
        """Test prices keep their exact decimal representation."""
        data = product_to_dict(product)
        assert data["price"] == "149.00"
        assert data["attributes"] == [{"name": "Finish", "options": ["Natural", "Dark"]}]

    def test_non_ascii_kept(self):
        """Test non-ASCII names are written as-is."""
        result = HarvestResult(
            origin="https://shop.example.com",
            platform=Platform.WOOCOMMERCE,
            kind=HarvestKind.PRODUCTS,
            items=(Product(id="1", name="Café crème"),),
        )
        assert "Café crème" in ExportService().to_json(result)

    def test_unknown_format(self, result):
        """Test unsupported formats are rejected."""
        with pytest.raises(ValueError):
            ExportService().render(result, "xml")


class TestWrite:
    """Tests for writing result files."""

    def test_filename(self, result):
        """Test filenames carry kind, host and UTC timestamp."""
        now = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        name = ExportService().filename(result, "CSV", now=now)
        assert name == "products_shop.example.com_20240102T030405Z.csv"

    def test_port_in_host(self):
        """Test the port separator is made filename-safe."""
        result = HarvestResult(
            origin="http://localhost:8080", platform=Platform.SHOPIFY, kind=HarvestKind.COLLECTIONS
        )
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert ExportService().filename(result, "json", now=now).startswith("collections_localhost_8080_")

    @pytest.mark.parametrize("fmt", ["csv", "json"])
    def test_write_creates_directory(self, tmp_path, result, fmt):
        """Test write() creates the target directory and returns the file path."""
        target = tmp_path / "out" / "nested"
        path = ExportService(results_dir=target).write(result, fmt)

        assert path.parent == target
        assert path.suffix == f".{fmt}"
        assert "Stool" in path.read_text(encoding="utf-8")
