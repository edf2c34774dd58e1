"""Tests for the command-line harvester."""

import json

import httpx
import pytest

from conftest import ORIGIN, shopify_product, woo_store_product
from harvester.cli import build_parser, run

STORE_V1 = "/wp-json/wc/store/v1/products"


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test a bare origin harvests products to JSON."""
        args = build_parser().parse_args([ORIGIN])

        assert args.origins == [ORIGIN]
        assert args.kind == "products"
        assert args.format == "json"
        assert args.category == []
        assert args.detect_only is False

    def test_repeatable_category(self):
        """Test --category can be given several times."""
        args = build_parser().parse_args([ORIGIN, "--category", "Shoes", "--category", "Hats"])
        assert args.category == ["Shoes", "Hats"]

    def test_rejects_unknown_format(self):
        """Test --format only accepts csv or json."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([ORIGIN, "--format", "xml"])


class TestRun:
    """Tests for run()."""

    async def test_writes_result_file(self, storefront, make_session, tmp_path, capsys):
        """Test a successful harvest writes one JSON file and exits 0."""
        storefront.add(STORE_V1, [woo_store_product(1), woo_store_product(2)])
        args = build_parser().parse_args([ORIGIN, "--output-dir", str(tmp_path)])

        exit_code = await run(args, session_factory=make_session)

        assert exit_code == 0
        files = list(tmp_path.glob("products_shop.example.com_*.json"))
        assert len(files) == 1
        assert [r["id"] for r in json.loads(files[0].read_text(encoding="utf-8"))] == ["1", "2"]
        assert "Product 1" in capsys.readouterr().out

    async def test_csv_collections(self, storefront, make_session, tmp_path):
        """Test --kind collections --format csv writes a collections CSV."""
        storefront.add("/products.json", {"products": []})
        storefront.add("/collections.json", {"collections": [{"id": 1, "title": "All", "handle": "all"}]})
        args = build_parser().parse_args(
            [ORIGIN, "--kind", "collections", "--format", "csv", "--output-dir", str(tmp_path)]
        )

        assert await run(args, session_factory=make_session) == 0
        files = list(tmp_path.glob("collections_*.csv"))
        assert len(files) == 1
        assert "All" in files[0].read_text(encoding="utf-8")

    async def test_collection_members(self, storefront, make_session, tmp_path):
        """Test --collection harvests one Shopify collection's products."""
        storefront.add("/products.json", {"products": []})
        storefront.add("/collections/summer/products.json", {"products": [shopify_product(1)]})
        args = build_parser().parse_args([ORIGIN, "--collection", "summer", "--output-dir", str(tmp_path)])

        assert await run(args, session_factory=make_session) == 0
        data = json.loads(next(tmp_path.glob("*.json")).read_text(encoding="utf-8"))
        assert [r["name"] for r in data] == ["Tee 1"]

    async def test_no_write(self, storefront, make_session, tmp_path):
        """Test --no-write prints only."""
        storefront.add(STORE_V1, [woo_store_product(1)])
        args = build_parser().parse_args([ORIGIN, "--no-write", "--output-dir", str(tmp_path)])

        assert await run(args, session_factory=make_session) == 0
        assert list(tmp_path.iterdir()) == []

    async def test_failed_origin_exit_code(self, storefront, make_session, tmp_path, capsys):
        """Test a failing origin among several exits 1 but still writes the others."""

        def store(request):
            if request.url.host == "good.example.com":
                return httpx.Response(200, json=[woo_store_product(1)])
            return httpx.Response(404)

        storefront.add(STORE_V1, store)
        args = build_parser().parse_args(
            ["https://good.example.com", "https://bad.example.com", "--output-dir", str(tmp_path)]
        )

        assert await run(args, session_factory=make_session) == 1
        assert len(list(tmp_path.glob("products_good.example.com_*.json"))) == 1
        assert "bad.example.com" in capsys.readouterr().out

    async def test_detect_only(self, storefront, make_session, capsys):
        """Test --detect-only prints the platform and exits 0 for a supported origin."""
        storefront.add("/products.json", {"products": []})
        args = build_parser().parse_args([ORIGIN, "--detect-only"])

        assert await run(args, session_factory=make_session) == 0
        assert "shopify" in capsys.readouterr().out

    async def test_detect_only_unsupported(self, make_session):
        """Test --detect-only exits 1 when nothing answers."""
        args = build_parser().parse_args([ORIGIN, "--detect-only"])
        assert await run(args, session_factory=make_session) == 1
