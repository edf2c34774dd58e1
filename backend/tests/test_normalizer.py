"""Tests for price normalization and field-flattening helpers."""

from decimal import Decimal

import pytest

from harvester.scrapers.utils.normalizer import (
    PriceNormalizer,
    extract_image_urls,
    extract_term_names,
    normalize_origin,
    normalize_price,
    normalize_url,
    parse_non_negative_int,
    strip_html,
    to_absolute_url,
)

ORIGIN = "https://shop.example.com"


# ============================================================================
# TESTS: PRICE NORMALIZER
# ============================================================================

class TestPriceNormalizer:
    """Tests for PriceNormalizer."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("1.234,56", Decimal("1234.56")),
            ("19.99", Decimal("19.99")),
            ({"raw": 1999}, Decimal("19.99")),
            ({"raw": 45}, Decimal("45")),
            ("$1,234.56", Decimal("1234.56")),
            ("1.234,56 €", Decimal("1234.56")),
            ("19,99", Decimal("19.99")),
            ("1,234,567", Decimal("12345.67")),
            ({"value": "12.50"}, Decimal("12.50")),
            (12.5, Decimal("12.5")),
            ("USD 250", Decimal("250")),
        ],
    )
    def test_normalize(self, raw, expected):
        """Test the supported price representations."""
        assert PriceNormalizer.normalize(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "free", "-5.00", -3, {}, [], True])
    def test_unusable_input_returns_none(self, raw):
        """Test empty, unparseable and negative input yields None, never an exception."""
        assert PriceNormalizer.normalize(raw) is None

    def test_idempotent_on_normalized_values(self):
        """Test normalizing an already-normalized Decimal does not divide again."""
        once = normalize_price({"raw": 199900})
        assert once == Decimal("1999")
        assert normalize_price(once) == once
        assert normalize_price(normalize_price("2500")) == Decimal("25")

    def test_threshold_is_configurable(self):
        """Test a raised threshold keeps large whole-dollar prices intact."""
        assert normalize_price(1999, threshold=5000) == Decimal("1999")
        assert normalize_price(1999) == Decimal("19.99")

    def test_threshold_is_strict(self):
        """Test a value equal to the threshold is not divided."""
        assert normalize_price(1000) == Decimal("1000")
        assert normalize_price(1001) == Decimal("10.01")

    def test_decimal_part_disables_heuristic(self):
        """Test prices with a decimal part are never treated as minor units."""
        assert normalize_price("1999.00") == Decimal("1999.00")

    def test_whole_number_float_uses_heuristic(self):
        """Test a JSON float with no fractional part is treated like an int."""
        assert normalize_price(1999.0) == Decimal("19.99")
        assert normalize_price(45.0) == Decimal("45")
        assert normalize_price(1999.5) == Decimal("1999.5")

    def test_minor_units_to_decimal(self):
        """Test explicit currency_minor_unit conversion."""
        assert PriceNormalizer.minor_units_to_decimal("1999", 2) == Decimal("19.99")
        assert PriceNormalizer.minor_units_to_decimal(1500, 0) == Decimal("1500")
        assert PriceNormalizer.minor_units_to_decimal("12345", 3) == Decimal("12.345")
        assert PriceNormalizer.minor_units_to_decimal("", 2) is None
        assert PriceNormalizer.minor_units_to_decimal("abc", 2) is None
        assert PriceNormalizer.minor_units_to_decimal("100", None) is None
        assert PriceNormalizer.minor_units_to_decimal("100", float("inf")) is None
        assert PriceNormalizer.minor_units_to_decimal(float("inf"), 2) is None


# ============================================================================
# TESTS: FIELD HELPERS
# ============================================================================

class TestStripHtml:
    """Tests for strip_html."""

    def test_strip_tags_keeps_single_space(self):
        """Test tags are removed and words keep one separating space."""
        assert strip_html("<p>Hello <b>World</b></p>") == "Hello World"

    def test_collapses_whitespace_and_decodes_entities(self):
        """Test whitespace runs collapse and entities decode."""
        assert strip_html("  <p>Fish &amp;\n\n  Chips</p>  ") == "Fish & Chips"

    def test_rendered_dict_and_none(self):
        """Test WordPress rendered fields and missing values."""
        assert strip_html({"rendered": "<h2>Title</h2>"}) == "Title"
        assert strip_html(None) == ""


class TestFieldFlattening:
    """Tests for image, term and URL helpers."""

    def test_extract_image_urls_from_mixed_shapes(self):
        """Test images[].src, plain strings and relative URLs flatten in order."""
        images = [
            {"src": "https://cdn.example.com/a.jpg"},
            None,
            {"src": ""},
            "/wp-content/b.jpg",
            {"src": "https://cdn.example.com/a.jpg"},
            "//cdn.example.com/c.jpg",
        ]
        assert extract_image_urls(images, ORIGIN) == (
            "https://cdn.example.com/a.jpg",
            "https://shop.example.com/wp-content/b.jpg",
            "https://cdn.example.com/c.jpg",
        )

    def test_extract_image_urls_single_object(self):
        """Test a single image object ({src}) is accepted."""
        assert extract_image_urls({"src": "https://x.test/i.png"}, ORIGIN) == ("https://x.test/i.png",)
        assert extract_image_urls(None, ORIGIN) == ()

    def test_extract_term_names_dedups_in_order(self):
        """Test term objects map to names, strings pass through, duplicates drop."""
        terms = [{"name": "Shoes"}, "Sale", {"name": "Shoes"}, {"id": 4}, {"name": "<b>New</b>"}]
        assert extract_term_names(terms) == ("Shoes", "Sale", "New")

    def test_extract_term_names_comma_string(self):
        """Test Shopify-style comma-separated tags."""
        assert extract_term_names("cotton, summer,cotton") == ("cotton", "summer")
        assert extract_term_names(None) == ()

    def test_to_absolute_url(self):
        """Test relative and protocol-relative URL resolution."""
        assert to_absolute_url("/product/a/", ORIGIN) == "https://shop.example.com/product/a/"
        assert to_absolute_url("//cdn.test/x.jpg", ORIGIN) == "https://cdn.test/x.jpg"
        assert to_absolute_url("https://other.test/y", ORIGIN) == "https://other.test/y"
        assert to_absolute_url(None, ORIGIN) == ""

    def test_normalize_origin(self):
        """Test origins reduce to scheme://host and bad input is rejected."""
        assert normalize_origin("https://Shop.Example.com/shop/?page=2") == "https://shop.example.com"
        assert normalize_origin("http://localhost:8080/") == "http://localhost:8080"
        with pytest.raises(ValueError):
            normalize_origin("shop.example.com")
        with pytest.raises(ValueError):
            normalize_origin("ftp://shop.example.com")

    def test_normalize_url_strips_tracking(self):
        """Test tracking parameters are removed from permalinks."""
        url = "https://shop.example.com/p/a/?utm_source=x&color=red&gclid=1"
        assert normalize_url(url) == "https://shop.example.com/p/a/?color=red"


class TestParseNonNegativeInt:
    """Tests for parse_non_negative_int."""

    @pytest.mark.parametrize("value, expected", [(3, 3), ("12", 12), (4.0, 4), (0, 0)])
    def test_counts(self, value, expected):
        """Test ints, numeric strings and whole floats parse."""
        assert parse_non_negative_int(value) == expected

    @pytest.mark.parametrize(
        "value", [None, True, -1, "many", float("inf"), float("-inf"), float("nan"), []]
    )
    def test_junk_returns_none(self, value):
        """Test missing, negative, non-finite and junk values yield None."""
        assert parse_non_negative_int(value) is None
