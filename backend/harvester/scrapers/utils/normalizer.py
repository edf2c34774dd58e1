"""Data normalization utilities for price parsing and field flattening."""

import html
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse, parse_qs, urlencode, urlunparse

import structlog

from harvester.config import settings

logger = structlog.get_logger()


_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_PRICE_CHARS_RE = re.compile(r"[^\d.,]")
_NEGATIVE_RE = re.compile(r"^[^\d]*-")


class PriceNormalizer:
    """Price parsing into canonical major-unit Decimals.

    Handles the representations storefront APIs hand out:
    - "$1,234.56" -> 1234.56
    - "1.234,56 €" -> 1234.56
    - "19,99" -> 19.99
    - 1999 -> 19.99 (whole number above the minor-unit threshold)
    - {"raw": 1999} / {"value": "19.99"}
    """

    @classmethod
    def normalize(cls, raw: Any, threshold: Optional[int] = None) -> Optional[Decimal]:
        """Normalize a raw price to a non-negative Decimal in major units.

        Args:
            raw: String, number, Decimal, {raw, value} dict, or None
            threshold: Whole numbers strictly greater than this are treated
                as minor units and divided by 100. Defaults to
                settings.MINOR_UNIT_THRESHOLD.

        Returns:
            Decimal price, or None if empty, unparseable or negative
        """
        if threshold is None:
            threshold = settings.MINOR_UNIT_THRESHOLD

        try:
            return cls._normalize(raw, threshold)
        except (InvalidOperation, ValueError, TypeError, ArithmeticError) as e:
            logger.debug("price_unparseable", raw=repr(raw)[:80], error=str(e))
            return None

    @classmethod
    def _normalize(cls, raw: Any, threshold: int) -> Optional[Decimal]:
        if raw is None or isinstance(raw, bool):
            return None

        if isinstance(raw, dict):
            for key in ("raw", "value"):
                if raw.get(key) is not None:
                    return cls._normalize(raw[key], threshold)
            return None

        # Already canonical
        if isinstance(raw, Decimal):
            if not raw.is_finite() or raw < 0:
                return None
            return raw

        if isinstance(raw, int):
            if raw < 0:
                return None
            return cls._apply_minor_unit_heuristic(Decimal(raw), raw, threshold)

        if isinstance(raw, float):
            if raw != raw or raw < 0 or raw in (float("inf"), float("-inf")):
                return None
            if raw.is_integer():
                return cls._apply_minor_unit_heuristic(Decimal(int(raw)), raw, threshold)
            return Decimal(str(raw))

        if isinstance(raw, str):
            return cls._parse_string(raw, threshold)

        return None

    @classmethod
    def _parse_string(cls, raw: str, threshold: int) -> Optional[Decimal]:
        text = raw.strip()
        if not text:
            return None
        if _NEGATIVE_RE.match(text):
            return None

        cleaned = _PRICE_CHARS_RE.sub("", text)
        if not any(ch.isdigit() for ch in cleaned):
            return None

        number, is_whole = cls.clean_separators(cleaned)
        if not number:
            return None

        value = Decimal(number)
        if is_whole:
            return cls._apply_minor_unit_heuristic(value, raw, threshold)
        return value

    @staticmethod
    def clean_separators(cleaned: str) -> Tuple[str, bool]:
        """Resolve thousands/decimal separators in a digits-and-separators string.

        Returns:
            Tuple of (plain decimal string, whether it had no decimal part)
        """
        commas = cleaned.count(",")
        dots = cleaned.count(".")

        if commas and dots:
            # Right-most separator is the decimal one
            if cleaned.rfind(",") > cleaned.rfind("."):
                integer, _, fraction = cleaned.rpartition(",")
                integer = integer.replace(".", "").replace(",", "")
            else:
                integer, _, fraction = cleaned.rpartition(".")
                integer = integer.replace(",", "").replace(".", "")
        elif commas == 1:
            integer, _, fraction = cleaned.partition(",")
        elif commas > 1:
            integer, fraction = cleaned.replace(",", ""), ""
        elif dots == 1:
            integer, _, fraction = cleaned.partition(".")
        elif dots > 1:
            integer, fraction = cleaned.replace(".", ""), ""
        else:
            integer, fraction = cleaned, ""

        integer = integer or "0"
        if not integer.isdigit() or (fraction and not fraction.isdigit()):
            return "", False
        if fraction:
            return f"{integer}.{fraction}", False
        return integer, True

    @staticmethod
    def _apply_minor_unit_heuristic(value: Decimal, raw: Any, threshold: int) -> Decimal:
        if value > threshold:
            converted = value / 100
            logger.warning(
                "price_minor_unit_heuristic_applied",
                raw=repr(raw)[:80],
                threshold=threshold,
                converted=str(converted),
            )
            return converted
        return value

    @staticmethod
    def minor_units_to_decimal(value: Any, minor_unit: Any) -> Optional[Decimal]:
        """Convert a minor-unit amount using an explicit currency_minor_unit.

        Args:
            value: Amount in minor units ("1999" or 1999)
            minor_unit: Number of decimal places of the currency (e.g. 2)

        Returns:
            Decimal in major units, or None if either value is unusable
        """
        if value is None or value == "" or isinstance(value, bool):
            return None
        try:
            places = int(minor_unit)
            amount = Decimal(str(value).strip())
        except (TypeError, ValueError, OverflowError, InvalidOperation):
            return None
        if places < 0 or not amount.is_finite() or amount < 0:
            return None
        return amount.scaleb(-places)


def normalize_price(raw: Any, threshold: Optional[int] = None) -> Optional[Decimal]:
    """Shortcut for PriceNormalizer.normalize."""
    return PriceNormalizer.normalize(raw, threshold=threshold)


def strip_html(value: Any) -> str:
    """Remove tags, decode entities, collapse whitespace and trim.

    "<p>Hello <b>World</b></p>" -> "Hello World"
    """
    if value is None:
        return ""
    if isinstance(value, dict):
        # WordPress {"rendered": "..."} fields
        value = value.get("rendered", "")
    text = _TAG_RE.sub("", str(value))
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def to_absolute_url(url_like: Any, origin: str) -> str:
    """Resolve a possibly relative or protocol-relative URL against an origin."""
    if url_like is None:
        return ""
    text = str(url_like).strip()
    if not text:
        return ""
    if text.startswith("//"):
        return f"https:{text}"
    return urljoin(origin.rstrip("/") + "/", text)


def extract_image_urls(value: Any, origin: str) -> Tuple[str, ...]:
    """Flatten the image shapes APIs use into an ordered tuple of absolute URLs.

    Accepts images[].src, a single image {src}, or plain strings; empty and
    duplicate entries are skipped.
    """
    found: List[str] = []
    _collect_images(value, found)
    urls: List[str] = []
    for item in found:
        url = to_absolute_url(item, origin)
        if url and url not in urls:
            urls.append(url)
    return tuple(urls)


def _collect_images(value: Any, out: List[str]) -> None:
    if not value:
        return
    if isinstance(value, str):
        if value.strip():
            out.append(value.strip())
        return
    if isinstance(value, list):
        for item in value:
            _collect_images(item, out)
        return
    if isinstance(value, dict):
        for key in ("src", "source_url", "url", "thumbnail"):
            candidate = value.get(key)
            if isinstance(candidate, str) and candidate.strip():
                out.append(candidate.strip())
                return


def extract_term_names(value: Any) -> Tuple[str, ...]:
    """Map category/tag objects to names, keep plain strings, dedup in order."""
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return ()

    names: List[str] = []
    for item in value:
        if isinstance(item, dict):
            name = item.get("name")
        else:
            name = item
        if name is None or isinstance(name, (dict, list)):
            continue
        name = strip_html(name)
        if name and name not in names:
            names.append(name)
    return tuple(names)


def extract_term_field(value: Any, key: str) -> Tuple[str, ...]:
    """Collect one field (id, slug) from a list of term objects, dedup in order."""
    if not isinstance(value, list):
        return ()
    out: List[str] = []
    for item in value:
        if isinstance(item, dict):
            field_value = item.get(key)
        elif key == "id" and isinstance(item, (int, str)):
            field_value = item
        else:
            field_value = None
        if field_value is None or field_value == "":
            continue
        text = str(field_value)
        if text not in out:
            out.append(text)
    return tuple(out)


def parse_non_negative_int(value: Any) -> Optional[int]:
    """Parse a count or quantity; None for missing, negative or junk values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if number < 0:
        return None
    return number


def unique_strings(values: Iterable[Any]) -> Tuple[str, ...]:
    """Stringify, trim, drop empties and duplicates, keep order."""
    out: List[str] = []
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text and text not in out:
            out.append(text)
    return tuple(out)


def normalize_origin(url: str) -> str:
    """Reduce a storefront URL to scheme://host[:port].

    Raises:
        ValueError: If the URL has no http(s) scheme or host
    """
    parsed = urlparse((url or "").strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Origin must be an absolute http(s) URL: {url!r}")
    return f"{parsed.scheme}://{parsed.netloc}".lower()


def normalize_url(url: str) -> str:
    """Normalize a permalink by removing tracking parameters.

    Args:
        url: URL to normalize

    Returns:
        Normalized URL
    """
    if not url:
        return url

    tracking_params = [
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_content",
        "utm_term",
        "fbclid",
        "gclid",
        "mc_cid",
        "mc_eid",
    ]

    parsed = urlparse(url)
    query_params = parse_qs(parsed.query, keep_blank_values=True)
    filtered_params = {
        k: v for k, v in query_params.items() if k not in tracking_params
    }
    new_query = urlencode(filtered_params, doseq=True)

    return urlunparse(
        (parsed.scheme, parsed.netloc, parsed.path, parsed.params, new_query, "")
    )
