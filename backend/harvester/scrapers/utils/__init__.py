"""Scraper utilities for politeness delays, retries, and data normalization."""

from .rate_limiter import PolitenessDelay, run_cancellable
from .normalizer import (
    PriceNormalizer,
    extract_image_urls,
    extract_term_names,
    normalize_origin,
    normalize_price,
    normalize_url,
    strip_html,
    to_absolute_url,
)
from .retry import RETRYABLE_STATUS_CODES, http_retry, is_transient_error


__all__ = [
    # Politeness
    "PolitenessDelay",
    "run_cancellable",
    # Normalization
    "PriceNormalizer",
    "extract_image_urls",
    "extract_term_names",
    "normalize_origin",
    "normalize_price",
    "normalize_url",
    "strip_html",
    "to_absolute_url",
    # Retry
    "RETRYABLE_STATUS_CODES",
    "http_retry",
    "is_transient_error",
]
