"""Retry utilities with exponential backoff for page requests."""

import logging

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from harvester.config import settings


logger = structlog.get_logger(__name__)

# Statuses worth another try; 401/403/404 mean the endpoint is unusable
RETRYABLE_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


def is_transient_error(exc: BaseException) -> bool:
    """True for timeouts, connection failures and retryable HTTP statuses."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS_CODES
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


def http_retry(
    attempts: int | None = None,
    wait_max: float | None = None,
    wait_min: float = 1.0,
) -> AsyncRetrying:
    """Build the retry controller used for pagination requests.

    Platform probes are never retried and callers do not use this for them.

    Args:
        attempts: Total attempts including the first (default HTTP_MAX_RETRIES)
        wait_max: Cap on the exponential backoff in seconds
        wait_min: Floor of the exponential backoff in seconds

    Usage:
        async for attempt in http_retry():
            with attempt:
                response = await client.get(url)
                response.raise_for_status()
    """
    attempts = attempts if attempts is not None else settings.HTTP_MAX_RETRIES
    wait_max = wait_max if wait_max is not None else settings.HTTP_RETRY_WAIT_MAX_SECONDS
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=1, min=min(wait_min, wait_max), max=wait_max),
        retry=retry_if_exception(is_transient_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
