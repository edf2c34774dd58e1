"""HTTP client for storefront JSON APIs.

Wraps httpx.AsyncClient with the harvester's headers, timeouts, retry
policy and error classification. Every failure surfaces as NetworkError
with a short reason so the fallback chain can decide what to do next.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import httpx
import structlog

from harvester.config import settings
from harvester.core.exceptions import NetworkError
from harvester.scrapers.utils.retry import http_retry


logger = structlog.get_logger(__name__)


STATUS_REASONS = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
}


def status_reason(status_code: int) -> str:
    """Short failure reason for a non-2xx status code."""
    return STATUS_REASONS.get(status_code, f"http_{status_code}")


@dataclass(frozen=True)
class FetchResponse:
    """A decoded JSON response."""

    url: str
    status_code: int
    data: Any
    headers: httpx.Headers

    def header_int(self, name: str) -> Optional[int]:
        """Integer value of a response header, or None if absent or junk."""
        value = self.headers.get(name)
        if value is None:
            return None
        try:
            return int(str(value).strip())
        except ValueError:
            return None


class StorefrontClient:
    """Async JSON GET client shared by the detector and the paginator.

    One client serves one harvest session. It does not parallelize: callers
    await each request before issuing the next.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        timeout: Optional[float] = None,
        bearer_token: Optional[str] = None,
        basic_auth: Optional[Tuple[str, str]] = None,
        user_agent: Optional[str] = None,
        retry_attempts: Optional[int] = None,
        retry_wait_max: Optional[float] = None,
    ):
        """Initialize the client.

        Args:
            http_client: Existing httpx.AsyncClient (tests inject one built on
                httpx.MockTransport). Created and owned here when omitted.
            timeout: Per-request timeout in seconds (default REQUEST_TIMEOUT_SECONDS)
            bearer_token: Sent as "Authorization: Bearer <token>"
            basic_auth: WooCommerce REST consumer key/secret
            user_agent: User-Agent header (default USER_AGENT)
            retry_attempts: Attempts per page request (default HTTP_MAX_RETRIES)
            retry_wait_max: Backoff cap in seconds (default HTTP_RETRY_WAIT_MAX_SECONDS)
        """
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self.retry_attempts = retry_attempts
        self.retry_wait_max = retry_wait_max
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)

        self.headers: Dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent or settings.USER_AGENT,
        }
        if bearer_token:
            self.headers["Authorization"] = f"Bearer {bearer_token}"
        self.basic_auth = basic_auth

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def probe(self, url: str, timeout: Optional[float] = None) -> Optional[int]:
        """Issue a single GET without retries.

        Returns:
            The response status code, or None if the request failed outright
        """
        try:
            response = await self._client.get(
                url,
                headers=self.headers,
                timeout=timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS,
            )
        except httpx.HTTPError as e:
            logger.debug("probe_failed", url=url, error=str(e) or e.__class__.__name__)
            return None
        return response.status_code

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        *,
        retry: bool = True,
        auth: bool = False,
    ) -> FetchResponse:
        """GET a URL and decode its JSON body.

        Args:
            url: Absolute URL
            params: Query parameters
            retry: Retry transient failures (timeouts, 429, 5xx)
            auth: Attach the WooCommerce basic-auth credentials, if configured

        Returns:
            FetchResponse with the decoded body

        Raises:
            NetworkError: On transport failure, timeout, non-2xx status or
                a body that is not JSON
        """
        request_auth = httpx.BasicAuth(*self.basic_auth) if auth and self.basic_auth else None
        attempts = self.retry_attempts if retry else 1

        try:
            async for attempt in http_retry(attempts=attempts, wait_max=self.retry_wait_max):
                with attempt:
                    response = await self._client.get(
                        url,
                        params=params,
                        headers=self.headers,
                        auth=request_auth,
                        timeout=self.timeout,
                    )
                    response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            raise NetworkError(
                str(e.request.url),
                status_reason(status_code),
                status_code=status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise NetworkError(url, "timeout", detail=str(e)) from e
        except httpx.HTTPError as e:
            raise NetworkError(url, "network", detail=str(e) or e.__class__.__name__) from e

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
            raise NetworkError(
                str(response.request.url),
                "malformed_body",
                status_code=response.status_code,
                detail=str(e),
            ) from e

        return FetchResponse(
            url=str(response.request.url),
            status_code=response.status_code,
            data=data,
            headers=response.headers,
        )
