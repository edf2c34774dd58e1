"""Custom exception classes for the harvester."""

from typing import List, Optional, Sequence


class HarvesterException(Exception):
    """Base exception for all harvester errors."""

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(self.message)


class UnsupportedPlatform(HarvesterException):
    """Raised when an origin answers none of the known platform probes."""

    def __init__(self, origin: str):
        self.origin = origin
        super().__init__(f"No supported commerce platform detected at {origin}")


class EndpointUnusable(HarvesterException):
    """Raised when the first page of a candidate endpoint cannot be used.

    Internal to the fallback chain; callers see EndpointExhausted instead.
    """

    def __init__(self, endpoint: str, reason: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Endpoint {endpoint} unusable: {reason}")


class EndpointExhausted(HarvesterException):
    """Raised when every candidate endpoint for a platform/kind pair failed."""

    def __init__(self, platform: str, kind: str, attempts: Sequence):
        self.platform = platform
        self.kind = kind
        self.attempts = list(attempts)
        tried = ", ".join(f"{a.endpoint} ({a.reason})" for a in self.attempts) or "none"
        super().__init__(
            f"All {kind} endpoints failed for platform {platform}: {tried}"
        )


class Cancelled(HarvesterException):
    """Raised inside the fetch layer when a harvest's cancel signal is set."""

    def __init__(self, origin: str = ""):
        self.origin = origin
        super().__init__(f"Harvest cancelled for {origin}" if origin else "Harvest cancelled")


class NetworkError(HarvesterException):
    """Raised when a request does not produce a usable JSON response.

    reason is a short classification: "timeout", "network", "http_<status>"
    (with status_code set) or "malformed_body".
    """

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None, detail: str = ""):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.detail = detail
        message = f"Network error for {url}: {reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedRecord(HarvesterException):
    """Raised by a mapper when a raw record has an unexpected shape."""

    def __init__(self, reason: str, record_id: Optional[str] = None):
        self.reason = reason
        self.record_id = record_id
        super().__init__(f"Malformed record {record_id or '?'}: {reason}")


class InvalidOrigin(HarvesterException):
    """Raised when an origin is not an absolute http(s) URL."""

    def __init__(self, origin: str):
        self.origin = origin
        super().__init__(f"Origin must be an absolute http(s) URL: {origin!r}")


__all__: List[str] = [
    "HarvesterException",
    "UnsupportedPlatform",
    "EndpointUnusable",
    "EndpointExhausted",
    "Cancelled",
    "NetworkError",
    "MalformedRecord",
    "InvalidOrigin",
]
