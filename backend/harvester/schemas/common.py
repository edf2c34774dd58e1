"""Response envelopes shared by every harvester endpoint."""

from typing import Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Standard API response envelope."""

    status: str = "success"
    data: T


class AttemptDetail(BaseModel):
    """One abandoned candidate endpoint, reported with endpoint_exhausted errors."""

    endpoint: str
    reason: str
    status_code: int | None = None


class ErrorDetail(BaseModel):
    code: str
    message: str
    origin: str | None = None
    attempts: List[AttemptDetail] | None = None


class ErrorResponse(BaseModel):
    """Standard API error response."""

    status: str = "error"
    error: ErrorDetail
