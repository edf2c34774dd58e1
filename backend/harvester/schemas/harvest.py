"""Harvest request/response schemas."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from harvester.scrapers.base import HarvestKind, HarvestResult, SiteValidation
from harvester.services.export_service import record_to_dict


class HarvestRequest(BaseModel):
    """Harvest one storefront origin."""

    origin: str = Field(..., description="Storefront URL, e.g. https://shop.example.com")
    kind: HarvestKind = HarvestKind.PRODUCTS
    categories: List[str] = Field(default_factory=list, description="Case-insensitive category names")
    collection: Optional[str] = Field(
        None, description="Restrict products to one category id (WooCommerce) or handle (Shopify)"
    )
    page_size: Optional[int] = Field(None, ge=1, le=250)

    @field_validator("origin")
    @classmethod
    def origin_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("origin must not be blank")
        return v.strip()


class ExportRequest(HarvestRequest):
    """Harvest one origin and return the result as a file."""

    format: Literal["csv", "json"] = "json"


class PartialFailureResponse(BaseModel):
    endpoint: str
    page: int
    reason: str


class EndpointAttemptResponse(BaseModel):
    endpoint: str
    reason: str
    status_code: Optional[int] = None


class HarvestMeta(BaseModel):
    """How a harvest went: which API answered and what was lost on the way."""

    origin: str
    platform: str
    kind: str
    shape: Optional[str] = None
    endpoint: Optional[str] = None
    total: int = 0
    pages_fetched: int = 0
    fallback_attempts: int = 0
    attempts: List[EndpointAttemptResponse] = []
    errors: List[PartialFailureResponse] = []
    skipped: int = 0
    cancelled: bool = False
    complete: bool = True


class HarvestResponse(BaseModel):
    """Harvest response: canonical camelCase records plus run metadata."""

    status: str = "success"
    data: List[Dict[str, Any]]
    meta: HarvestMeta

    @classmethod
    def from_result(cls, result: HarvestResult) -> "HarvestResponse":
        return cls(
            data=[record_to_dict(r) for r in result.items],
            meta=HarvestMeta(
                origin=result.origin,
                platform=result.platform.value,
                kind=result.kind.value,
                shape=result.shape.value if result.shape else None,
                endpoint=result.endpoint,
                total=len(result.items),
                pages_fetched=result.pages_fetched,
                fallback_attempts=result.fallback_attempts,
                attempts=[
                    EndpointAttemptResponse(
                        endpoint=a.endpoint, reason=a.reason, status_code=a.status_code
                    )
                    for a in result.attempts
                ],
                errors=[
                    PartialFailureResponse(endpoint=e.endpoint, page=e.page, reason=e.reason)
                    for e in result.errors
                ],
                skipped=result.skipped,
                cancelled=result.cancelled,
                complete=result.complete,
            ),
        )


class SiteValidationResponse(BaseModel):
    """Platform detection and credential check for one origin."""

    origin: str
    platform: str
    supported: bool
    rest_api_authorized: Optional[bool] = None
    message: str = ""

    @classmethod
    def from_validation(cls, validation: SiteValidation) -> "SiteValidationResponse":
        return cls(
            origin=validation.origin,
            platform=validation.platform.value,
            supported=validation.supported,
            rest_api_authorized=validation.rest_api_authorized,
            message=validation.message,
        )
