"""Pydantic schemas for the StoreHarvest API.

All request/response models are defined here for easy import.
"""

from harvester.schemas.common import ApiResponse, AttemptDetail, ErrorDetail, ErrorResponse
from harvester.schemas.harvest import (
    EndpointAttemptResponse,
    ExportRequest,
    HarvestMeta,
    HarvestRequest,
    HarvestResponse,
    PartialFailureResponse,
    SiteValidationResponse,
)
from harvester.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "AttemptDetail",
    "ErrorDetail",
    "ErrorResponse",
    # Harvest
    "HarvestRequest",
    "ExportRequest",
    "HarvestMeta",
    "HarvestResponse",
    "PartialFailureResponse",
    "EndpointAttemptResponse",
    "SiteValidationResponse",
    # Health
    "HealthCheckResponse",
]
