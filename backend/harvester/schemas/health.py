"""Health check schemas."""

from typing import List

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str
    environment: str
    adapters: List[str] = []
