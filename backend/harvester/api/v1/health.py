"""Health check endpoint."""

from fastapi import APIRouter

from harvester.config import settings
from harvester.schemas import HealthCheckResponse
from harvester.scrapers.factory import get_adapter_factory

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Return service health status and the registered API-shape adapters."""
    shapes = [s.value for s in get_adapter_factory().get_registered_shapes()]
    return HealthCheckResponse(
        status="ok" if shapes else "degraded",
        environment=settings.ENVIRONMENT,
        adapters=shapes,
    )
