"""FastAPI dependency injection providers."""

from typing import AsyncGenerator

from harvester.scrapers.harvest_service import HarvestService
from harvester.services.export_service import ExportService


async def get_harvest_service() -> AsyncGenerator[HarvestService, None]:
    """Yield a harvest service with a fresh session for request-scoped usage.

    The session (and its HTTP client and platform cache) is closed when the
    request finishes.
    """
    service = HarvestService()
    try:
        yield service
    finally:
        await service.aclose()


def get_export_service() -> ExportService:
    return ExportService()
