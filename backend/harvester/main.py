"""StoreHarvest -- FastAPI Application Entry Point.

Run with: cd backend && uvicorn harvester.main:app --port 8000
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from harvester.api.v1.router import api_v1_router
from harvester.config import settings
from harvester.core.exceptions import (
    EndpointExhausted,
    HarvesterException,
    InvalidOrigin,
    UnsupportedPlatform,
)
from harvester.core.logging import configure_logging
from harvester.schemas import AttemptDetail, ErrorDetail, ErrorResponse
from harvester.scrapers.register_adapters import register_all_adapters

logger = structlog.get_logger(__name__)

# Exception type -> (HTTP status, error code)
ERROR_STATUS = {
    InvalidOrigin: (400, "invalid_origin"),
    UnsupportedPlatform: (422, "unsupported_platform"),
    EndpointExhausted: (502, "endpoint_exhausted"),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    configure_logging()

    logger.info("api_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

    register_all_adapters()

    yield

    logger.info("api_stopping")


app = FastAPI(
    title="StoreHarvest API",
    description="Product and collection harvesting for WooCommerce and Shopify storefronts",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.exception_handler(HarvesterException)
async def harvester_exception_handler(request: Request, exc: HarvesterException):
    """Render harvester errors in the standard error envelope."""
    status_code, code = 500, "harvest_failed"
    for exc_type, mapped in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            status_code, code = mapped
            break

    logger.warning(
        "request_failed",
        path=request.url.path,
        status_code=status_code,
        error_type=exc.__class__.__name__,
        error=exc.message,
    )
    attempts = None
    if isinstance(exc, EndpointExhausted):
        attempts = [
            AttemptDetail(endpoint=a.endpoint, reason=a.reason, status_code=a.status_code)
            for a in exc.attempts
        ]
    body = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=exc.message,
            origin=getattr(exc, "origin", None),
            attempts=attempts,
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "StoreHarvest API",
        "version": "1.0.0",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
