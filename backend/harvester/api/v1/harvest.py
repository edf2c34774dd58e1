"""Harvest API endpoints."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from harvester.dependencies import get_export_service, get_harvest_service
from harvester.scrapers.base import HarvestOptions, HarvestResult
from harvester.scrapers.harvest_service import HarvestService
from harvester.schemas import (
    ApiResponse,
    ExportRequest,
    HarvestRequest,
    HarvestResponse,
    SiteValidationResponse,
)
from harvester.services.export_service import ExportService, product_to_dict

router = APIRouter()

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "json": "application/json",
}


async def _run_harvest(service: HarvestService, request: HarvestRequest) -> HarvestResult:
    options = HarvestOptions(
        category_filter=tuple(request.categories),
        page_size=request.page_size,
    )
    if request.collection:
        return await service.harvest_collection_products(request.origin, request.collection, options)
    return await service.harvest(request.origin, request.kind, options)


@router.post("/harvest", response_model=HarvestResponse)
async def harvest(
    request: HarvestRequest,
    service: HarvestService = Depends(get_harvest_service),
):
    """Harvest all products or collections of a storefront.

    Later-page failures do not fail the request; they are listed in
    meta.errors and meta.complete is false.
    """
    result = await _run_harvest(service, request)
    return HarvestResponse.from_result(result)


@router.get("/detect", response_model=ApiResponse)
async def detect(
    origin: str = Query(..., min_length=1, description="Storefront URL"),
    service: HarvestService = Depends(get_harvest_service),
):
    """Detect the platform behind an origin and check configured credentials."""
    validation = await service.validate_site(origin)
    return ApiResponse(data=SiteValidationResponse.from_validation(validation))


@router.get("/products/{product_id}", response_model=ApiResponse)
async def get_product(
    product_id: str,
    origin: str = Query(..., min_length=1, description="Storefront URL"),
    service: HarvestService = Depends(get_harvest_service),
):
    """Look up one product by id (WooCommerce) or handle (Shopify)."""
    product = await service.fetch_product(origin, product_id)
    return ApiResponse(data=product_to_dict(product))


@router.post("/export")
async def export(
    request: ExportRequest,
    service: HarvestService = Depends(get_harvest_service),
    exporter: ExportService = Depends(get_export_service),
):
    """Harvest an origin and return the records as a CSV or JSON download."""
    result = await _run_harvest(service, request)
    content = exporter.render(result, request.format)
    filename = exporter.filename(result, request.format)
    return Response(
        content=content,
        media_type=MEDIA_TYPES[request.format],
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Harvest-Complete": "true" if result.complete else "false",
        },
    )
