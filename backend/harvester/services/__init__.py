"""Services module for result handling outside the harvesting core.

Services here turn HarvestResults into files and payloads; the harvest
orchestration itself lives in harvester.scrapers.harvest_service.
"""

from harvester.services.export_service import (
    COLLECTION_COLUMNS,
    PRODUCT_COLUMNS,
    ExportService,
    record_to_dict,
)

__all__ = [
    "COLLECTION_COLUMNS",
    "PRODUCT_COLUMNS",
    "ExportService",
    "record_to_dict",
]
