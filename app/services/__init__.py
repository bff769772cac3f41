"""
app/services package marker.
"""

from app.services.bulk_import_service import (
    BulkImportCoordinator,
    build_product_fields,
    get_bulk_import_coordinator,
)
from app.services.scraping_job_orchestrator import (
    ManagementAction,
    ManagementOutcome,
    ScrapingJobOrchestrator,
    get_scraping_job_orchestrator,
)
from app.services.stuck_job_reconciler import StuckJobReconciler, get_stuck_job_reconciler

__all__ = [
    "BulkImportCoordinator",
    "build_product_fields",
    "get_bulk_import_coordinator",
    "ManagementAction",
    "ManagementOutcome",
    "ScrapingJobOrchestrator",
    "get_scraping_job_orchestrator",
    "StuckJobReconciler",
    "get_stuck_job_reconciler",
]
