"""
app/schemas package marker.
"""

from app.schemas.scraped_products import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkImportRequest,
    BulkImportResponse,
    CandidateListResponse,
    ImportProductRequest,
    ImportProductResponse,
    ImportStatisticsResponse,
    ProductModifications,
    UrlValidationRequest,
    UrlValidationResponse,
)
from app.schemas.scraping_jobs import (
    JobManagementRequest,
    JobManagementResponse,
    JobSettingsPayload,
    MessageResponse,
    ScrapingJobAcceptedResponse,
    ScrapingJobCreateRequest,
    ScrapingJobListResponse,
    ScrapingJobResponse,
)

__all__ = [
    "BulkDeleteRequest",
    "BulkDeleteResponse",
    "BulkImportRequest",
    "BulkImportResponse",
    "CandidateListResponse",
    "ImportProductRequest",
    "ImportProductResponse",
    "ImportStatisticsResponse",
    "JobManagementRequest",
    "JobManagementResponse",
    "JobSettingsPayload",
    "MessageResponse",
    "ProductModifications",
    "ScrapingJobAcceptedResponse",
    "ScrapingJobCreateRequest",
    "ScrapingJobListResponse",
    "ScrapingJobResponse",
    "UrlValidationRequest",
    "UrlValidationResponse",
]
