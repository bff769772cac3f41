"""
app/domain package marker.
"""

from app.domain.scraping import (
    Availability,
    BulkItemError,
    BulkOperationResult,
    ImportStatistics,
    JobSettings,
    ScrapedProductCandidate,
    ScrapingJobRecord,
    StoredCandidate,
    UrlResultStatus,
    UrlScrapeResult,
    UrlValidationResult,
)

__all__ = [
    "Availability",
    "BulkItemError",
    "BulkOperationResult",
    "ImportStatistics",
    "JobSettings",
    "ScrapedProductCandidate",
    "ScrapingJobRecord",
    "StoredCandidate",
    "UrlResultStatus",
    "UrlScrapeResult",
    "UrlValidationResult",
]
