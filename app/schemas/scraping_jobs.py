"""
Schemas for scraping job submission, status and management endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from app.domain.scraping import MAX_MAX_IMAGES, MIN_MAX_IMAGES, ScrapingJobRecord


class JobSettingsPayload(BaseModel):
    auto_import: bool = False
    default_status: Literal["draft", "active"] = "draft"
    validate_images: bool = True
    max_images: int = Field(default=8, ge=MIN_MAX_IMAGES, le=MAX_MAX_IMAGES)
    exclude_out_of_stock: bool = True
    override_existing: bool = False
    download_images: bool = False
    use_professional_apis: bool = True
    use_ai_enhancement: bool = True
    category_id: str | None = None


class ScrapingJobCreateRequest(BaseModel):
    urls: list[str] = Field(default_factory=list)
    platform: str | None = None
    settings: JobSettingsPayload | None = None


class ScrapingJobAcceptedResponse(BaseModel):
    job_id: str
    status: str
    total_urls: int
    platform: str
    message: str


class ScrapingJobResponse(BaseModel):
    job_id: str
    urls: list[str]
    platform: str
    settings: dict[str, Any]
    status: str
    total_urls: int
    processed_urls: int
    successful_scrapes: int
    failed_scrapes: int
    imported_products: int
    progress_percent: float
    results: list[dict[str, Any]] = Field(default_factory=list)
    error_message: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_record(cls, job: ScrapingJobRecord) -> ScrapingJobResponse:
        progress = 0.0
        if job.total_urls:
            progress = round(job.processed_urls * 100.0 / job.total_urls, 1)
        return cls(
            job_id=job.id,
            urls=job.urls,
            platform=job.platform,
            settings=job.settings.to_dict(),
            status=job.status,
            total_urls=job.total_urls,
            processed_urls=job.processed_urls,
            successful_scrapes=job.successful_scrapes,
            failed_scrapes=job.failed_scrapes,
            imported_products=job.imported_products,
            progress_percent=progress,
            results=job.results,
            error_message=job.error_message,
            created_by=job.created_by,
            created_at=job.created_at,
            updated_at=job.updated_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )


class ScrapingJobListResponse(BaseModel):
    jobs: list[ScrapingJobResponse] = Field(default_factory=list)
    total: int
    page: int
    limit: int


class JobManagementRequest(BaseModel):
    action: str
    job_id: str | None = None


class JobManagementResponse(BaseModel):
    message: str
    affected: list[str] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str
