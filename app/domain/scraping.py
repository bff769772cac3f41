"""
app/domain/scraping.py

Domain models shared by the scraping job orchestrator, extraction pipeline,
stores and catalog import flows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

from app.scraping.errors import ScrapingValidationError
from db.models.scraping_job import ScrapingJobStatus

DEFAULT_STATUS_DRAFT = "draft"
DEFAULT_STATUS_ACTIVE = "active"
DEFAULT_STATUSES = frozenset({DEFAULT_STATUS_DRAFT, DEFAULT_STATUS_ACTIVE})

MIN_MAX_IMAGES = 1
MAX_MAX_IMAGES = 50


class Availability:
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LIMITED_STOCK = "limited_stock"
    UNKNOWN = "unknown"

    ALL = frozenset({IN_STOCK, OUT_OF_STOCK, LIMITED_STOCK, UNKNOWN})


class UrlResultStatus:
    SUCCESS = "success"
    FAILED = "failed"


def _as_bool(value: Any, *, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    if isinstance(value, int):
        return bool(value)
    raise ScrapingValidationError(f"Setting '{key}' must be a boolean.")


@dataclass(frozen=True)
class JobSettings:
    """
    Per-job options controlling extraction, post-processing and auto-import.

    `download_images` is persisted for callers but not acted on: images are
    always referenced by their source URL.
    """

    auto_import: bool = False
    default_status: str = DEFAULT_STATUS_DRAFT
    validate_images: bool = True
    max_images: int = 8
    exclude_out_of_stock: bool = True
    override_existing: bool = False
    download_images: bool = False
    use_professional_apis: bool = True
    use_ai_enhancement: bool = True
    category_id: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> JobSettings:
        """
        Build settings from a request or persisted mapping.

        Unknown keys are ignored; missing keys take their defaults.
        """

        if not raw:
            return cls()

        values: dict[str, Any] = {}
        for key in (
            "auto_import",
            "validate_images",
            "exclude_out_of_stock",
            "override_existing",
            "download_images",
            "use_professional_apis",
            "use_ai_enhancement",
        ):
            if raw.get(key) is not None:
                values[key] = _as_bool(raw[key], key=key)

        default_status = raw.get("default_status")
        if default_status is not None:
            normalized_status = str(default_status).strip().lower()
            if normalized_status not in DEFAULT_STATUSES:
                raise ScrapingValidationError(
                    "Setting 'default_status' must be one of: active, draft."
                )
            values["default_status"] = normalized_status

        max_images = raw.get("max_images")
        if max_images is not None:
            try:
                parsed_max = int(max_images)
            except (TypeError, ValueError) as exc:
                raise ScrapingValidationError("Setting 'max_images' must be an integer.") from exc
            if not MIN_MAX_IMAGES <= parsed_max <= MAX_MAX_IMAGES:
                raise ScrapingValidationError(
                    f"Setting 'max_images' must be between {MIN_MAX_IMAGES} and {MAX_MAX_IMAGES}."
                )
            values["max_images"] = parsed_max

        category_id = raw.get("category_id")
        if category_id is not None and str(category_id).strip():
            values["category_id"] = str(category_id).strip()

        return cls(**values)

    @property
    def activate_on_import(self) -> bool:
        return self.default_status == DEFAULT_STATUS_ACTIVE

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScrapedProductCandidate:
    """
    Normalized product extracted from one source URL.
    """

    title: str
    source_url: str
    source_platform: str
    scraped_at: datetime
    description: str = ""
    price: float | None = None
    original_price: float | None = None
    currency: str = "USD"
    images: list[str] = field(default_factory=list)
    rating: float | None = None
    review_count: int | None = None
    brand: str | None = None
    category: str | None = None
    availability: str = Availability.UNKNOWN
    discount_percentage: float | None = None
    specifications: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["scraped_at"] = self.scraped_at.isoformat()
        return payload


@dataclass(frozen=True)
class StoredCandidate:
    """
    Candidate as persisted in the staging table.
    """

    id: str
    job_id: str | None
    provider: str | None
    candidate: ScrapedProductCandidate
    created_at: datetime
    imported: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "provider": self.provider,
            "imported": self.imported,
            "created_at": self.created_at.isoformat(),
            **self.candidate.to_payload(),
        }


@dataclass(frozen=True)
class UrlScrapeResult:
    """
    Outcome record for one URL of a job, appended to the job's results.
    """

    url: str
    status: str
    scraped_at: datetime
    processing_time_ms: int
    provider: str | None = None
    product: dict[str, Any] | None = None
    candidate_id: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == UrlResultStatus.SUCCESS

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "status": self.status,
            "scraped_at": self.scraped_at.isoformat(),
            "processing_time_ms": self.processing_time_ms,
        }
        for key in ("provider", "product", "candidate_id", "error"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class ScrapingJobRecord:
    """
    Read-only snapshot of a scraping job.
    """

    id: str
    urls: list[str]
    platform: str
    settings: JobSettings
    status: str
    total_urls: int
    processed_urls: int
    successful_scrapes: int
    failed_scrapes: int
    imported_products: int
    results: list[dict[str, Any]]
    error_message: str | None
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ScrapingJobStatus.TERMINAL


@dataclass(frozen=True)
class BulkItemError:
    id: str
    error: str


@dataclass(frozen=True)
class BulkOperationResult:
    """
    Per-item outcome of a bulk import or delete.

    `len(succeeded_ids) + len(errors)` always equals the number of ids given.
    """

    succeeded_ids: list[str] = field(default_factory=list)
    errors: list[BulkItemError] = field(default_factory=list)


@dataclass(frozen=True)
class UrlValidationResult:
    url: str
    valid: bool
    platform: str | None = None
    suggestions: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass(frozen=True)
class ImportStatistics:
    total_scraped: int
    total_imported: int
    pending_import: int
    jobs_by_status: dict[str, int] = field(default_factory=dict)
