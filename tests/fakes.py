"""
tests/fakes.py

In-memory stores, executors and scriptable extraction providers shared by
the orchestration tests.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from collections.abc import Callable, Iterable
from concurrent.futures import Future
from datetime import datetime, timedelta, timezone
from typing import Any

from app.domain.scraping import (
    Availability,
    ImportStatistics,
    JobSettings,
    ScrapedProductCandidate,
    ScrapingJobRecord,
    StoredCandidate,
    UrlScrapeResult,
)
from app.scraping.config.models import ProductScrapingSettings
from app.scraping.errors import RecordNotFoundError
from app.scraping.providers.base import ExtractionProvider, ProviderKind
from app.scraping.storage.base import JobStore, ProductStore
from db.models.scraping_job import ScrapingJobStatus

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class InlineExecutor:
    """Runs submitted callables immediately on the calling thread."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        self.submitted += 1
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:
            future.set_exception(exc)
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        return None


class RejectingExecutor(InlineExecutor):
    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        raise RuntimeError("executor is shut down")


class DeferredExecutor(InlineExecutor):
    """Queues callables until run_all() is called."""

    def __init__(self) -> None:
        super().__init__()
        self.pending: list[tuple[Future, Callable[[], Any]]] = []

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        self.submitted += 1
        future: Future = Future()
        self.pending.append((future, lambda: fn(*args, **kwargs)))
        return future

    def run_all(self) -> None:
        while self.pending:
            future, call = self.pending.pop(0)
            future.set_running_or_notify_cancel()
            try:
                future.set_result(call())
            except BaseException as exc:
                future.set_exception(exc)


class InMemoryJobStore(JobStore):
    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._jobs: dict[str, ScrapingJobRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: FIXED_NOW)
        self.record_calls = 0

    def put(self, job: ScrapingJobRecord) -> None:
        self._jobs[job.id] = job

    def create_job(
        self,
        *,
        urls: list[str],
        platform: str,
        settings: JobSettings,
        created_by: str | None,
    ) -> ScrapingJobRecord:
        now = self._clock()
        job = ScrapingJobRecord(
            id=str(uuid.uuid4()),
            urls=list(urls),
            platform=platform,
            settings=settings,
            status=ScrapingJobStatus.PENDING,
            total_urls=len(urls),
            processed_urls=0,
            successful_scrapes=0,
            failed_scrapes=0,
            imported_products=0,
            results=[],
            error_message=None,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> ScrapingJobRecord | None:
        return self._jobs.get(job_id)

    def list_jobs(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> list[ScrapingJobRecord]:
        jobs = self._filtered(status=status, platform=platform, created_by=created_by)
        jobs.sort(key=lambda job: job.created_at, reverse=True)
        return jobs[offset : offset + limit]

    def count_jobs(
        self,
        *,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> int:
        return len(self._filtered(status=status, platform=platform, created_by=created_by))

    def mark_processing(self, job_id: str) -> ScrapingJobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != ScrapingJobStatus.PENDING:
                return None
            now = self._clock()
            updated = dataclasses.replace(
                job,
                status=ScrapingJobStatus.PROCESSING,
                started_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = updated
            return updated

    def record_url_result(
        self,
        job_id: str,
        *,
        result: UrlScrapeResult,
        imported: bool = False,
    ) -> ScrapingJobRecord | None:
        with self._lock:
            self.record_calls += 1
            job = self._jobs.get(job_id)
            if job is None or job.status != ScrapingJobStatus.PROCESSING:
                return None
            updated = dataclasses.replace(
                job,
                processed_urls=min(job.total_urls, job.processed_urls + 1),
                successful_scrapes=job.successful_scrapes + (1 if result.succeeded else 0),
                failed_scrapes=job.failed_scrapes + (0 if result.succeeded else 1),
                imported_products=job.imported_products + (1 if imported else 0),
                results=[*job.results, result.to_payload()],
                updated_at=self._clock(),
            )
            self._jobs[job_id] = updated
            return updated

    def finalize_job(
        self,
        job_id: str,
        *,
        status: str,
        error_message: str | None = None,
        mark_all_processed: bool = True,
        fail_unprocessed: bool = False,
    ) -> ScrapingJobRecord | None:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status in ScrapingJobStatus.TERMINAL:
                return None
            now = self._clock()
            unprocessed = max(0, job.total_urls - job.processed_urls) if fail_unprocessed else 0
            updated = dataclasses.replace(
                job,
                status=status,
                error_message=error_message,
                processed_urls=job.total_urls if mark_all_processed or fail_unprocessed else job.processed_urls,
                failed_scrapes=job.failed_scrapes + unprocessed,
                completed_at=now,
                updated_at=now,
            )
            self._jobs[job_id] = updated
            return updated

    def fail_stale_jobs(
        self,
        *,
        statuses: Iterable[str],
        error_message: str,
        older_than: datetime | None = None,
        now: datetime | None = None,
    ) -> list[ScrapingJobRecord]:
        wanted = set(statuses)
        stamp = now or self._clock()
        failed: list[ScrapingJobRecord] = []
        with self._lock:
            for job_id, job in list(self._jobs.items()):
                if job.status not in wanted:
                    continue
                if older_than is not None and job.created_at >= older_than:
                    continue
                updated = dataclasses.replace(
                    job,
                    status=ScrapingJobStatus.FAILED,
                    error_message=error_message,
                    completed_at=stamp,
                    updated_at=stamp,
                )
                self._jobs[job_id] = updated
                failed.append(updated)
        return failed

    def delete_job(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def _filtered(
        self,
        *,
        status: str | None,
        platform: str | None,
        created_by: str | None,
    ) -> list[ScrapingJobRecord]:
        return [
            job
            for job in self._jobs.values()
            if (status is None or job.status == status)
            and (platform is None or job.platform == platform)
            and (created_by is None or job.created_by == created_by)
        ]


class InMemoryProductStore(ProductStore):
    def __init__(self) -> None:
        self.candidates: dict[str, StoredCandidate] = {}
        self.products: dict[str, dict[str, Any]] = {}
        self.imports: list[dict[str, Any]] = []
        self.fail_store = False
        self.fail_import = False

    def store_candidate(
        self,
        candidate: ScrapedProductCandidate,
        *,
        job_id: str | None,
        provider: str | None,
    ) -> str:
        if self.fail_store:
            raise RuntimeError("database is read-only")
        candidate_id = str(uuid.uuid4())
        self.candidates[candidate_id] = StoredCandidate(
            id=candidate_id,
            job_id=job_id,
            provider=provider,
            candidate=candidate,
            created_at=FIXED_NOW,
        )
        return candidate_id

    def get_candidate(self, candidate_id: str) -> StoredCandidate | None:
        stored = self.candidates.get(candidate_id)
        if stored is None:
            return None
        imported = any(item["scraped_product_id"] == candidate_id for item in self.imports)
        return dataclasses.replace(stored, imported=imported)

    def list_candidates(
        self,
        *,
        platform: str | None = None,
        job_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredCandidate]:
        rows = [
            stored
            for stored in self.candidates.values()
            if (platform is None or stored.candidate.source_platform == platform)
            and (job_id is None or stored.job_id == job_id)
        ]
        return rows[offset : offset + limit]

    def delete_candidates_by_source_url(self, source_url: str) -> int:
        imported_ids = {item["scraped_product_id"] for item in self.imports}
        doomed = [
            candidate_id
            for candidate_id, stored in self.candidates.items()
            if stored.candidate.source_url == source_url and candidate_id not in imported_ids
        ]
        for candidate_id in doomed:
            del self.candidates[candidate_id]
        return len(doomed)

    def import_candidate(
        self,
        candidate_id: str,
        *,
        product_fields: dict[str, Any],
        modifications: dict[str, Any],
    ) -> str:
        if candidate_id not in self.candidates:
            raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
        if self.fail_import:
            raise RuntimeError("catalog unavailable")
        product_id = str(uuid.uuid4())
        self.products[product_id] = dict(product_fields)
        self.imports.append(
            {
                "scraped_product_id": candidate_id,
                "product_id": product_id,
                "modifications": dict(modifications),
            }
        )
        return product_id

    def delete_candidate(self, candidate_id: str) -> None:
        if candidate_id not in self.candidates:
            raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
        for item in [item for item in self.imports if item["scraped_product_id"] == candidate_id]:
            self.products.pop(item["product_id"], None)
            self.imports.remove(item)
        del self.candidates[candidate_id]

    def statistics(self, *, created_by: str | None = None) -> ImportStatistics:
        imported = len({item["scraped_product_id"] for item in self.imports})
        return ImportStatistics(
            total_scraped=len(self.candidates),
            total_imported=imported,
            pending_import=len(self.candidates) - imported,
        )


def make_candidate(
    url: str = "https://www.amazon.com/dp/B08N5WRWNW",
    *,
    platform: str = "amazon",
    title: str = "Echo Dot (4th Gen)",
    availability: str = Availability.IN_STOCK,
    images: list[str] | None = None,
    price: float | None = 49.99,
) -> ScrapedProductCandidate:
    return ScrapedProductCandidate(
        title=title,
        source_url=url,
        source_platform=platform,
        scraped_at=FIXED_NOW,
        description="Smart speaker with Alexa.",
        price=price,
        images=images if images is not None else ["https://m.media-amazon.com/images/I/echo.jpg"],
        availability=availability,
    )


class FakeProvider(ExtractionProvider):
    """Provider whose behaviour is a callable of (url, platform)."""

    def __init__(
        self,
        name: str,
        *,
        kind: str = ProviderKind.CUSTOM,
        behaviour: Callable[[str, str], ScrapedProductCandidate] | None = None,
        configured: bool = True,
        platforms: set[str] | None = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self._behaviour = behaviour or (lambda url, platform: make_candidate(url, platform=platform))
        self._configured = configured
        self._platforms = platforms
        self.calls: list[tuple[str, str]] = []

    def is_configured(self) -> bool:
        return self._configured

    def supports(self, platform: str) -> bool:
        return self._platforms is None or platform in self._platforms

    def extract(self, url: str, *, platform: str) -> ScrapedProductCandidate:
        self.calls.append((url, platform))
        return self._behaviour(url, platform)


def failing(message: str) -> Callable[[str, str], ScrapedProductCandidate]:
    def _raise(url: str, platform: str) -> ScrapedProductCandidate:
        raise RuntimeError(message)

    return _raise


def make_settings(**overrides: Any) -> ProductScrapingSettings:
    values: dict[str, Any] = {
        "config_path": "app/scraping/config/platforms.json",
        "default_user_agent": "TestBot/1.0",
        "default_rate_limit_per_second": 100.0,
        "timeout_seconds": 5.0,
        "max_retries": 0,
        "backoff_initial_seconds": 0.1,
        "backoff_multiplier": 2.0,
        "allow_when_robots_unreachable": True,
        "respect_robots": False,
        "inter_request_delay_seconds": 0.0,
        "provider_timeout_seconds": 5.0,
        "url_timeout_seconds": 10.0,
        "max_batch_size": 50,
        "max_concurrent_jobs": 2,
        "provider_pool_size": 2,
        "stale_job_minutes": 5,
        "manual_stale_job_minutes": 10,
        "sweep_interval_minutes": 5,
    }
    values.update(overrides)
    return ProductScrapingSettings(**values)
