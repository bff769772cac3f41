"""
app/services/scraping_job_orchestrator.py

Scraping job lifecycle: submission, background URL processing, progress
accounting and operator actions.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from app.domain.scraping import (
    JobSettings,
    ScrapingJobRecord,
    UrlResultStatus,
    UrlScrapeResult,
)
from app.scraping.config import ProductScrapingSettings, get_product_scraping_settings
from app.scraping.errors import (
    ExtractionError,
    JobStateError,
    OrchestratorError,
    RecordNotFoundError,
    ScrapingValidationError,
)
from app.scraping.logging_utils import log_event, truncate_error
from app.scraping.pipeline import ExtractionPipeline, get_extraction_pipeline
from app.scraping.platforms import (
    MULTI_PLATFORM,
    SUPPORTED_PLATFORMS,
    is_valid_product_url,
    resolve_job_platform,
)
from app.scraping.storage import JobStore, ProductStore, get_job_store, get_product_store
from app.services.bulk_import_service import BulkImportCoordinator
from app.services.stuck_job_reconciler import StuckJobReconciler
from db.models.scraping_job import ScrapingJobStatus

logger = logging.getLogger(__name__)

CANCELLED_ERROR_MESSAGE = "Job cancelled before all URLs were processed"
SCHEDULE_ERROR_MESSAGE = "Failed to schedule scraping job."
NO_SUCCESS_ERROR_MESSAGE = "Job manually completed without any successful scrapes"


class ManagementAction:
    FIX_STUCK_JOBS = "fix_stuck_jobs"
    FORCE_FIX_ALL_STUCK_JOBS = "force_fix_all_stuck_jobs"
    COMPLETE_JOB = "complete_job"

    ALL = (FIX_STUCK_JOBS, FORCE_FIX_ALL_STUCK_JOBS, COMPLETE_JOB)


@dataclass(frozen=True)
class ManagementOutcome:
    message: str
    affected: list[str] = field(default_factory=list)


@dataclass
class JobHandle:
    job_id: str
    future: Future
    cancel_event: threading.Event


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScrapingJobOrchestrator:
    """
    Owns the job state machine.

    Each submitted job runs on the job executor; URLs of one job are processed
    sequentially. Every public request first runs an opportunistic stale-job
    sweep.
    """

    def __init__(
        self,
        *,
        job_store: JobStore | None = None,
        product_store: ProductStore | None = None,
        pipeline: ExtractionPipeline | None = None,
        reconciler: StuckJobReconciler | None = None,
        importer: BulkImportCoordinator | None = None,
        settings: ProductScrapingSettings | None = None,
        executor: Executor | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_product_scraping_settings()
        self._job_store = job_store or get_job_store()
        self._product_store = product_store or get_product_store()
        self._pipeline = pipeline or get_extraction_pipeline()
        self._reconciler = reconciler or StuckJobReconciler(
            job_store=self._job_store,
            stale_after=timedelta(minutes=self._settings.stale_job_minutes),
        )
        self._importer = importer or BulkImportCoordinator(product_store=self._product_store)
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self._settings.max_concurrent_jobs,
            thread_name_prefix="scraping-job",
        )
        self._monotonic = monotonic
        self._handles: dict[str, JobHandle] = {}
        self._handles_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def submit(
        self,
        urls: Sequence[str],
        *,
        platform: str | None = None,
        settings: JobSettings | Mapping[str, Any] | None = None,
        created_by: str | None = None,
    ) -> ScrapingJobRecord:
        """
        Validate the batch, create a pending job and schedule its worker.

        Returns as soon as the job exists; processing happens in the background.
        """

        self._reconciler.sweep_quietly()

        cleaned = self._validate_urls(urls)
        job_platform = self._validate_platform(platform, cleaned)
        job_settings = settings if isinstance(settings, JobSettings) else JobSettings.from_mapping(settings)

        job = self._job_store.create_job(
            urls=cleaned,
            platform=job_platform,
            settings=job_settings,
            created_by=created_by,
        )
        log_event(
            logger,
            logging.INFO,
            "scraping_job_created",
            job_id=job.id,
            platform=job_platform,
            total_urls=len(cleaned),
            created_by=created_by,
        )

        cancel_event = threading.Event()
        try:
            future = self._executor.submit(self._run_job, job.id, cancel_event)
        except Exception as exc:
            self._job_store.finalize_job(
                job.id,
                status=ScrapingJobStatus.FAILED,
                error_message=SCHEDULE_ERROR_MESSAGE,
                mark_all_processed=False,
            )
            raise OrchestratorError(SCHEDULE_ERROR_MESSAGE) from exc

        with self._handles_lock:
            self._handles[job.id] = JobHandle(job_id=job.id, future=future, cancel_event=cancel_event)
        future.add_done_callback(lambda done, job_id=job.id: self._on_worker_done(job_id, done))
        return job

    def get_status(self, job_id: str) -> ScrapingJobRecord:
        self._reconciler.sweep_quietly()
        return self._require_job(job_id)

    def list_jobs(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> tuple[list[ScrapingJobRecord], int]:
        self._reconciler.sweep_quietly()
        if status is not None and status not in ScrapingJobStatus.ALL:
            raise ScrapingValidationError(f"Unknown job status '{status}'.")
        jobs = self._job_store.list_jobs(
            limit=limit,
            offset=offset,
            status=status,
            platform=platform,
            created_by=created_by,
        )
        total = self._job_store.count_jobs(status=status, platform=platform, created_by=created_by)
        return jobs, total

    def complete_job(self, job_id: str) -> ScrapingJobRecord:
        """
        Operator action: force a non-terminal job to a terminal status.

        The job is completed when at least one URL succeeded, else failed.
        """

        self._reconciler.sweep_quietly()
        job = self._require_job(job_id)
        if job.is_terminal:
            raise JobStateError(f"Job {job_id} is already {job.status}.")

        succeeded = job.successful_scrapes > 0
        finalized = self._job_store.finalize_job(
            job_id,
            status=ScrapingJobStatus.COMPLETED if succeeded else ScrapingJobStatus.FAILED,
            error_message=None if succeeded else NO_SUCCESS_ERROR_MESSAGE,
        )
        if finalized is None:
            raise JobStateError(f"Job {job_id} reached a terminal status concurrently.")
        log_event(logger, logging.INFO, "scraping_job_manually_completed", job_id=job_id, status=finalized.status)
        return finalized

    def delete_job(self, job_id: str) -> None:
        self._reconciler.sweep_quietly()
        job = self._require_job(job_id)
        if not job.is_terminal:
            raise JobStateError(f"Job {job_id} is {job.status}; only completed or failed jobs can be deleted.")
        if not self._job_store.delete_job(job_id):
            raise RecordNotFoundError(f"Scraping job not found: {job_id}")
        log_event(logger, logging.INFO, "scraping_job_deleted", job_id=job_id)

    def fix_stuck_jobs(self) -> list[str]:
        return self._reconciler.reconcile(
            timedelta(minutes=self._settings.manual_stale_job_minutes)
        )

    def force_fix_all_stuck_jobs(self) -> list[str]:
        return self._reconciler.force_reconcile()

    def run_management_action(self, action: str, *, job_id: str | None = None) -> ManagementOutcome:
        if action == ManagementAction.FIX_STUCK_JOBS:
            affected = self.fix_stuck_jobs()
            return ManagementOutcome(message=f"Fixed {len(affected)} stuck jobs", affected=affected)
        if action == ManagementAction.FORCE_FIX_ALL_STUCK_JOBS:
            affected = self.force_fix_all_stuck_jobs()
            return ManagementOutcome(
                message=f"Force fixed {len(affected)} processing jobs",
                affected=affected,
            )
        if action == ManagementAction.COMPLETE_JOB:
            if not job_id:
                raise ScrapingValidationError("Action 'complete_job' requires job_id.")
            job = self.complete_job(job_id)
            return ManagementOutcome(message=f"Job marked as {job.status}", affected=[job.id])
        raise ScrapingValidationError(f"Invalid action '{action}'.")

    # ------------------------------------------------------------------
    # Worker lifecycle
    # ------------------------------------------------------------------

    def cancel(self, job_id: str) -> bool:
        with self._handles_lock:
            handle = self._handles.get(job_id)
        if handle is None:
            return False
        handle.cancel_event.set()
        return True

    def join(self, job_id: str, timeout: float | None = None) -> bool:
        """
        Wait for a job's worker; True when it is no longer running.
        """

        with self._handles_lock:
            handle = self._handles.get(job_id)
        if handle is None:
            return True
        wait_futures([handle.future], timeout=timeout)
        return handle.future.done()

    def active_job_ids(self) -> list[str]:
        with self._handles_lock:
            return list(self._handles)

    def shutdown(self, *, wait: bool = True) -> None:
        with self._handles_lock:
            handles = list(self._handles.values())
        for handle in handles:
            handle.cancel_event.set()
        shutdown = getattr(self._executor, "shutdown", None)
        if shutdown is not None:
            shutdown(wait=wait)
        log_event(logger, logging.INFO, "scraping_orchestrator_shutdown", cancelled=len(handles))

    def _on_worker_done(self, job_id: str, future: Future) -> None:
        with self._handles_lock:
            self._handles.pop(job_id, None)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Scraping worker crashed id=%s error=%s", job_id, truncate_error(exc))

    def _run_job(self, job_id: str, cancel_event: threading.Event) -> None:
        job = self._job_store.mark_processing(job_id)
        if job is None:
            log_event(logger, logging.WARNING, "scraping_job_not_pending", job_id=job_id)
            return

        log_event(logger, logging.INFO, "scraping_job_started", job_id=job_id, total_urls=job.total_urls)
        try:
            cancelled = False
            for index, url in enumerate(job.urls):
                if cancel_event.is_set():
                    cancelled = True
                    break
                if not self._process_url(job, url):
                    log_event(logger, logging.WARNING, "scraping_job_progress_rejected", job_id=job_id, url=url)
                    return
                is_last = index == len(job.urls) - 1
                delay = self._settings.inter_request_delay_seconds
                if not is_last and delay > 0 and cancel_event.wait(delay):
                    cancelled = True
                    break

            if cancelled:
                final = self._job_store.finalize_job(
                    job_id,
                    status=ScrapingJobStatus.FAILED,
                    error_message=CANCELLED_ERROR_MESSAGE,
                    fail_unprocessed=True,
                )
            else:
                final = self._job_store.finalize_job(job_id, status=ScrapingJobStatus.COMPLETED)
        except Exception as exc:
            error_message = truncate_error(exc)
            logger.exception("Scraping job failed id=%s error=%s", job_id, error_message)
            final = self._job_store.finalize_job(
                job_id,
                status=ScrapingJobStatus.FAILED,
                error_message=error_message,
                fail_unprocessed=True,
            )

        if final is None:
            log_event(logger, logging.WARNING, "scraping_job_already_terminal", job_id=job_id)
            return
        log_event(
            logger,
            logging.INFO,
            "scraping_job_finished",
            job_id=job_id,
            status=final.status,
            successful=final.successful_scrapes,
            failed=final.failed_scrapes,
            imported=final.imported_products,
        )

    def _process_url(self, job: ScrapingJobRecord, url: str) -> bool:
        """
        Extract, store and record one URL. False once the job is terminal.
        """

        started = self._monotonic()
        scraped_at = _utcnow()
        imported = False

        try:
            outcome = self._pipeline.extract(url, platform_hint=job.platform, settings=job.settings)
        except ExtractionError as exc:
            result = UrlScrapeResult(
                url=url,
                status=UrlResultStatus.FAILED,
                scraped_at=scraped_at,
                processing_time_ms=self._elapsed_ms(started),
                error=exc.reason,
            )
        except Exception as exc:
            log_event(logger, logging.ERROR, "extraction_crashed", job_id=job.id, url=url, error=str(exc))
            result = UrlScrapeResult(
                url=url,
                status=UrlResultStatus.FAILED,
                scraped_at=scraped_at,
                processing_time_ms=self._elapsed_ms(started),
                error=f"Extraction failed: {truncate_error(exc, limit=500)}",
            )
        else:
            try:
                if job.settings.override_existing:
                    self._product_store.delete_candidates_by_source_url(outcome.candidate.source_url)
                candidate_id = self._product_store.store_candidate(
                    outcome.candidate,
                    job_id=job.id,
                    provider=outcome.provider,
                )
            except Exception as exc:
                log_event(logger, logging.ERROR, "candidate_store_failed", job_id=job.id, url=url, error=str(exc))
                result = UrlScrapeResult(
                    url=url,
                    status=UrlResultStatus.FAILED,
                    scraped_at=scraped_at,
                    processing_time_ms=self._elapsed_ms(started),
                    provider=outcome.provider,
                    error=f"Failed to store product: {truncate_error(exc, limit=500)}",
                )
            else:
                if job.settings.auto_import:
                    imported = self._auto_import(candidate_id, job)
                result = UrlScrapeResult(
                    url=url,
                    status=UrlResultStatus.SUCCESS,
                    scraped_at=scraped_at,
                    processing_time_ms=self._elapsed_ms(started),
                    provider=outcome.provider,
                    product=outcome.candidate.to_payload(),
                    candidate_id=candidate_id,
                )

        log_event(
            logger,
            logging.INFO,
            "scraping_url_processed",
            job_id=job.id,
            url=url,
            status=result.status,
            provider=result.provider,
            error=result.error,
            processing_time_ms=result.processing_time_ms,
        )
        return self._job_store.record_url_result(job.id, result=result, imported=imported) is not None

    def _auto_import(self, candidate_id: str, job: ScrapingJobRecord) -> bool:
        try:
            self._importer.import_one(
                candidate_id,
                modifications={
                    "category_id": job.settings.category_id,
                    "is_active": job.settings.activate_on_import,
                },
                imported_by=job.created_by,
            )
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "auto_import_failed",
                job_id=job.id,
                candidate_id=candidate_id,
                error=str(exc),
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_job(self, job_id: str) -> ScrapingJobRecord:
        job = self._job_store.get_job(job_id)
        if job is None:
            raise RecordNotFoundError(f"Scraping job not found: {job_id}")
        return job

    def _validate_urls(self, urls: Sequence[str]) -> list[str]:
        if isinstance(urls, str):
            raise ScrapingValidationError("urls must be a list of URLs.")
        cleaned = [str(url).strip() for url in urls or []]
        if not cleaned:
            raise ScrapingValidationError("At least one URL is required.")
        if len(cleaned) > self._settings.max_batch_size:
            raise ScrapingValidationError(
                f"Maximum {self._settings.max_batch_size} URLs allowed per batch."
            )
        invalid = [url for url in cleaned if not is_valid_product_url(url)]
        if invalid:
            raise ScrapingValidationError(f"Invalid URLs found: {', '.join(invalid[:5])}")
        return cleaned

    @staticmethod
    def _validate_platform(platform: str | None, urls: list[str]) -> str:
        resolved = resolve_job_platform(urls, platform)
        if resolved not in SUPPORTED_PLATFORMS and resolved != MULTI_PLATFORM:
            raise ScrapingValidationError(f"Unsupported platform '{platform}'.")
        return resolved

    def _elapsed_ms(self, started: float) -> int:
        return max(0, int((self._monotonic() - started) * 1000))


@lru_cache(maxsize=1)
def get_scraping_job_orchestrator() -> ScrapingJobOrchestrator:
    return ScrapingJobOrchestrator()
