"""
app/services/stuck_job_reconciler.py

Fails scraping jobs whose worker died or never started.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from app.scraping.config import get_product_scraping_settings
from app.scraping.logging_utils import log_event
from app.scraping.storage import JobStore, get_job_store
from db.models.scraping_job import ScrapingJobStatus

logger = logging.getLogger(__name__)

TIMEOUT_ERROR_MESSAGE = "Job automatically marked as failed due to timeout"
FORCE_ERROR_MESSAGE = "Job manually marked as failed - was stuck in processing"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StuckJobReconciler:
    """
    Time-boxed and forced sweeps of non-terminal jobs.

    Both sweeps are idempotent: a job already completed or failed is never
    touched.
    """

    def __init__(
        self,
        *,
        job_store: JobStore | None = None,
        stale_after: timedelta | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = job_store or get_job_store()
        if stale_after is None:
            stale_after = timedelta(minutes=get_product_scraping_settings().stale_job_minutes)
        self.stale_after = stale_after
        self._clock = clock

    def reconcile(self, stale_threshold: timedelta | None = None) -> list[str]:
        """
        Fail pending and processing jobs created more than `stale_threshold` ago.
        """

        threshold = stale_threshold if stale_threshold is not None else self.stale_after
        now = self._clock()
        failed = self._store.fail_stale_jobs(
            statuses=ScrapingJobStatus.ACTIVE,
            error_message=TIMEOUT_ERROR_MESSAGE,
            older_than=now - threshold,
            now=now,
        )
        job_ids = [job.id for job in failed]
        if job_ids:
            log_event(
                logger,
                logging.WARNING,
                "stale_jobs_failed",
                count=len(job_ids),
                job_ids=job_ids,
                threshold_seconds=int(threshold.total_seconds()),
            )
        return job_ids

    def force_reconcile(self) -> list[str]:
        """
        Fail every processing job regardless of age.
        """

        failed = self._store.fail_stale_jobs(
            statuses=(ScrapingJobStatus.PROCESSING,),
            error_message=FORCE_ERROR_MESSAGE,
            older_than=None,
            now=self._clock(),
        )
        job_ids = [job.id for job in failed]
        log_event(logger, logging.WARNING, "processing_jobs_force_failed", count=len(job_ids))
        return job_ids

    def sweep_quietly(self) -> list[str]:
        """
        Opportunistic sweep that logs instead of raising.
        """

        try:
            return self.reconcile()
        except Exception:
            logger.exception("Stale job sweep failed")
            return []


@lru_cache(maxsize=1)
def get_stuck_job_reconciler() -> StuckJobReconciler:
    return StuckJobReconciler()
