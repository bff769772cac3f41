"""
Repository for scraping job lifecycle persistence and progress updates.

Every mutating method loads the job row with SELECT ... FOR UPDATE so that
the job worker, the stale-job sweep and operator actions serialize on the
same record inside the caller's transaction.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.scraping_job import ScrapingJob, ScrapingJobStatus


class ScrapingJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        urls: list[str],
        platform: str,
        settings: dict[str, Any],
        created_by: str | None,
    ) -> ScrapingJob:
        job = ScrapingJob(
            urls=list(urls),
            platform=platform,
            settings=dict(settings),
            status=ScrapingJobStatus.PENDING,
            total_urls=len(urls),
            processed_urls=0,
            successful_scrapes=0,
            failed_scrapes=0,
            imported_products=0,
            results=[],
            created_by=created_by,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID, *, for_update: bool = False) -> ScrapingJob | None:
        if not for_update:
            return self._session.get(ScrapingJob, job_id)
        stmt = select(ScrapingJob).where(ScrapingJob.id == job_id).with_for_update()
        return self._session.scalars(stmt).first()

    def list_jobs(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> list[ScrapingJob]:
        stmt = self._filtered(select(ScrapingJob), status, platform, created_by)
        stmt = (
            stmt.order_by(ScrapingJob.created_at.desc())
            .offset(max(0, offset))
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def count_jobs(
        self,
        *,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> int:
        stmt = self._filtered(
            select(func.count()).select_from(ScrapingJob),
            status,
            platform,
            created_by,
        )
        return int(self._session.scalar(stmt) or 0)

    def count_by_status(self, *, created_by: str | None = None) -> dict[str, int]:
        stmt = select(ScrapingJob.status, func.count()).group_by(ScrapingJob.status)
        if created_by:
            stmt = stmt.where(ScrapingJob.created_by == created_by)
        return {status: int(count) for status, count in self._session.execute(stmt).all()}

    def mark_processing(self, *, job_id: uuid.UUID) -> ScrapingJob | None:
        job = self.get_job(job_id, for_update=True)
        if job is None or job.status != ScrapingJobStatus.PENDING:
            return None
        job.status = ScrapingJobStatus.PROCESSING
        job.started_at = utcnow()
        job.error_message = None
        return job

    def record_url_result(
        self,
        *,
        job_id: uuid.UUID,
        result_payload: dict[str, Any],
        succeeded: bool,
        imported: bool = False,
    ) -> ScrapingJob | None:
        job = self.get_job(job_id, for_update=True)
        if job is None or job.status != ScrapingJobStatus.PROCESSING:
            return None
        job.processed_urls = min(job.total_urls, job.processed_urls + 1)
        if succeeded:
            job.successful_scrapes += 1
        else:
            job.failed_scrapes += 1
        if imported:
            job.imported_products += 1
        # Reassign so the JSON column change is detected.
        job.results = [*(job.results or []), result_payload]
        return job

    def finalize(
        self,
        *,
        job_id: uuid.UUID,
        status: str,
        error_message: str | None = None,
        mark_all_processed: bool = True,
        fail_unprocessed: bool = False,
    ) -> ScrapingJob | None:
        job = self.get_job(job_id, for_update=True)
        if job is None or job.status in ScrapingJobStatus.TERMINAL:
            return None
        job.status = status
        job.completed_at = utcnow()
        job.error_message = error_message
        if fail_unprocessed:
            job.failed_scrapes += max(0, job.total_urls - job.processed_urls)
            job.processed_urls = job.total_urls
        elif mark_all_processed:
            job.processed_urls = job.total_urls
        return job

    def fail_stale_jobs(
        self,
        *,
        statuses: Iterable[str],
        error_message: str,
        created_before: datetime | None = None,
        now: datetime | None = None,
    ) -> list[ScrapingJob]:
        stmt = select(ScrapingJob).where(ScrapingJob.status.in_(list(statuses)))
        if created_before is not None:
            stmt = stmt.where(ScrapingJob.created_at < created_before)
        stmt = stmt.order_by(ScrapingJob.created_at.asc()).with_for_update()

        completed_at = now or utcnow()
        jobs = list(self._session.scalars(stmt).all())
        for job in jobs:
            job.status = ScrapingJobStatus.FAILED
            job.completed_at = completed_at
            job.error_message = error_message
        return jobs

    def delete_job(self, *, job_id: uuid.UUID) -> bool:
        job = self.get_job(job_id, for_update=True)
        if job is None:
            return False
        self._session.delete(job)
        return True

    @staticmethod
    def _filtered(
        stmt: Select,
        status: str | None,
        platform: str | None,
        created_by: str | None,
    ) -> Select:
        if status:
            stmt = stmt.where(ScrapingJob.status == status)
        if platform:
            stmt = stmt.where(ScrapingJob.platform == platform)
        if created_by:
            stmt = stmt.where(ScrapingJob.created_by == created_by)
        return stmt
