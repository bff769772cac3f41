"""
SQLAlchemy-backed job and product stores.

Each operation runs in its own session and transaction opened from the
session factory, and returns detached domain snapshots.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

from sqlalchemy.orm import Session

from app.domain.scraping import (
    ImportStatistics,
    JobSettings,
    ScrapedProductCandidate,
    ScrapingJobRecord,
    StoredCandidate,
    UrlScrapeResult,
)
from app.scraping.errors import RecordNotFoundError
from app.scraping.storage.base import JobStore, ProductStore
from db.models.scraped_product import ScrapedProduct
from db.models.scraping_job import ScrapingJob
from db.repositories.scraped_product_repository import ScrapedProductRepository
from db.repositories.scraping_job_repository import ScrapingJobRepository
from db.session import SessionLocal

SessionFactory = Callable[[], Session]


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo; all stored timestamps are UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_job_record(job: ScrapingJob) -> ScrapingJobRecord:
    return ScrapingJobRecord(
        id=str(job.id),
        urls=list(job.urls or []),
        platform=job.platform,
        settings=JobSettings.from_mapping(job.settings),
        status=job.status,
        total_urls=job.total_urls,
        processed_urls=job.processed_urls,
        successful_scrapes=job.successful_scrapes,
        failed_scrapes=job.failed_scrapes,
        imported_products=job.imported_products,
        results=[dict(item) for item in job.results or []],
        error_message=job.error_message,
        created_by=job.created_by,
        created_at=_as_utc(job.created_at),
        updated_at=_as_utc(job.updated_at),
        started_at=_as_utc(job.started_at),
        completed_at=_as_utc(job.completed_at),
    )


def _to_stored_candidate(row: ScrapedProduct, *, imported: bool) -> StoredCandidate:
    candidate = ScrapedProductCandidate(
        title=row.title,
        description=row.description or "",
        price=row.price,
        original_price=row.original_price,
        currency=row.currency,
        images=list(row.images or []),
        rating=row.rating,
        review_count=row.review_count,
        brand=row.brand,
        category=row.category,
        availability=row.availability,
        discount_percentage=row.discount_percentage,
        specifications=dict(row.specifications or {}),
        source_platform=row.source_platform,
        source_url=row.source_url,
        scraped_at=_as_utc(row.scraped_at),
    )
    return StoredCandidate(
        id=str(row.id),
        job_id=str(row.job_id) if row.job_id else None,
        provider=row.provider,
        candidate=candidate,
        created_at=_as_utc(row.created_at),
        imported=imported,
    )


class SQLAlchemyJobStore(JobStore):
    """
    Persist scraping jobs through ScrapingJobRepository.
    """

    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def create_job(
        self,
        *,
        urls: list[str],
        platform: str,
        settings: JobSettings,
        created_by: str | None,
    ) -> ScrapingJobRecord:
        with self._session_factory() as db, db.begin():
            job = ScrapingJobRepository(db).create_job(
                urls=urls,
                platform=platform,
                settings=settings.to_dict(),
                created_by=created_by,
            )
            return _to_job_record(job)

    def get_job(self, job_id: str) -> ScrapingJobRecord | None:
        job_uuid = _parse_uuid(job_id)
        if job_uuid is None:
            return None
        with self._session_factory() as db:
            job = ScrapingJobRepository(db).get_job(job_uuid)
            return _to_job_record(job) if job is not None else None

    def list_jobs(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> list[ScrapingJobRecord]:
        with self._session_factory() as db:
            jobs = ScrapingJobRepository(db).list_jobs(
                limit=limit,
                offset=offset,
                status=status,
                platform=platform,
                created_by=created_by,
            )
            return [_to_job_record(job) for job in jobs]

    def count_jobs(
        self,
        *,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> int:
        with self._session_factory() as db:
            return ScrapingJobRepository(db).count_jobs(
                status=status,
                platform=platform,
                created_by=created_by,
            )

    def mark_processing(self, job_id: str) -> ScrapingJobRecord | None:
        job_uuid = _parse_uuid(job_id)
        if job_uuid is None:
            return None
        with self._session_factory() as db, db.begin():
            job = ScrapingJobRepository(db).mark_processing(job_id=job_uuid)
            return _to_job_record(job) if job is not None else None

    def record_url_result(
        self,
        job_id: str,
        *,
        result: UrlScrapeResult,
        imported: bool = False,
    ) -> ScrapingJobRecord | None:
        job_uuid = _parse_uuid(job_id)
        if job_uuid is None:
            return None
        with self._session_factory() as db, db.begin():
            job = ScrapingJobRepository(db).record_url_result(
                job_id=job_uuid,
                result_payload=result.to_payload(),
                succeeded=result.succeeded,
                imported=imported,
            )
            return _to_job_record(job) if job is not None else None

    def finalize_job(
        self,
        job_id: str,
        *,
        status: str,
        error_message: str | None = None,
        mark_all_processed: bool = True,
        fail_unprocessed: bool = False,
    ) -> ScrapingJobRecord | None:
        job_uuid = _parse_uuid(job_id)
        if job_uuid is None:
            return None
        with self._session_factory() as db, db.begin():
            job = ScrapingJobRepository(db).finalize(
                job_id=job_uuid,
                status=status,
                error_message=error_message,
                mark_all_processed=mark_all_processed,
                fail_unprocessed=fail_unprocessed,
            )
            return _to_job_record(job) if job is not None else None

    def fail_stale_jobs(
        self,
        *,
        statuses: Iterable[str],
        error_message: str,
        older_than: datetime | None = None,
        now: datetime | None = None,
    ) -> list[ScrapingJobRecord]:
        with self._session_factory() as db, db.begin():
            jobs = ScrapingJobRepository(db).fail_stale_jobs(
                statuses=statuses,
                error_message=error_message,
                created_before=older_than,
                now=now,
            )
            return [_to_job_record(job) for job in jobs]

    def delete_job(self, job_id: str) -> bool:
        job_uuid = _parse_uuid(job_id)
        if job_uuid is None:
            return False
        with self._session_factory() as db, db.begin():
            return ScrapingJobRepository(db).delete_job(job_id=job_uuid)


class SQLAlchemyProductStore(ProductStore):
    """
    Persist staged candidates and catalog imports through ScrapedProductRepository.
    """

    def __init__(self, *, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def store_candidate(
        self,
        candidate: ScrapedProductCandidate,
        *,
        job_id: str | None,
        provider: str | None,
    ) -> str:
        fields = candidate.to_payload()
        fields["scraped_at"] = candidate.scraped_at
        with self._session_factory() as db, db.begin():
            row = ScrapedProductRepository(db).add_candidate(
                job_id=_parse_uuid(job_id),
                provider=provider,
                fields=fields,
            )
            return str(row.id)

    def get_candidate(self, candidate_id: str) -> StoredCandidate | None:
        candidate_uuid = _parse_uuid(candidate_id)
        if candidate_uuid is None:
            return None
        with self._session_factory() as db:
            repository = ScrapedProductRepository(db)
            row = repository.get_candidate(candidate_uuid)
            if row is None:
                return None
            imported = bool(repository.imported_candidate_ids([row.id]))
            return _to_stored_candidate(row, imported=imported)

    def list_candidates(
        self,
        *,
        platform: str | None = None,
        job_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredCandidate]:
        job_uuid = _parse_uuid(job_id)
        if job_id is not None and job_uuid is None:
            return []
        with self._session_factory() as db:
            repository = ScrapedProductRepository(db)
            rows = repository.list_candidates(
                platform=platform,
                job_id=job_uuid,
                limit=limit,
                offset=offset,
            )
            imported_ids = repository.imported_candidate_ids([row.id for row in rows])
            return [_to_stored_candidate(row, imported=row.id in imported_ids) for row in rows]

    def delete_candidates_by_source_url(self, source_url: str) -> int:
        with self._session_factory() as db, db.begin():
            return ScrapedProductRepository(db).delete_unimported_by_source_url(
                source_url=source_url
            )

    def import_candidate(
        self,
        candidate_id: str,
        *,
        product_fields: dict[str, Any],
        modifications: dict[str, Any],
    ) -> str:
        candidate_uuid = _parse_uuid(candidate_id)
        if candidate_uuid is None:
            raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
        with self._session_factory() as db, db.begin():
            repository = ScrapedProductRepository(db)
            if repository.get_candidate(candidate_uuid) is None:
                raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
            product = repository.create_product(fields=product_fields)
            repository.create_import_record(
                scraped_product_id=candidate_uuid,
                product_id=product.id,
                modifications=modifications,
            )
            return str(product.id)

    def delete_candidate(self, candidate_id: str) -> None:
        candidate_uuid = _parse_uuid(candidate_id)
        if candidate_uuid is None:
            raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
        with self._session_factory() as db, db.begin():
            repository = ScrapedProductRepository(db)
            row = repository.get_candidate(candidate_uuid)
            if row is None:
                raise RecordNotFoundError(f"Scraped product not found: {candidate_id}")
            repository.delete_candidate(row)

    def statistics(self, *, created_by: str | None = None) -> ImportStatistics:
        with self._session_factory() as db:
            repository = ScrapedProductRepository(db)
            total_scraped = repository.count_candidates()
            total_imported = repository.count_imported_candidates()
            jobs_by_status = ScrapingJobRepository(db).count_by_status(created_by=created_by)
        return ImportStatistics(
            total_scraped=total_scraped,
            total_imported=total_imported,
            pending_import=max(0, total_scraped - total_imported),
            jobs_by_status=jobs_by_status,
        )


@lru_cache(maxsize=1)
def get_job_store() -> SQLAlchemyJobStore:
    return SQLAlchemyJobStore(session_factory=SessionLocal)


@lru_cache(maxsize=1)
def get_product_store() -> SQLAlchemyProductStore:
    return SQLAlchemyProductStore(session_factory=SessionLocal)
