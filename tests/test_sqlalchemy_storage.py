"""
tests/test_sqlalchemy_storage.py

SQLAlchemy job and product stores against an in-memory SQLite database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  (registers all tables on Base.metadata)
from app.domain.scraping import JobSettings, UrlResultStatus, UrlScrapeResult
from app.scraping.errors import RecordNotFoundError
from app.scraping.storage import SQLAlchemyJobStore, SQLAlchemyProductStore
from db.base import Base
from db.models.scraping_job import ScrapingJobStatus
from db.session import build_session_factory
from fakes import FIXED_NOW, make_candidate

URL = "https://www.amazon.com/dp/B08N5WRWNW"


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    try:
        yield build_session_factory(engine)
    finally:
        engine.dispose()


@pytest.fixture()
def jobs(session_factory) -> SQLAlchemyJobStore:
    return SQLAlchemyJobStore(session_factory=session_factory)


@pytest.fixture()
def products(session_factory) -> SQLAlchemyProductStore:
    return SQLAlchemyProductStore(session_factory=session_factory)


def _result(status: str = UrlResultStatus.SUCCESS) -> UrlScrapeResult:
    return UrlScrapeResult(url=URL, status=status, scraped_at=FIXED_NOW, processing_time_ms=40)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------


class TestJobStore:
    def test_create_and_read_back(self, jobs) -> None:
        settings = JobSettings(auto_import=True, max_images=3, category_id="cat-1")

        job = jobs.create_job(urls=[URL], platform="amazon", settings=settings, created_by="user-1")
        loaded = jobs.get_job(job.id)

        assert loaded.status == ScrapingJobStatus.PENDING
        assert loaded.urls == [URL]
        assert loaded.total_urls == 1
        assert loaded.settings == settings
        assert loaded.created_by == "user-1"
        assert loaded.created_at.tzinfo is not None

    def test_unknown_or_malformed_ids(self, jobs) -> None:
        assert jobs.get_job("not-a-uuid") is None
        assert jobs.get_job("6f1c1d9e-7a0b-4c36-9d55-0d5c2f0a9b11") is None
        assert jobs.mark_processing("not-a-uuid") is None
        assert jobs.delete_job("not-a-uuid") is False

    def test_lifecycle_transitions(self, jobs) -> None:
        job = jobs.create_job(urls=[URL, URL], platform="amazon", settings=JobSettings(), created_by=None)

        assert jobs.record_url_result(job.id, result=_result()) is None

        started = jobs.mark_processing(job.id)
        assert started.status == ScrapingJobStatus.PROCESSING
        assert started.started_at is not None
        assert jobs.mark_processing(job.id) is None

        jobs.record_url_result(job.id, result=_result(), imported=True)
        progressed = jobs.record_url_result(job.id, result=_result(UrlResultStatus.FAILED))
        assert progressed.processed_urls == 2
        assert progressed.successful_scrapes == 1
        assert progressed.failed_scrapes == 1
        assert progressed.imported_products == 1
        assert [item["status"] for item in progressed.results] == ["success", "failed"]

        done = jobs.finalize_job(job.id, status=ScrapingJobStatus.COMPLETED)
        assert done.status == ScrapingJobStatus.COMPLETED
        assert done.completed_at is not None
        assert jobs.finalize_job(job.id, status=ScrapingJobStatus.FAILED) is None
        assert jobs.record_url_result(job.id, result=_result()) is None

    def test_finalize_without_marking_processed(self, jobs) -> None:
        job = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by=None)

        failed = jobs.finalize_job(
            job.id,
            status=ScrapingJobStatus.FAILED,
            error_message="Failed to schedule scraping job.",
            mark_all_processed=False,
        )

        assert failed.processed_urls == 0
        assert failed.error_message == "Failed to schedule scraping job."

    def test_finalize_counts_unprocessed_urls_as_failed(self, jobs) -> None:
        job = jobs.create_job(urls=[URL, URL, URL], platform="amazon", settings=JobSettings(), created_by=None)
        jobs.mark_processing(job.id)
        jobs.record_url_result(job.id, result=_result())

        failed = jobs.finalize_job(
            job.id,
            status=ScrapingJobStatus.FAILED,
            error_message="RuntimeError: boom",
            fail_unprocessed=True,
        )

        assert failed.processed_urls == 3
        assert (failed.successful_scrapes, failed.failed_scrapes) == (1, 2)

    def test_fail_stale_jobs_respects_cutoff_and_status(self, jobs) -> None:
        pending = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by=None)
        processing = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by=None)
        jobs.mark_processing(processing.id)
        done = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by=None)
        jobs.finalize_job(done.id, status=ScrapingJobStatus.COMPLETED)
        now = datetime.now(timezone.utc)

        assert jobs.fail_stale_jobs(
            statuses=ScrapingJobStatus.ACTIVE,
            error_message="timeout",
            older_than=now - timedelta(hours=1),
        ) == []

        failed = jobs.fail_stale_jobs(
            statuses=ScrapingJobStatus.ACTIVE,
            error_message="timeout",
            older_than=now + timedelta(minutes=1),
            now=now,
        )

        assert sorted(job.id for job in failed) == sorted([pending.id, processing.id])
        assert all(job.error_message == "timeout" for job in failed)
        assert jobs.get_job(done.id).status == ScrapingJobStatus.COMPLETED

    def test_list_count_and_delete(self, jobs) -> None:
        first = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by="user-1")
        jobs.create_job(urls=[URL], platform="ebay", settings=JobSettings(), created_by="user-2")

        assert jobs.count_jobs() == 2
        assert [job.platform for job in jobs.list_jobs(created_by="user-1")] == ["amazon"]
        assert len(jobs.list_jobs(limit=1)) == 1

        assert jobs.delete_job(first.id) is True
        assert jobs.get_job(first.id) is None
        assert jobs.count_jobs(platform="amazon") == 0


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


class TestProductStore:
    def test_store_and_read_candidate(self, products) -> None:
        candidate = make_candidate(images=["https://cdn.example.com/1.jpg"])

        candidate_id = products.store_candidate(candidate, job_id=None, provider="best_effort")
        stored = products.get_candidate(candidate_id)

        assert stored.provider == "best_effort"
        assert stored.imported is False
        assert stored.candidate.title == candidate.title
        assert stored.candidate.price == 49.99
        assert stored.candidate.images == candidate.images
        assert stored.candidate.scraped_at == FIXED_NOW

    def test_import_and_statistics(self, products, jobs) -> None:
        job = jobs.create_job(urls=[URL], platform="amazon", settings=JobSettings(), created_by="user-1")
        first = products.store_candidate(make_candidate(), job_id=job.id, provider=None)
        products.store_candidate(make_candidate(), job_id=job.id, provider=None)

        product_id = products.import_candidate(
            first,
            product_fields={"name": "Echo Dot", "price": 49.99, "images": [], "is_active": True},
            modifications={"name": "Echo Dot"},
        )

        assert product_id
        assert products.get_candidate(first).imported is True
        assert [c.job_id for c in products.list_candidates(job_id=job.id)] == [job.id, job.id]

        stats = products.statistics(created_by="user-1")
        assert (stats.total_scraped, stats.total_imported, stats.pending_import) == (2, 1, 1)
        assert stats.jobs_by_status == {"pending": 1}

    def test_import_unknown_candidate(self, products) -> None:
        with pytest.raises(RecordNotFoundError):
            products.import_candidate(
                "6f1c1d9e-7a0b-4c36-9d55-0d5c2f0a9b11",
                product_fields={"name": "x"},
                modifications={},
            )

    def test_delete_by_source_url_keeps_imported(self, products) -> None:
        imported = products.store_candidate(make_candidate(), job_id=None, provider=None)
        products.import_candidate(imported, product_fields={"name": "Echo"}, modifications={})
        products.store_candidate(make_candidate(), job_id=None, provider=None)
        products.store_candidate(make_candidate("https://www.ebay.com/itm/1"), job_id=None, provider=None)

        assert products.delete_candidates_by_source_url(URL) == 1
        assert products.get_candidate(imported) is not None
        assert len(products.list_candidates()) == 2

    def test_delete_candidate_cascades_to_catalog(self, products) -> None:
        candidate_id = products.store_candidate(make_candidate(), job_id=None, provider=None)
        products.import_candidate(candidate_id, product_fields={"name": "Echo"}, modifications={})

        products.delete_candidate(candidate_id)

        assert products.get_candidate(candidate_id) is None
        assert products.statistics().total_imported == 0
        with pytest.raises(RecordNotFoundError):
            products.delete_candidate(candidate_id)
