"""
Storage layer interfaces for scraping jobs and product candidates.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from app.domain.scraping import (
    ImportStatistics,
    JobSettings,
    ScrapedProductCandidate,
    ScrapingJobRecord,
    StoredCandidate,
    UrlScrapeResult,
)


class JobStore(ABC):
    """
    Storage abstraction for scraping job records.

    Mutations of one job are applied atomically; conditional transitions
    return None instead of raising when the job is missing or in the wrong
    state.
    """

    @abstractmethod
    def create_job(
        self,
        *,
        urls: list[str],
        platform: str,
        settings: JobSettings,
        created_by: str | None,
    ) -> ScrapingJobRecord:
        """
        Persist a new pending job.
        """

    @abstractmethod
    def get_job(self, job_id: str) -> ScrapingJobRecord | None:
        """
        Return the job or None when the id is unknown.
        """

    @abstractmethod
    def list_jobs(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> list[ScrapingJobRecord]:
        """
        Return jobs newest first.
        """

    @abstractmethod
    def count_jobs(
        self,
        *,
        status: str | None = None,
        platform: str | None = None,
        created_by: str | None = None,
    ) -> int:
        """
        Count jobs matching the same filters as list_jobs.
        """

    @abstractmethod
    def mark_processing(self, job_id: str) -> ScrapingJobRecord | None:
        """
        Move a pending job to processing; None if it is not pending.
        """

    @abstractmethod
    def record_url_result(
        self,
        job_id: str,
        *,
        result: UrlScrapeResult,
        imported: bool = False,
    ) -> ScrapingJobRecord | None:
        """
        Append one URL outcome and bump counters; None once the job is not
        processing.
        """

    @abstractmethod
    def finalize_job(
        self,
        job_id: str,
        *,
        status: str,
        error_message: str | None = None,
        mark_all_processed: bool = True,
        fail_unprocessed: bool = False,
    ) -> ScrapingJobRecord | None:
        """
        Move a non-terminal job to a terminal status; None if already terminal.

        `fail_unprocessed` counts every URL not yet processed as failed so that
        successful + failed == processed == total afterwards.
        """

    @abstractmethod
    def fail_stale_jobs(
        self,
        *,
        statuses: Iterable[str],
        error_message: str,
        older_than: datetime | None = None,
        now: datetime | None = None,
    ) -> list[ScrapingJobRecord]:
        """
        Fail every job in `statuses` created before `older_than` (all of them
        when None) and return the transitioned jobs.
        """

    @abstractmethod
    def delete_job(self, job_id: str) -> bool:
        """
        Delete the job; False when it does not exist.
        """


class ProductStore(ABC):
    """
    Storage abstraction for staged candidates and catalog products.
    """

    @abstractmethod
    def store_candidate(
        self,
        candidate: ScrapedProductCandidate,
        *,
        job_id: str | None,
        provider: str | None,
    ) -> str:
        """
        Persist a candidate and return its id.
        """

    @abstractmethod
    def get_candidate(self, candidate_id: str) -> StoredCandidate | None:
        """
        Return the candidate or None when the id is unknown.
        """

    @abstractmethod
    def list_candidates(
        self,
        *,
        platform: str | None = None,
        job_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[StoredCandidate]:
        """
        Return candidates newest first.
        """

    @abstractmethod
    def delete_candidates_by_source_url(self, source_url: str) -> int:
        """
        Delete not-yet-imported candidates for `source_url`; return the count.
        """

    @abstractmethod
    def import_candidate(
        self,
        candidate_id: str,
        *,
        product_fields: dict[str, Any],
        modifications: dict[str, Any],
    ) -> str:
        """
        Create a catalog product plus its import record; return the product id.

        Raises RecordNotFoundError when the candidate does not exist. The
        candidate itself is left unchanged.
        """

    @abstractmethod
    def delete_candidate(self, candidate_id: str) -> None:
        """
        Delete a candidate together with its import records and imported
        catalog products. Raises RecordNotFoundError when unknown.
        """

    @abstractmethod
    def statistics(self, *, created_by: str | None = None) -> ImportStatistics:
        """
        Return staging and import counters plus job counts by status.
        """
