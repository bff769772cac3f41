"""
Exceptions raised by the product scraping core.
"""

from __future__ import annotations


class ScrapingError(Exception):
    """Base exception for scraping job and catalog import failures."""


class ScrapingValidationError(ScrapingError):
    """Raised when a submitted request fails input validation."""


class RecordNotFoundError(ScrapingError):
    """Raised when a referenced job or candidate does not exist."""


class JobStateError(ScrapingError):
    """Raised when an operation is not allowed in the job's current status."""


class ExtractionError(ScrapingError):
    """
    Raised when no provider produced a usable product for one URL.

    Recorded per URL on the job; never fails the job as a whole.
    """

    def __init__(self, reason: str, *, attempt_errors: list[str] | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.attempt_errors = list(attempt_errors or [])


class OrchestratorError(ScrapingError):
    """Raised when a job worker cannot continue; the job is marked failed."""
