"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PlatformConfig:
    """
    Parsing hints for one e-commerce platform.
    """

    name: str
    selectors: dict[str, list[str]] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    rate_limit_per_second: float | None = None
    default_currency: str | None = None


@dataclass(frozen=True)
class ProductScrapingSettings:
    """
    Runtime settings for product scraping jobs.
    """

    config_path: str
    default_user_agent: str
    default_rate_limit_per_second: float
    timeout_seconds: float
    max_retries: int
    backoff_initial_seconds: float
    backoff_multiplier: float
    allow_when_robots_unreachable: bool
    respect_robots: bool
    inter_request_delay_seconds: float
    provider_timeout_seconds: float
    url_timeout_seconds: float
    max_batch_size: int
    max_concurrent_jobs: int
    provider_pool_size: int
    stale_job_minutes: int
    manual_stale_job_minutes: int
    sweep_interval_minutes: int
    extra_providers: tuple[str, ...] = ()
