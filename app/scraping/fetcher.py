"""
HTTP fetch primitives used by extraction providers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from typing import Any

import requests

from app.scraping.config.models import PlatformConfig, ProductScrapingSettings
from app.scraping.errors import ScrapingError
from app.scraping.logging_utils import log_event
from app.scraping.rate_limiter import DomainRateLimiter
from app.scraping.robots import RobotsPolicyManager

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


class PageFetchError(ScrapingError):
    """Raised when a page or API response cannot be retrieved."""


class PageFetcher:
    """
    Rate-limited, robots-aware HTTP client with retry and exponential backoff.
    """

    def __init__(
        self,
        *,
        settings: ProductScrapingSettings,
        platform_configs: Mapping[str, PlatformConfig] | None = None,
        session: requests.Session | None = None,
        rate_limiter: DomainRateLimiter | None = None,
        robots_policy: RobotsPolicyManager | None = None,
    ) -> None:
        self.settings = settings
        self.platform_configs = dict(platform_configs or {})
        self.session = session or requests.Session()
        self.rate_limiter = rate_limiter or DomainRateLimiter(
            default_rate_limit_per_second=settings.default_rate_limit_per_second,
        )
        self.robots_policy = robots_policy
        if self.robots_policy is None and settings.respect_robots:
            self.robots_policy = RobotsPolicyManager(
                session=self.session,
                timeout_seconds=min(10.0, settings.timeout_seconds),
                allow_when_unreachable=settings.allow_when_robots_unreachable,
            )

    def fetch_html(self, url: str, *, platform: str) -> str:
        """
        Fetch a product page and return its HTML text.
        """

        config = self.platform_configs.get(platform)
        user_agent = self.settings.default_user_agent
        headers = {"User-Agent": user_agent, **DEFAULT_HEADERS}
        if config is not None:
            headers.update(config.headers)

        crawl_delay: float | None = None
        if self.robots_policy is not None:
            if not self.robots_policy.can_fetch(url=url, user_agent=user_agent):
                log_event(logger, logging.WARNING, "page_blocked_by_robots", url=url)
                raise PageFetchError(f"Blocked by robots.txt: {url}")
            crawl_delay = self.robots_policy.crawl_delay(url=url, user_agent=user_agent)

        self.rate_limiter.wait(
            url=url,
            rate_limit_per_second=config.rate_limit_per_second if config else None,
            crawl_delay_seconds=crawl_delay,
        )
        response = self._request_with_retry("GET", url, headers=headers)
        return response.text

    def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> Any:
        """
        Call a JSON API endpoint and return the decoded body.
        """

        self.rate_limiter.wait(url=url)
        response = self._request_with_retry(
            method,
            url,
            headers=dict(headers),
            params=params,
            json_body=json_body,
            timeout_seconds=timeout_seconds,
        )
        try:
            return response.json()
        except ValueError as exc:
            raise PageFetchError(f"Invalid JSON from {url}: {exc}") from exc

    def _request_with_retry(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        params: Mapping[str, Any] | None = None,
        json_body: Mapping[str, Any] | None = None,
        timeout_seconds: float | None = None,
    ) -> requests.Response:
        last_error: Exception | None = None

        for attempt in range(self.settings.max_retries + 1):
            try:
                response = self.session.request(
                    method,
                    url,
                    headers=headers,
                    params=params,
                    json=json_body,
                    timeout=timeout_seconds or self.settings.timeout_seconds,
                    allow_redirects=True,
                )
                if response.status_code in RETRYABLE_STATUS_CODES:
                    raise requests.HTTPError(
                        f"Retryable status={response.status_code}",
                        response=response,
                    )
                response.raise_for_status()
                return response
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as exc:
                last_error = exc
                if isinstance(exc, requests.HTTPError):
                    status_code = exc.response.status_code if exc.response is not None else None
                    if status_code not in RETRYABLE_STATUS_CODES:
                        raise PageFetchError(f"HTTP {status_code} for {url}") from exc

            if attempt >= self.settings.max_retries:
                break

            backoff_seconds = self.settings.backoff_initial_seconds * (
                self.settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.INFO,
                "fetch_retry",
                url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=str(last_error),
            )
            time.sleep(backoff_seconds)

        raise PageFetchError(f"Failed to fetch {url} after retries: {last_error}")
