"""
Per-host request rate limiter shared by all job workers.
"""

from __future__ import annotations

import threading
import time
from urllib.parse import urlparse


class DomainRateLimiter:
    """
    Enforces a minimum interval between requests to the same host.

    Slots are reserved under the lock and slept outside it, so workers
    hitting different hosts never wait on each other.
    """

    def __init__(self, *, default_rate_limit_per_second: float) -> None:
        self._default_rate_limit_per_second = max(0.1, default_rate_limit_per_second)
        self._next_slot_by_domain: dict[str, float] = {}
        self._lock = threading.Lock()

    def wait(
        self,
        *,
        url: str,
        rate_limit_per_second: float | None = None,
        crawl_delay_seconds: float | None = None,
    ) -> float:
        """
        Sleep until this request's slot for the URL's host; return seconds slept.
        """

        parsed = urlparse(url)
        domain = parsed.netloc.lower() or parsed.path.lower()
        if not domain:
            return 0.0

        effective_rps = max(
            0.1,
            rate_limit_per_second or self._default_rate_limit_per_second,
        )
        min_interval = 1.0 / effective_rps
        if crawl_delay_seconds is not None:
            min_interval = max(min_interval, max(0.0, crawl_delay_seconds))

        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot_by_domain.get(domain, 0.0))
            self._next_slot_by_domain[domain] = slot + min_interval

        wait_seconds = slot - time.monotonic()
        if wait_seconds > 0:
            time.sleep(wait_seconds)
            return wait_seconds
        return 0.0
