"""
Environment + JSON config loader for product scraping.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

from app.scraping.config.models import PlatformConfig, ProductScrapingSettings


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_list_env(name: str) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return ()
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_product_scraping_settings() -> ProductScrapingSettings:
    """
    Return cached scraper settings from environment variables.
    """

    load_env_files()
    config_path = _get_str_env(
        "SCRAPER_PLATFORM_CONFIG_PATH",
        "app/scraping/config/platforms.json",
    )
    return ProductScrapingSettings(
        config_path=str(_resolve_config_path(config_path)),
        default_user_agent=_get_str_env(
            "SCRAPER_USER_AGENT",
            "Mozilla/5.0 (compatible; CatalogImportBot/1.0)",
        ),
        default_rate_limit_per_second=max(
            0.1,
            _get_float_env("SCRAPER_RATE_LIMIT_PER_SECOND", 1.0),
        ),
        timeout_seconds=max(1.0, _get_float_env("SCRAPER_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("SCRAPER_MAX_RETRIES", 2)),
        backoff_initial_seconds=max(
            0.1,
            _get_float_env("SCRAPER_BACKOFF_INITIAL_SECONDS", 0.5),
        ),
        backoff_multiplier=max(1.0, _get_float_env("SCRAPER_BACKOFF_MULTIPLIER", 2.0)),
        allow_when_robots_unreachable=_get_bool_env(
            "SCRAPER_ALLOW_WHEN_ROBOTS_UNREACHABLE",
            True,
        ),
        respect_robots=_get_bool_env("SCRAPER_RESPECT_ROBOTS", True),
        inter_request_delay_seconds=max(
            0.0,
            _get_float_env("SCRAPER_INTER_REQUEST_DELAY_SECONDS", 2.0),
        ),
        provider_timeout_seconds=max(
            1.0,
            _get_float_env("SCRAPER_PROVIDER_TIMEOUT_SECONDS", 30.0),
        ),
        url_timeout_seconds=max(1.0, _get_float_env("SCRAPER_URL_TIMEOUT_SECONDS", 90.0)),
        max_batch_size=max(1, _get_int_env("SCRAPER_MAX_BATCH_SIZE", 50)),
        max_concurrent_jobs=max(1, _get_int_env("SCRAPER_MAX_CONCURRENT_JOBS", 4)),
        provider_pool_size=max(1, _get_int_env("SCRAPER_PROVIDER_POOL_SIZE", 8)),
        stale_job_minutes=max(1, _get_int_env("SCRAPER_STALE_JOB_MINUTES", 5)),
        manual_stale_job_minutes=max(1, _get_int_env("SCRAPER_MANUAL_STALE_JOB_MINUTES", 10)),
        sweep_interval_minutes=max(1, _get_int_env("SCRAPER_SWEEP_INTERVAL_MINUTES", 5)),
        extra_providers=_get_list_env("SCRAPER_EXTRA_PROVIDERS"),
    )


def load_platform_configs(*, config_path: str) -> dict[str, PlatformConfig]:
    """
    Load per-platform parsing hints from a JSON file, keyed by platform name.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Platform config file not found: {path}")

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    platforms = raw_data.get("platforms", [])
    if not isinstance(platforms, list):
        raise ValueError("Invalid platform config: 'platforms' must be a list.")

    parsed: dict[str, PlatformConfig] = {}
    for entry in platforms:
        if not isinstance(entry, dict):
            continue

        name = str(entry.get("name", "")).strip().lower()
        if not name:
            continue

        parsed[name] = PlatformConfig(
            name=name,
            selectors=_normalize_selectors(entry.get("selectors", {})),
            headers=_normalize_headers(entry.get("headers", {})),
            rate_limit_per_second=_optional_float(entry.get("rate_limit_per_second")),
            default_currency=_optional_str(entry.get("default_currency")),
        )

    return parsed


def _normalize_selectors(selectors: object) -> dict[str, list[str]]:
    if not isinstance(selectors, dict):
        return {}

    normalized: dict[str, list[str]] = {}
    for key, value in selectors.items():
        if not isinstance(key, str):
            continue
        if isinstance(value, str):
            selector_list = [value.strip()] if value.strip() else []
        elif isinstance(value, list):
            selector_list = [
                item.strip()
                for item in value
                if isinstance(item, str) and item.strip()
            ]
        else:
            selector_list = []
        normalized[key.strip().lower()] = selector_list
    return normalized


def _normalize_headers(headers: object) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}

    normalized: dict[str, str] = {}
    for key, value in headers.items():
        if not isinstance(key, str) or not isinstance(value, str):
            continue
        if key.strip() and value.strip():
            normalized[key.strip()] = value.strip()
    return normalized


def _optional_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
