"""
tests/test_config_loader.py

Platform config JSON loading and environment-driven settings.
"""

from __future__ import annotations

import json
from collections.abc import Iterator

import pytest

from app.config import get_ai_enhancement_settings, get_professional_api_settings
from app.scraping.config import get_product_scraping_settings, load_platform_configs
from app.scraping.platforms import SUPPORTED_PLATFORMS
from db.config import normalize_postgres_url, resolve_database_url


CACHED_SETTINGS = (
    get_product_scraping_settings,
    get_professional_api_settings,
    get_ai_enhancement_settings,
)


@pytest.fixture()
def fresh_settings() -> Iterator[None]:
    for getter in CACHED_SETTINGS:
        getter.cache_clear()
    yield
    for getter in CACHED_SETTINGS:
        getter.cache_clear()


class TestPlatformConfigs:
    def test_bundled_file_covers_every_platform(self) -> None:
        configs = load_platform_configs(config_path="app/scraping/config/platforms.json")

        assert set(SUPPORTED_PLATFORMS) <= set(configs)
        assert "#productTitle" in configs["amazon"].selectors["title"]
        assert configs["amazon"].default_currency == "USD"

    def test_entries_are_normalized(self, tmp_path) -> None:
        path = tmp_path / "platforms.json"
        path.write_text(
            json.dumps(
                {
                    "platforms": [
                        {
                            "name": " Shop ",
                            "selectors": {"Title": "h1.name", "price": ["", ".price", 3]},
                            "headers": {"Accept-Language": " en ", "X-Empty": " "},
                            "rate_limit_per_second": "0.5",
                            "default_currency": " EUR ",
                        },
                        {"name": ""},
                        "not-a-dict",
                    ]
                }
            ),
            encoding="utf-8",
        )

        configs = load_platform_configs(config_path=str(path))

        assert list(configs) == ["shop"]
        shop = configs["shop"]
        assert shop.selectors == {"title": ["h1.name"], "price": [".price"]}
        assert shop.headers == {"Accept-Language": "en"}
        assert shop.rate_limit_per_second == 0.5
        assert shop.default_currency == "EUR"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            load_platform_configs(config_path=str(tmp_path / "nope.json"))

    def test_platforms_must_be_a_list(self, tmp_path) -> None:
        path = tmp_path / "platforms.json"
        path.write_text(json.dumps({"platforms": {"name": "amazon"}}), encoding="utf-8")

        with pytest.raises(ValueError):
            load_platform_configs(config_path=str(path))


class TestEnvironmentSettings:
    def test_scraper_settings_from_env(self, monkeypatch, fresh_settings) -> None:
        monkeypatch.setenv("SCRAPER_MAX_BATCH_SIZE", "25")
        monkeypatch.setenv("SCRAPER_INTER_REQUEST_DELAY_SECONDS", "-3")
        monkeypatch.setenv("SCRAPER_STALE_JOB_MINUTES", "not-a-number")
        monkeypatch.setenv("SCRAPER_EXTRA_PROVIDERS", "pkg.mod:Shop, ,other.mod:Store")

        settings = get_product_scraping_settings()

        assert settings.max_batch_size == 25
        assert settings.inter_request_delay_seconds == 0.0
        assert settings.stale_job_minutes == 5
        assert settings.extra_providers == ("pkg.mod:Shop", "other.mod:Store")
        assert settings.config_path.endswith("platforms.json")

    def test_professional_api_needs_key(self, monkeypatch, fresh_settings) -> None:
        monkeypatch.delenv("RAPIDAPI_KEY", raising=False)
        assert get_professional_api_settings().is_configured is False

        get_professional_api_settings.cache_clear()
        monkeypatch.setenv("RAPIDAPI_KEY", "secret")
        assert get_professional_api_settings().is_configured is True

    def test_ai_settings_key_precedence_and_adapter_fallback(self, monkeypatch, fresh_settings) -> None:
        monkeypatch.setenv("LLM_API_KEY", "primary")
        monkeypatch.setenv("OPENAI_API_KEY", "secondary")
        monkeypatch.setenv("LLM_ADAPTER", "unknown")
        monkeypatch.setenv("LLM_TEMPERATURE", "9")
        monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "0.1")

        settings = get_ai_enhancement_settings()

        assert settings.api_key == "primary"
        assert settings.adapter == "openai"
        assert settings.temperature == 2.0
        assert settings.timeout_seconds == 1.0
        assert settings.is_configured is True

    def test_mock_adapter_needs_no_key(self, monkeypatch, fresh_settings) -> None:
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("LLM_ADAPTER", "mock")

        assert get_ai_enhancement_settings().is_configured is True


class TestDatabaseUrl:
    def test_postgres_urls_use_psycopg_driver(self) -> None:
        assert normalize_postgres_url("postgres://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
        assert normalize_postgres_url("postgresql://u:p@h/db") == "postgresql+psycopg://u:p@h/db"
        assert normalize_postgres_url("sqlite://") == "sqlite://"

    def test_dedicated_override_wins(self, monkeypatch) -> None:
        monkeypatch.setenv("SCRAPER_DATABASE_URL", "postgresql://scraper@h/db")
        monkeypatch.setenv("DATABASE_URL", "postgresql://app@h/db")

        assert resolve_database_url() == "postgresql+psycopg://scraper@h/db"

    def test_cloud_url_only_in_cloud_environments(self, monkeypatch) -> None:
        for name in ("SCRAPER_DATABASE_URL", "DATABASE_URL"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("CLOUD_DATABASE_URL", "postgresql://cloud@h/db")
        monkeypatch.setenv("LOCAL_DATABASE_URL", "postgresql://local@h/db")

        monkeypatch.setenv("ENVIRONMENT", "local")
        assert resolve_database_url() == "postgresql+psycopg://local@h/db"

        monkeypatch.setenv("ENVIRONMENT", "production")
        assert resolve_database_url() == "postgresql+psycopg://cloud@h/db"
