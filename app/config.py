"""
app/config.py

Application-level configuration helpers for external extraction providers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_LLM_ADAPTERS = {"openai", "mock"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ProfessionalApiSettings:
    """
    RapidAPI product-detail endpoints used by the professional provider.
    """

    enabled: bool = True
    api_key: str | None = None
    amazon_host: str = "amazon-product-details1.p.rapidapi.com"
    aliexpress_host: str = "aliexpress-product-details.p.rapidapi.com"
    ebay_host: str = "ebay-products-search.p.rapidapi.com"
    country: str = "US"
    timeout_seconds: float = 20.0

    @property
    def is_configured(self) -> bool:
        return self.enabled and bool(self.api_key)


@dataclass(frozen=True)
class AIEnhancementSettings:
    """
    LLM settings for the description-rewriting provider.
    """

    enabled: bool = True
    adapter: str = "openai"
    api_key: str | None = None
    model: str = "gpt-3.5-turbo"
    base_url: str | None = None
    max_tokens: int = 400
    temperature: float = 0.7
    timeout_seconds: float = 20.0

    @property
    def is_configured(self) -> bool:
        if not self.enabled:
            return False
        return self.adapter == "mock" or bool(self.api_key)


@lru_cache(maxsize=1)
def get_professional_api_settings() -> ProfessionalApiSettings:
    """
    Return cached RapidAPI settings from environment variables.
    """

    return ProfessionalApiSettings(
        enabled=_get_bool_env("RAPIDAPI_ENABLED", True),
        api_key=_get_optional_str_env("RAPIDAPI_KEY"),
        amazon_host=_get_str_env("RAPIDAPI_AMAZON_HOST", "amazon-product-details1.p.rapidapi.com"),
        aliexpress_host=_get_str_env(
            "RAPIDAPI_ALIEXPRESS_HOST",
            "aliexpress-product-details.p.rapidapi.com",
        ),
        ebay_host=_get_str_env("RAPIDAPI_EBAY_HOST", "ebay-products-search.p.rapidapi.com"),
        country=_get_str_env("RAPIDAPI_COUNTRY", "US"),
        timeout_seconds=max(1.0, _get_float_env("RAPIDAPI_TIMEOUT_SECONDS", 20.0)),
    )


@lru_cache(maxsize=1)
def get_ai_enhancement_settings() -> AIEnhancementSettings:
    """
    Return cached LLM settings from environment variables.

    LLM_API_KEY takes precedence over OPENAI_API_KEY. Unknown adapter names
    fall back to 'openai'.
    """

    adapter = _get_str_env("LLM_ADAPTER", "openai").lower()
    if adapter not in _LLM_ADAPTERS:
        adapter = "openai"
    return AIEnhancementSettings(
        enabled=_get_bool_env("AI_ENHANCEMENT_ENABLED", True),
        adapter=adapter,
        api_key=_get_optional_str_env("LLM_API_KEY") or _get_optional_str_env("OPENAI_API_KEY"),
        model=_get_str_env("LLM_MODEL", "gpt-3.5-turbo"),
        base_url=_get_optional_str_env("LLM_BASE_URL"),
        max_tokens=max(16, _get_int_env("LLM_MAX_TOKENS", 400)),
        temperature=min(2.0, max(0.0, _get_float_env("LLM_TEMPERATURE", 0.7))),
        timeout_seconds=max(1.0, _get_float_env("LLM_TIMEOUT_SECONDS", 20.0)),
    )
