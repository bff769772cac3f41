"""
tests/conftest.py

Shared fixtures for scraping tests.
"""

from __future__ import annotations

import pytest

from app.scraping.config.models import ProductScrapingSettings
from fakes import InMemoryJobStore, InMemoryProductStore, MutableClock, make_settings


@pytest.fixture()
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture()
def job_store(clock: MutableClock) -> InMemoryJobStore:
    return InMemoryJobStore(clock=clock)


@pytest.fixture()
def product_store() -> InMemoryProductStore:
    return InMemoryProductStore()


@pytest.fixture()
def scraping_settings() -> ProductScrapingSettings:
    return make_settings()
