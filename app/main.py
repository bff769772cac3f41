from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI

from app.schemas.health import HealthResponse


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised and raises
    RuntimeError listing every problem at once.

    Rules:
    - One of the database URL variables must be set.
    - An enabled AI provider needs an LLM key unless LLM_ADAPTER=mock.
    - Enabled professional APIs need RAPIDAPI_KEY.
    """

    from app.config import get_ai_enhancement_settings, get_professional_api_settings
    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_vars = ("SCRAPER_DATABASE_URL", "DATABASE_URL", "CLOUD_DATABASE_URL", "LOCAL_DATABASE_URL")
    if not any(os.getenv(name, "").strip() for name in database_vars):
        errors.append(f"No database URL configured. Set one of: {', '.join(database_vars)}.")

    ai_settings = get_ai_enhancement_settings()
    if ai_settings.enabled and not ai_settings.is_configured:
        errors.append(
            "LLM API key is not set but AI_ENHANCEMENT_ENABLED is true. "
            "Provide LLM_API_KEY or OPENAI_API_KEY, set LLM_ADAPTER=mock, "
            "or disable with AI_ENHANCEMENT_ENABLED=false."
        )

    api_settings = get_professional_api_settings()
    if api_settings.enabled and not api_settings.is_configured:
        errors.append(
            "RAPIDAPI_KEY is not set but RAPIDAPI_ENABLED is true. "
            "Set RAPIDAPI_KEY or disable professional APIs with RAPIDAPI_ENABLED=false."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed:\n" + "\n".join(f"  - {message}" for message in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Aborts startup when any are missing. Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401 registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        log = logging.getLogger(__name__)
        log.critical(
            "Schema mismatch: %d table(s) defined in ORM metadata are absent from "
            "the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, start the sweep scheduler; stop workers on exit."""
    _check_db()
    logging.getLogger(__name__).info("Database connectivity confirmed")
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")

    from app.scheduler.jobs import build_scheduler
    from app.services.scraping_job_orchestrator import get_scraping_job_orchestrator

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")
        get_scraping_job_orchestrator().shutdown(wait=False)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Catalog Scraper API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import scraped_products_router, scraping_jobs_router

    application.include_router(scraping_jobs_router)
    application.include_router(scraped_products_router)

    @application.get("/health")
    def healthcheck() -> HealthResponse:
        return HealthResponse(
            status="ok",
            detail="Scraper API initialized successfully.",
        )

    return application


app = create_app()
