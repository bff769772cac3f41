"""
app/scheduler/jobs.py

APScheduler-based background scheduler for scraping job maintenance.

Schedule (all times UTC)
--------------------------
  stale_job_sweep: every SCRAPER_SWEEP_INTERVAL_MINUTES (default 5)

The sweep fails pending and processing jobs older than
SCRAPER_STALE_JOB_MINUTES. It complements the opportunistic sweep that runs
at the start of every orchestrator request, so stuck jobs are reconciled
even when no one is calling the API.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.scraping.config import get_product_scraping_settings
from app.services.stuck_job_reconciler import get_stuck_job_reconciler

logger = logging.getLogger(__name__)


def run_stale_job_sweep() -> None:
    """
    Fail jobs whose worker stalled past the staleness threshold.
    Never raises; failures are logged by the reconciler.
    """
    job_ids = get_stuck_job_reconciler().sweep_quietly()
    logger.info("Scheduler: stale_job_sweep complete failed_jobs=%d", len(job_ids))


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = get_product_scraping_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_stale_job_sweep,
        trigger="interval",
        minutes=settings.sweep_interval_minutes,
        id="stale_job_sweep",
        name="Stale scraping job sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )

    return scheduler
