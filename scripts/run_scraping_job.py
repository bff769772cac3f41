"""
Run one scraping job from the CLI and print the finished job as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.schemas.scraping_jobs import ScrapingJobResponse
from app.services.scraping_job_orchestrator import ScrapingJobOrchestrator


def main() -> int:
    parser = argparse.ArgumentParser(description="Scrape product URLs into the staging table.")
    parser.add_argument("urls", nargs="+", help="Product page URLs.")
    parser.add_argument("--platform", default=None, help="Optional platform override.")
    parser.add_argument("--actor", default="cli", help="Value recorded as created_by.")
    parser.add_argument(
        "--auto-import",
        action="store_true",
        help="Import each scraped product into the catalog immediately.",
    )
    parser.add_argument(
        "--no-professional-apis",
        action="store_true",
        help="Skip the RapidAPI provider.",
    )
    parser.add_argument(
        "--no-ai",
        action="store_true",
        help="Skip LLM description enhancement.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    orchestrator = ScrapingJobOrchestrator()
    job = orchestrator.submit(
        args.urls,
        platform=args.platform,
        settings={
            "auto_import": args.auto_import,
            "use_professional_apis": not args.no_professional_apis,
            "use_ai_enhancement": not args.no_ai,
        },
        created_by=args.actor,
    )
    orchestrator.join(job.id)
    orchestrator.shutdown(wait=True)

    finished = orchestrator.get_status(job.id)
    print(ScrapingJobResponse.from_record(finished).model_dump_json(indent=2))
    return 0 if finished.successful_scrapes else 1


if __name__ == "__main__":
    raise SystemExit(main())
