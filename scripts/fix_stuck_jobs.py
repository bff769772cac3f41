"""
Fail scraping jobs stuck in pending or processing.
"""

from __future__ import annotations

import argparse
import json

from app.services.scraping_job_orchestrator import ScrapingJobOrchestrator


def main() -> int:
    parser = argparse.ArgumentParser(description="Reconcile stuck scraping jobs.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Fail every processing job regardless of age.",
    )
    args = parser.parse_args()

    orchestrator = ScrapingJobOrchestrator()
    try:
        if args.force:
            affected = orchestrator.force_fix_all_stuck_jobs()
        else:
            affected = orchestrator.fix_stuck_jobs()
    finally:
        orchestrator.shutdown(wait=False)

    print(json.dumps({"affected": affected, "count": len(affected)}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
