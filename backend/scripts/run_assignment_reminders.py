#!/usr/bin/env python3
"""
Run the assignment reminder once (same routine as the weekday/weekend cron jobs).
Use after a failed scheduled run; there is no HTTP endpoint for this.
Run: cd backend && python scripts/run_assignment_reminders.py
"""
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.scheduler.assignment_reminder_job import run_assignment_reminder_job


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    result = run_assignment_reminder_job(trigger="manual")
    if result.get("skipped"):
        print(f"Skipped: {result['skipped']}")
    else:
        print(
            f"Done. sent={result['sentCount']}, failed={result['failedCount']}, "
            f"pruned={result['prunedCount']}"
        )


if __name__ == "__main__":
    main()
