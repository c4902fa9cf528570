#!/usr/bin/env python3
"""CLI trigger for the daily meeting job.

Usage:
    uv run python scripts/run_daily_meeting.py
    uv run python scripts/run_daily_meeting.py --date 2025-06-10
    uv run python scripts/run_daily_meeting.py --sync-days 30 --prune

Connects directly to the database using DATABASE_URL from environment or .env file.
Ensures the day's meeting exists (syncing from the calendar first) and enrolls
every user with an active subscription covering that day. With --sync-days,
reconciles stored meetings with the platform calendar instead.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from datetime import date

# Ensure project root is on sys.path so we can import src.clubmeet
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv  # noqa: E402

# Load .env from project root
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))


async def run(meeting_date: date | None, sync_days: int | None, prune: bool) -> int:
    """Run the job once and print a summary. Returns the process exit code."""
    from src.clubmeet.bootstrap import build_services
    from src.clubmeet.config import get_settings
    from src.clubmeet.core.database import Database
    from src.clubmeet.core.logging import configure_structlog
    from src.clubmeet.core.timeutil import civil_today
    from src.clubmeet.meetings.schemas import Platform

    settings = get_settings()
    configure_structlog()

    if sync_days is None and not settings.ENABLE_CRON_JOBS:
        print("Cron jobs are disabled (ENABLE_CRON_JOBS=false); nothing to do.")
        return 0

    database = Database(settings.DATABASE_URL)
    try:
        services = build_services(settings, database)

        if sync_days is not None:
            adapter = services.platforms.get(Platform(settings.DEFAULT_MEETING_PLATFORM))
            start = meeting_date or civil_today(settings.TIMEZONE)
            result = await services.calendar_synchronizer.sync_range(
                start, sync_days, adapter, prune=prune
            )
            print(f"Calendar sync from {start} for {sync_days} day(s):")
            print(f"  Processed: {result.processed}")
            print(f"  Created:   {result.created}")
            print(f"  Updated:   {result.updated}")
            print(f"  Deleted:   {result.deleted}")
            print(f"  Skipped:   {result.skipped}")
            for error in result.errors:
                print(f"  Error:     {error}")
            return 1 if result.errors else 0

        outcome = await services.daily_job.run(meeting_date)
        print(f"Meeting for {outcome.meeting_date}:")
        print(f"  ID:          {outcome.meeting_id}")
        print(f"  Link:        {outcome.meeting_link}")
        print(f"  Subscribers: {outcome.active_subscribers}")
        print(f"  Attendees:   {outcome.attendees}")
        return 0
    finally:
        await database.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the daily meeting job")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Civil date (YYYY-MM-DD); defaults to today in TIMEZONE",
    )
    parser.add_argument(
        "--sync-days",
        type=int,
        default=None,
        help="Reconcile this many days with the calendar instead of running the job",
    )
    parser.add_argument(
        "--prune",
        action="store_true",
        help="With --sync-days, delete calendar-synced meetings whose event is gone",
    )
    args = parser.parse_args()

    if args.prune and args.sync_days is None:
        parser.error("--prune requires --sync-days")

    sys.exit(asyncio.run(run(args.date, args.sync_days, args.prune)))


if __name__ == "__main__":
    main()
