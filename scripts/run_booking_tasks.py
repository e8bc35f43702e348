#!/usr/bin/env python3
"""Periodic booking housekeeping: refresh the calendar mirror and expire stale pending bookings.

Run from cron, e.g. every 15 minutes:
    */15 * * * * cd /srv/app && python scripts/run_booking_tasks.py
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.core.config import settings
from app.wiring.dependencies import get_maintenance_use_case


def main() -> int:
    parser = argparse.ArgumentParser(description="Run booking maintenance tasks")
    parser.add_argument("--skip-calendar", action="store_true", help="do not refresh the calendar cache")
    parser.add_argument("--skip-expiry", action="store_true", help="do not cancel stale pending bookings")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s:%(name)s:%(message)s",
    )
    logger = logging.getLogger("booking_tasks")
    maintenance = get_maintenance_use_case()

    exit_code = 0
    if not args.skip_calendar:
        if maintenance.refresh_calendar():
            logger.info("Calendar cache refreshed successfully")
        else:
            logger.warning("Calendar cache refresh returned false")
            exit_code = 1

    if not args.skip_expiry:
        expired = maintenance.expire_stale_pending()
        logger.info("Cancelled %s expired pending bookings", len(expired))

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
