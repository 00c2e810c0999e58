#!/usr/bin/env python3
"""
Build today's agenda from the calendar and the Miro board, then deliver it.

Fetches today's and the rest of the work week's events, the focus areas and
the boss-status notes, analyzes the day, and sends the message to Telegram
(or by email when DELIVERY_CHANNEL=email).

Usage:
    uv run python src/scripts/send_daily_agenda.py
    uv run python src/scripts/send_daily_agenda.py --date 2025-11-07 --dry-run
"""

import argparse
import asyncio
import sys
from datetime import date, datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import LOG_LEVEL, ConfigError, load_config
from core.logging import setup_logging
from services.pipeline import run_agenda


def parse_date(date_str: str | None) -> date | None:
    if not date_str:
        return None
    return datetime.strptime(date_str, "%Y-%m-%d").date()


async def main(date_str: str | None = None, dry_run: bool = False) -> int:
    """Main entry point."""
    setup_logging(LOG_LEVEL)

    try:
        config = load_config()
    except ConfigError as e:
        print(f"\n{e}")
        return 2

    agenda_date = parse_date(date_str)
    print(f"Generating agenda for {agenda_date or 'today'}")

    result = await run_agenda(config, today=agenda_date, deliver=not dry_run)

    print("\n" + "=" * 60)
    print(result.message)
    print("=" * 60)

    if result.errors:
        print("\nWarnings:")
        for error in result.errors:
            print(f"  - {error}")

    if dry_run:
        print("\nDry run: message not delivered")
    elif result.delivered:
        print(f"\nDelivered via {config.delivery_channel}")

    print("\nDone!" if result.success else "\nFinished with errors")
    return 0 if result.success else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate and send the daily agenda")
    parser.add_argument(
        "--date",
        help="Agenda date (YYYY-MM-DD). Defaults to today in the work timezone.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the message without delivering it",
    )
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.date, args.dry_run)))
