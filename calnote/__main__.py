"""Command-line entry for calnote.

Stands in for the note-taking host: prints the markwhen block for a day, or
runs the settings-page connection test against the configured feed.
"""

from __future__ import annotations

import argparse
import asyncio
import datetime
import logging
import sys
from pathlib import Path
from typing import Optional

from calnote.calendar.fetch_cache import CachedCalendarFetcher
from calnote.calendar.ics_fetcher import ICSFetcher
from calnote.core.config_manager import (
    DEFAULT_CACHE_TIMEOUT_SECONDS,
    DEFAULT_SETTINGS_FILENAME,
    ConfigManager,
    get_config_value,
)
from calnote.core.exceptions import CalNoteError
from calnote.core.logging_config import configure_logging
from calnote.core.timezone_utils import get_zone, today_in
from calnote.domain.daily_note import calendar_day_block, date_from_note_name
from calnote.domain.settings_store import ConnectionState, ConnectionTester, SettingsStore

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the calnote CLI."""
    parser = argparse.ArgumentParser(
        prog="calnote",
        description="Insert calendar feed events into daily notes as markwhen timelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calnote day                          # today's events from the configured feed
  python -m calnote day --date 2024-03-14        # a specific day
  python -m calnote day --note Daily/2024-03-14.md
  python -m calnote --url https://example.com/basic.ics test-url
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--url", help="Calendar feed URL (overrides settings and CALNOTE_ICS_URL)")
    parser.add_argument("--settings", type=Path, help="Path to the plugin settings JSON file")

    sub = parser.add_subparsers(dest="command", required=True)

    day = sub.add_parser("day", help="Print the markwhen block for one day")
    target = day.add_mutually_exclusive_group()
    target.add_argument("--date", type=datetime.date.fromisoformat, help="Day as YYYY-MM-DD")
    target.add_argument("--note", help="Daily note path; the date is taken from its name")
    day.add_argument("--timezone", help="IANA timezone for the day window and times")

    sub.add_parser("test-url", help="Check that the calendar URL can be fetched")

    return parser


def _resolve_url(args: argparse.Namespace, config: dict, store: SettingsStore) -> str:
    if args.url:
        return args.url
    configured = get_config_value(config, "ics_url")
    if configured:
        return configured
    return store.load().calendar_url


async def _run_day(args: argparse.Namespace, config: dict, url: str) -> int:
    tz_name = args.timezone or get_config_value(config, "default_timezone", "UTC")
    tz = get_zone(tz_name)

    if args.note:
        day = date_from_note_name(args.note)
        if day is None:
            print(f"Note {args.note!r} is not a daily note", file=sys.stderr)
            return 2
    else:
        day = args.date or today_in(tz)

    settings = {
        "request_timeout": get_config_value(config, "request_timeout", 30),
        "default_timezone": tz_name,
    }
    async with ICSFetcher(settings) as fetcher:
        timeout = get_config_value(config, "cache_timeout_seconds", DEFAULT_CACHE_TIMEOUT_SECONDS)
        cache = CachedCalendarFetcher(fetcher, url, timeout=timeout)
        calendar = await cache.get()

    print(calendar_day_block(calendar, day, tz))
    return 0


async def _run_test_url(config: dict, url: str) -> int:
    settings = {"request_timeout": get_config_value(config, "request_timeout", 30)}
    async with ICSFetcher(settings) as fetcher:
        tester = ConnectionTester(fetcher)
        state = await tester.test(url)

    if state is ConnectionState.SUCCESS:
        print(f"OK: {url}")
        return 0
    print(f"FAILED: {tester.error}", file=sys.stderr)
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Run the calnote CLI and return its exit code."""
    args = _create_parser().parse_args(argv)
    configure_logging(debug_mode=args.debug)

    config = ConfigManager().load_full_config()
    settings_path = args.settings or get_config_value(
        config, "settings_path", Path.cwd() / DEFAULT_SETTINGS_FILENAME
    )
    store = SettingsStore(settings_path)

    url = _resolve_url(args, config, store)
    if not url:
        print(
            "No calendar URL configured. Pass --url, set CALNOTE_ICS_URL, "
            f"or add CalendarURL to {settings_path}",
            file=sys.stderr,
        )
        return 2

    try:
        if args.command == "day":
            return asyncio.run(_run_day(args, config, url))
        return asyncio.run(_run_test_url(config, url))
    except CalNoteError as exc:
        logger.error("%s", exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
