"""Timezone resolution and clock helpers for calnote."""

from __future__ import annotations

import datetime
import logging
import os
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

# Outlook/Exchange feeds use Windows zone names in TZID parameters
WINDOWS_TZ_MAP: dict[str, str] = {
    "Pacific Standard Time": "America/Los_Angeles",
    "Mountain Standard Time": "America/Denver",
    "Central Standard Time": "America/Chicago",
    "Eastern Standard Time": "America/New_York",
    "Alaskan Standard Time": "America/Anchorage",
    "Hawaiian Standard Time": "Pacific/Honolulu",
    "US Mountain Standard Time": "America/Phoenix",
    "GMT Standard Time": "Europe/London",
    "W. Europe Standard Time": "Europe/Berlin",
    "Romance Standard Time": "Europe/Paris",
    "Central Europe Standard Time": "Europe/Budapest",
    "E. Europe Standard Time": "Europe/Bucharest",
    "India Standard Time": "Asia/Kolkata",
    "China Standard Time": "Asia/Shanghai",
    "Tokyo Standard Time": "Asia/Tokyo",
    "AUS Eastern Standard Time": "Australia/Sydney",
    "UTC": "UTC",
}


def normalize_timezone_name(tz_name: str | None) -> str | None:
    """Map a TZID value to an IANA identifier.

    Returns None when the name is neither a Windows zone name nor a zone
    zoneinfo knows about.
    """
    if not tz_name:
        return None
    name = tz_name.strip().strip('"')
    if name in WINDOWS_TZ_MAP:
        return WINDOWS_TZ_MAP[name]
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None
    return name


@lru_cache(maxsize=64)
def get_zone(tz_name: str | None, fallback: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Return a ZoneInfo for ``tz_name``, falling back when it is unknown."""
    iana = normalize_timezone_name(tz_name)
    if iana is None:
        if tz_name:
            logger.warning("Unknown timezone %r, using %s", tz_name, fallback)
        return ZoneInfo(fallback)
    return ZoneInfo(iana)


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via the CALNOTE_TEST_TIME environment
    variable (ISO 8601, e.g. "2024-03-14T08:00:00-07:00"). Naive values are
    taken as UTC.
    """
    test_time = os.environ.get("CALNOTE_TEST_TIME")
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
        except ValueError as e:
            logger.warning("Failed to parse CALNOTE_TEST_TIME=%r: %s", test_time, e)
        else:
            if dt.tzinfo is None:
                return dt.replace(tzinfo=datetime.UTC)
            return dt.astimezone(datetime.UTC)
    return datetime.datetime.now(datetime.UTC)


def today_in(tz: datetime.tzinfo) -> datetime.date:
    """Current calendar date as seen in ``tz``."""
    return now_utc().astimezone(tz).date()
