"""Build the markwhen block that gets inserted into a daily note."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, tzinfo
from pathlib import PurePath

from calnote.calendar.models import CalendarComponent, Window

from .event_formatter import format_events, localize_events
from .event_resolver import EventResolver

logger = logging.getLogger(__name__)

MARKWHEN_TAG = "markwhen"
DEFAULT_NOTE_DATE_FORMAT = "%Y-%m-%d"


def render_markwhen_block(lines: list[str]) -> str:
    """Wrap event lines in a fenced ``markwhen`` block, led by a blank line."""
    return f"\n``` {MARKWHEN_TAG}\n" + "\n".join(lines) + "\n```"


def calendar_day_lines(
    calendar: Mapping[str, CalendarComponent],
    day: date,
    tz: tzinfo,
    resolver: EventResolver | None = None,
) -> list[str]:
    """Formatted events for one calendar day in ``tz``."""
    window = Window.for_day(day, tz)
    events = (resolver or EventResolver()).resolve(calendar, window)
    return format_events(localize_events(events, tz))


def calendar_day_block(
    calendar: Mapping[str, CalendarComponent],
    day: date,
    tz: tzinfo,
    resolver: EventResolver | None = None,
) -> str:
    """The text inserted at the cursor for a daily note."""
    lines = calendar_day_lines(calendar, day, tz, resolver)
    logger.debug("Rendering %d event(s) for %s", len(lines), day)
    return render_markwhen_block(lines)


def date_from_note_name(name: str | PurePath, fmt: str = DEFAULT_NOTE_DATE_FORMAT) -> date | None:
    """Date a daily note stands for, taken from its file name.

    Returns None for notes whose name does not match ``fmt``.

    Examples:
        >>> date_from_note_name("Journal/2024-03-14.md")
        datetime.date(2024, 3, 14)
        >>> date_from_note_name("Ideas.md") is None
        True
    """
    stem = PurePath(name).stem
    try:
        return datetime.strptime(stem, fmt).date()
    except ValueError:
        return None
