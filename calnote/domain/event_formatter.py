"""Render resolved events as markwhen timeline lines."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, tzinfo

from calnote.calendar.models import CalendarEvent

from .event_resolver import is_all_day


def format_clock(dt: datetime) -> str:
    """12-hour wall-clock time with a two-digit hour and lowercase suffix.

    Examples:
        >>> format_clock(datetime(2024, 3, 14, 9, 0))
        '09:00am'
        >>> format_clock(datetime(2024, 3, 14, 0, 5))
        '12:05am'
        >>> format_clock(datetime(2024, 3, 14, 22, 30))
        '10:30pm'
    """
    hour = dt.hour % 12 or 12
    period = "am" if dt.hour < 12 else "pm"
    return f"{hour:02d}:{dt.minute:02d}{period}"


def format_span(start: datetime, end: datetime) -> str:
    if is_all_day(start, end):
        return start.date().isoformat()
    return f"{format_clock(start)} - {format_clock(end)}"


def format_event(event: CalendarEvent) -> str:
    """One markwhen line: ``2024-03-14: Summary`` or ``09:00am - 10:30am: Summary``."""
    return f"{format_span(event.start, event.end)}: {event.summary or ''}"


def format_events(events: Iterable[CalendarEvent]) -> list[str]:
    return [format_event(event) for event in events]


def localize_events(events: Iterable[CalendarEvent], tz: tzinfo) -> list[CalendarEvent]:
    """Move every event onto ``tz``'s wall clock before formatting."""
    return [
        event.model_copy(
            update={"start": event.start.astimezone(tz), "end": event.end.astimezone(tz)}
        )
        for event in events
    ]
