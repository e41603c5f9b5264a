"""calnote - insert a calendar feed's events into daily notes as markwhen timelines."""

__version__ = "0.1.0"

from calnote.calendar.models import CalendarEvent, OtherComponent, Window
from calnote.domain.event_formatter import format_event
from calnote.domain.event_resolver import is_all_day, resolve

__all__ = [
    "CalendarEvent",
    "OtherComponent",
    "Window",
    "__version__",
    "format_event",
    "is_all_day",
    "resolve",
]
