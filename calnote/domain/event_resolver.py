"""Resolve decoded calendar components into the events that occur in a window."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from calnote.calendar.models import CalendarComponent, CalendarEvent, Window
from calnote.calendar.rrule_expander import (
    RRuleExpander,
    expand_occurrence,
    find_override,
)
from calnote.core.exceptions import RRuleExpansionError

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def is_all_day(start: datetime, end: datetime) -> bool:
    """True when both bounds sit exactly on midnight and the span is one day.

    A two-hour meeting is never all-day, and neither is a two-day event.
    """
    return (
        (start.hour, start.minute, start.second) == (0, 0, 0)
        and (end.hour, end.minute, end.second) == (0, 0, 0)
        and end - start == ONE_DAY
    )


class EventResolver:
    """Turns a component set and a window into an ordered, deduplicated event list.

    Events are recorded under their UID with last-write-wins semantics.
    Recurrence overrides are recorded after the series' own occurrences, so an
    override always replaces the base instance it shares a UID with.
    """

    def __init__(self, expander: RRuleExpander | None = None):
        self.expander = expander or RRuleExpander()

    def resolve(
        self,
        components: Mapping[str, CalendarComponent] | Iterable[CalendarComponent],
        window: Window,
    ) -> list[CalendarEvent]:
        """Events fully contained in ``window``, ordered by start.

        Args:
            components: Decoded feed, either the parser's mapping or any iterable
            window: Half-open query range

        Returns:
            Events sorted by start; ties keep encounter order
        """
        values = components.values() if isinstance(components, Mapping) else components
        by_uid: dict[str, CalendarEvent] = {}

        for component in values:
            if not isinstance(component, CalendarEvent):
                continue
            try:
                self._record(component, window, by_uid)
            except TypeError as e:
                # naive datetimes sneaking in from hand-built components
                logger.warning("Skipping event %s: %s", component.uid, e)

        # sorted() is stable; dict order is first-recorded order per uid
        resolved = sorted(by_uid.values(), key=lambda event: event.start)
        logger.debug(
            "Resolved %d event(s) in [%s, %s)", len(resolved), window.start, window.end
        )
        return resolved

    def _record(
        self, event: CalendarEvent, window: Window, by_uid: dict[str, CalendarEvent]
    ) -> None:
        if window.contains(event.start, event.end):
            by_uid[event.uid] = event

        if not event.is_recurring:
            return

        # Expansion is date-granular while containment uses exact instants.
        # Kept for compatibility with existing notes; occurrences found here
        # still have to pass the exact containment check below.
        try:
            occurrences = self.expander.between_days(event, window.start, window.end)
        except RRuleExpansionError as e:
            logger.warning("Not expanding %s: %s", event.uid, e)
            return

        if not occurrences:
            return

        for occurrence in occurrences:
            if find_override(event, occurrence) is not None:
                continue
            instance = expand_occurrence(event, occurrence)
            if window.contains(instance.start, instance.end):
                by_uid[event.uid] = instance

        for override in event.recurrence_overrides.values():
            if window.contains(override.start, override.end):
                by_uid[override.uid] = override


def resolve(
    components: Mapping[str, CalendarComponent] | Iterable[CalendarComponent],
    window: Window,
) -> list[CalendarEvent]:
    """Module-level shortcut for :meth:`EventResolver.resolve`."""
    return EventResolver().resolve(components, window)
