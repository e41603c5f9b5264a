"""RRULE expansion for calnote."""

import logging
import re
from datetime import UTC, datetime, time
from typing import Optional

from dateutil.rrule import rruleset, rrulestr

from calnote.core.exceptions import RRuleExpansionError

from .models import CalendarEvent

logger = logging.getLogger(__name__)

MAX_OCCURRENCES_PER_RULE = 1000


def occurrence_key(dt: datetime) -> str:
    """Key used for ``recurrence_overrides``: the occurrence instant in UTC, ISO format."""
    return dt.astimezone(UTC).isoformat()


def truncate_to_day(dt: datetime) -> datetime:
    """Midnight of ``dt``'s calendar date, keeping its timezone."""
    return datetime.combine(dt.date(), time.min, tzinfo=dt.tzinfo)


_UNTIL_RE = re.compile(r"UNTIL=(\d{8})(T(\d{6}))?(Z?)", re.IGNORECASE)


def normalize_until(rule_text: str, dtstart: datetime) -> str:
    """Rewrite a floating or date-only UNTIL as UTC.

    dateutil refuses a non-UTC UNTIL once DTSTART is timezone-aware, which is
    always the case here because all-day and floating starts are localized.
    """

    def _to_utc(match: re.Match) -> str:
        if match.group(4):
            return match.group(0)
        day = datetime.strptime(match.group(1), "%Y%m%d")
        if match.group(3):
            local = datetime.combine(
                day.date(), datetime.strptime(match.group(3), "%H%M%S").time()
            )
        else:
            # date-only UNTIL is inclusive of that whole day
            local = datetime.combine(day.date(), time.max.replace(microsecond=0))
        until = local.replace(tzinfo=dtstart.tzinfo).astimezone(UTC)
        return f"UNTIL={until.strftime('%Y%m%dT%H%M%SZ')}"

    return _UNTIL_RE.sub(_to_utc, rule_text)


class RRuleExpander:
    """Expands a master event's RRULE into occurrence instants."""

    def __init__(self, max_occurrences: int = MAX_OCCURRENCES_PER_RULE):
        self.max_occurrences = max_occurrences

    def build_ruleset(self, event: CalendarEvent) -> rruleset:
        """Parse the event's RRULE against its DTSTART and apply EXDATEs.

        Raises:
            RRuleExpansionError: If the event has no RRULE or it cannot be parsed
        """
        if not event.rrule:
            raise RRuleExpansionError(f"Event {event.uid} has no RRULE")

        rule_text = normalize_until(event.rrule, event.start)
        try:
            parsed = rrulestr(rule_text, dtstart=event.start, forceset=True)
        except (ValueError, TypeError) as e:
            raise RRuleExpansionError(f"Invalid RRULE for {event.uid}: {event.rrule!r}") from e

        rule_set: rruleset = parsed
        for exdate in event.exdates:
            rule_set.exdate(exdate)
        return rule_set

    def between(
        self, event: CalendarEvent, after: datetime, before: datetime
    ) -> list[datetime]:
        """Occurrences in ``[after, before)``.

        Raises:
            RRuleExpansionError: If the rule cannot be parsed or expanded
        """
        rule_set = self.build_ruleset(event)
        occurrences: list[datetime] = []
        try:
            for occurrence in rule_set.xafter(after, inc=True):
                if occurrence >= before:
                    break
                occurrences.append(occurrence)
                if len(occurrences) >= self.max_occurrences:
                    logger.warning(
                        "RRULE for %s hit the %d occurrence cap", event.uid, self.max_occurrences
                    )
                    break
        except (ValueError, TypeError) as e:
            # naive UNTIL against an aware DTSTART, and similar
            raise RRuleExpansionError(f"Cannot expand RRULE for {event.uid}: {e}") from e

        logger.debug(
            "Expanded %s between %s and %s: %d occurrence(s)",
            event.uid,
            after,
            before,
            len(occurrences),
        )
        return occurrences

    def between_days(
        self, event: CalendarEvent, start: datetime, end: datetime
    ) -> list[datetime]:
        """Occurrences between the calendar dates of ``start`` and ``end``.

        Time-of-day is dropped from both bounds before expanding, so
        ``[03-14 10:00, 03-15 10:00)`` expands over ``[03-14, 03-15)`` and a
        window inside a single day expands to nothing.
        """
        return self.between(event, truncate_to_day(start), truncate_to_day(end))


def expand_occurrence(master: CalendarEvent, occurrence: datetime) -> CalendarEvent:
    """Materialize one occurrence of ``master`` as a standalone event."""
    return master.model_copy(
        update={
            "start": occurrence,
            "end": occurrence + master.duration,
            "rrule": None,
            "exdates": [],
            "recurrence_id": occurrence,
            "recurrence_overrides": {},
        }
    )


def find_override(master: CalendarEvent, occurrence: datetime) -> Optional[CalendarEvent]:
    return master.recurrence_overrides.get(occurrence_key(occurrence))
