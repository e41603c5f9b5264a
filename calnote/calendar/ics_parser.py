"""iCalendar feed decoding for calnote."""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Optional

from icalendar import Calendar, Component

from calnote.core.exceptions import ICSDecodeError
from calnote.core.timezone_utils import get_zone, normalize_timezone_name

from .models import CalendarComponent, CalendarEvent, OtherComponent
from .rrule_expander import occurrence_key

logger = logging.getLogger(__name__)


class ICSParser:
    """Decodes ICS text into calendar components keyed the way node-ical keys them.

    Masters and single events are keyed by UID. Components carrying a
    RECURRENCE-ID are folded into their master's ``recurrence_overrides``.
    """

    def __init__(self, default_timezone: str = "UTC") -> None:
        """Initialize the parser.

        Args:
            default_timezone: Zone applied to DATE values and floating times
        """
        self.default_tz = get_zone(default_timezone)

    def parse(self, ics_content: str) -> dict[str, CalendarComponent]:
        """Parse raw ICS text.

        Args:
            ics_content: Feed body as text

        Returns:
            Mapping of component key to component

        Raises:
            ICSDecodeError: If the text is not an iCalendar document
        """
        if not ics_content or not ics_content.strip():
            raise ICSDecodeError("Empty calendar feed")

        try:
            calendar = Calendar.from_ical(ics_content)
        except Exception as e:
            raise ICSDecodeError(f"Failed to parse calendar feed: {e}") from e

        if calendar.name != "VCALENDAR":
            raise ICSDecodeError(f"Expected VCALENDAR, got {calendar.name}")

        components: dict[str, CalendarComponent] = {}
        overrides: list[tuple[str, CalendarEvent]] = []
        skipped = 0

        for index, component in enumerate(calendar.subcomponents):
            if component.name != "VEVENT":
                key = str(
                    component.get("UID") or component.get("TZID") or f"{component.name}-{index}"
                )
                components[key] = OtherComponent(
                    component_type=component.name, uid=_text(component.get("UID"))
                )
                continue

            event = self.parse_event(component)
            if event is None:
                skipped += 1
                continue

            if event.recurrence_id is not None:
                overrides.append((occurrence_key(event.recurrence_id), event))
            else:
                if event.uid in components:
                    logger.debug("Duplicate UID %s, keeping the later definition", event.uid)
                components[event.uid] = event

        self._attach_overrides(components, overrides)

        logger.debug(
            "Parsed %d component(s) with %d override(s); skipped %d malformed event(s)",
            len(components),
            len(overrides),
            skipped,
        )
        return components

    def parse_event(self, component: Component) -> Optional[CalendarEvent]:
        """Decode one VEVENT, or return None when required fields are missing."""
        uid = _text(component.get("UID"))
        dtstart = component.get("DTSTART")
        if not uid or dtstart is None:
            logger.warning("Skipping VEVENT without UID or DTSTART (uid=%r)", uid)
            return None

        try:
            start = self._to_aware(dtstart)
            end = self._resolve_end(component, dtstart.dt, start)

            recurrence_id = None
            if component.get("RECURRENCE-ID") is not None:
                recurrence_id = self._to_aware(component.get("RECURRENCE-ID"))

            status = _text(component.get("STATUS"))

            return CalendarEvent(
                uid=uid,
                start=start,
                end=end,
                summary=_text(component.get("SUMMARY")) or "",
                rrule=self._extract_rrule(component),
                exdates=self._extract_exdates(component),
                recurrence_id=recurrence_id,
                status=status.upper() if status else None,
            )
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping malformed VEVENT %s: %s", uid, e)
            return None

    def _resolve_end(self, component: Component, raw_start: Any, start: datetime) -> datetime:
        dtend = component.get("DTEND")
        if dtend is not None:
            return self._to_aware(dtend)

        duration = component.get("DURATION")
        if duration is not None:
            return start + duration.dt

        # RFC 5545 3.6.1: a DATE start with no end lasts one day
        if isinstance(raw_start, date) and not isinstance(raw_start, datetime):
            return start + timedelta(days=1)
        return start

    def _extract_rrule(self, component: Component) -> Optional[str]:
        rrule = component.get("RRULE")
        if rrule is None:
            return None
        if isinstance(rrule, list):
            if len(rrule) > 1:
                logger.warning("VEVENT carries %d RRULEs; using the first", len(rrule))
            rrule = rrule[0]
        return rrule.to_ical().decode("utf-8")

    def _extract_exdates(self, component: Component) -> list[datetime]:
        exdate_props = component.get("EXDATE")
        if exdate_props is None:
            return []
        if not isinstance(exdate_props, list):
            exdate_props = [exdate_props]

        exdates = []
        for prop in exdate_props:
            tzid = prop.params.get("TZID") if hasattr(prop, "params") else None
            for value in prop.dts:
                exdates.append(self._localize(value.dt, tzid))
        return exdates

    def _to_aware(self, prop: Any) -> datetime:
        return self._localize(prop.dt, prop.params.get("TZID"))

    def _localize(self, value: Any, tzid: Optional[str] = None) -> datetime:
        """DATE -> midnight in the default zone; floating time -> TZID or default zone."""
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                return value
            return value.replace(tzinfo=self._zone_for(tzid))
        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=self.default_tz)
        raise TypeError(f"Unsupported date value {value!r}")

    def _zone_for(self, tzid: Optional[str]) -> tzinfo:
        if tzid and normalize_timezone_name(tzid):
            return get_zone(tzid)
        return self.default_tz

    def _attach_overrides(
        self,
        components: dict[str, CalendarComponent],
        overrides: list[tuple[str, CalendarEvent]],
    ) -> None:
        grouped: dict[str, dict[str, CalendarEvent]] = {}
        for key, override in overrides:
            master = components.get(override.uid)
            if isinstance(master, CalendarEvent):
                grouped.setdefault(override.uid, {})[key] = override
            else:
                logger.debug("Override %s has no master; keeping it standalone", override.uid)
                components[f"{override.uid}::{key}"] = override

        for uid, by_occurrence in grouped.items():
            master = components[uid]
            components[uid] = master.model_copy(update={"recurrence_overrides": by_occurrence})


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def parse_ics(ics_content: str, default_timezone: str = "UTC") -> dict[str, CalendarComponent]:
    """Convenience wrapper around :class:`ICSParser`."""
    return ICSParser(default_timezone).parse(ics_content)
