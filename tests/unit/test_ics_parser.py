"""Unit tests for calnote.calendar.ics_parser."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from calnote.calendar.ics_parser import ICSParser, parse_ics
from calnote.calendar.models import CalendarEvent, OtherComponent
from calnote.calendar.rrule_expander import occurrence_key
from calnote.core.exceptions import ICSDecodeError

pytestmark = pytest.mark.unit


def _calendar(*events: str) -> str:
    body = "\n".join(events)
    return f"BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//calnote test//EN\n{body}\nEND:VCALENDAR\n"


def _vevent(*lines: str) -> str:
    return "BEGIN:VEVENT\n" + "\n".join(lines) + "\nEND:VEVENT"


class TestDecoding:
    @pytest.mark.smoke
    def test_parse_simple_event(self, sample_ics_simple):
        components = parse_ics(sample_ics_simple)

        event = components["test-event-001@calnote.test"]
        assert isinstance(event, CalendarEvent)
        assert event.summary == "Team Meeting"
        assert event.start == datetime(2024, 1, 15, 10, 0, tzinfo=UTC)
        assert event.end == datetime(2024, 1, 15, 11, 0, tzinfo=UTC)
        assert event.rrule is None
        assert event.recurrence_overrides == {}

    def test_garbage_text_raises_decode_error(self):
        with pytest.raises(ICSDecodeError):
            parse_ics("this is not a calendar")

    def test_empty_text_raises_decode_error(self):
        with pytest.raises(ICSDecodeError):
            parse_ics("   \n")

    def test_non_event_components_are_kept_as_other(self, daily_feed_ics):
        components = parse_ics(daily_feed_ics)

        todo = components["todo-001@calnote.test"]
        assert isinstance(todo, OtherComponent)
        assert todo.component_type == "VTODO"


class TestEventTimes:
    def test_all_day_event_starts_at_midnight_in_default_zone(self):
        ics = _calendar(
            _vevent(
                "UID:allday",
                "DTSTART;VALUE=DATE:20240314",
                "DTEND;VALUE=DATE:20240315",
                "SUMMARY:Conference",
            )
        )
        tz = ZoneInfo("America/New_York")

        event = ICSParser("America/New_York").parse(ics)["allday"]

        assert event.start == datetime(2024, 3, 14, tzinfo=tz)
        assert event.end == datetime(2024, 3, 15, tzinfo=tz)

    def test_date_start_without_end_lasts_one_day(self):
        ics = _calendar(_vevent("UID:allday", "DTSTART;VALUE=DATE:20240314", "SUMMARY:Holiday"))

        event = parse_ics(ics)["allday"]

        assert event.end - event.start == timedelta(days=1)

    def test_duration_sets_end(self):
        ics = _calendar(_vevent("UID:dur", "DTSTART:20240314T090000Z", "DURATION:PT45M"))

        event = parse_ics(ics)["dur"]

        assert event.end == datetime(2024, 3, 14, 9, 45, tzinfo=UTC)

    def test_datetime_start_without_end_is_instant(self):
        ics = _calendar(_vevent("UID:instant", "DTSTART:20240314T090000Z"))

        event = parse_ics(ics)["instant"]

        assert event.end == event.start

    def test_floating_time_uses_default_zone(self):
        ics = _calendar(_vevent("UID:floating", "DTSTART:20240314T090000", "DTEND:20240314T100000"))

        event = ICSParser("Europe/Berlin").parse(ics)["floating"]

        assert event.start == datetime(2024, 3, 14, 9, tzinfo=ZoneInfo("Europe/Berlin"))

    def test_tzid_is_honoured(self):
        ics = _calendar(
            _vevent(
                "UID:pacific",
                "DTSTART;TZID=America/Los_Angeles:20240314T090000",
                "DTEND;TZID=America/Los_Angeles:20240314T100000",
            )
        )

        event = parse_ics(ics)["pacific"]

        assert event.start.astimezone(UTC) == datetime(2024, 3, 14, 16, tzinfo=UTC)

    def test_missing_summary_is_empty_string(self):
        ics = _calendar(_vevent("UID:nosummary", "DTSTART:20240314T090000Z"))

        assert parse_ics(ics)["nosummary"].summary == ""


class TestMalformedEvents:
    def test_event_without_uid_is_skipped(self, caplog):
        ics = _calendar(
            _vevent("DTSTART:20240314T090000Z", "SUMMARY:Anonymous"),
            _vevent("UID:ok", "DTSTART:20240314T100000Z", "SUMMARY:Fine"),
        )

        with caplog.at_level("WARNING"):
            components = parse_ics(ics)

        assert list(components) == ["ok"]
        assert "Skipping VEVENT without UID or DTSTART" in caplog.text

    def test_event_without_dtstart_is_skipped(self):
        ics = _calendar(
            _vevent("UID:nostart", "SUMMARY:Broken"),
            _vevent("UID:ok", "DTSTART:20240314T100000Z"),
        )

        assert list(parse_ics(ics)) == ["ok"]


class TestRecurrence:
    def test_rrule_and_exdate_are_extracted(self, daily_feed_ics):
        master = parse_ics(daily_feed_ics)["standup-001@calnote.test"]

        assert master.rrule == "FREQ=WEEKLY;BYDAY=TH"
        assert master.exdates == [datetime(2024, 3, 7, 9, tzinfo=UTC)]

    def test_override_is_attached_to_master(self, daily_feed_ics):
        components = parse_ics(daily_feed_ics)
        master = components["standup-001@calnote.test"]

        key = occurrence_key(datetime(2024, 3, 21, 9, tzinfo=UTC))
        assert list(master.recurrence_overrides) == [key]
        override = master.recurrence_overrides[key]
        assert override.summary == "Standup (moved)"
        assert override.start == datetime(2024, 3, 21, 10, tzinfo=UTC)
        assert override.recurrence_id == datetime(2024, 3, 21, 9, tzinfo=UTC)
        # overrides do not get their own top-level entry
        assert all(not k.startswith("standup-001@calnote.test::") for k in components)

    def test_override_without_master_is_kept_standalone(self):
        ics = _calendar(
            _vevent(
                "UID:orphan",
                "RECURRENCE-ID:20240314T090000Z",
                "DTSTART:20240314T110000Z",
                "DTEND:20240314T120000Z",
            )
        )

        components = parse_ics(ics)

        key = "orphan::" + occurrence_key(datetime(2024, 3, 14, 9, tzinfo=UTC))
        assert list(components) == [key]
        assert components[key].start == datetime(2024, 3, 14, 11, tzinfo=UTC)
