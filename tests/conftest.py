"""Shared fixtures for the calnote test suite."""

from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from calnote.calendar.models import CalendarEvent

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "ics"


def pytest_configure(config: Any) -> None:
    """Register markers used across the suite."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep CALNOTE_* variables from the developer's shell out of tests."""
    for key in (
        "CALNOTE_ICS_URL",
        "CALNOTE_CACHE_TIMEOUT",
        "CALNOTE_REQUEST_TIMEOUT",
        "CALNOTE_DEFAULT_TIMEZONE",
        "CALNOTE_SETTINGS_PATH",
        "CALNOTE_TEST_TIME",
        "CALNOTE_DEBUG",
        "CALNOTE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def make_event():
    """Factory for CalendarEvent instances on 2024-03-14 (UTC) by default."""

    def _make(
        uid: str = "evt-1",
        start: datetime = datetime(2024, 3, 14, 9, 0, tzinfo=UTC),
        end: datetime = datetime(2024, 3, 14, 10, 30, tzinfo=UTC),
        summary: str = "Standup",
        **kwargs: Any,
    ) -> CalendarEvent:
        return CalendarEvent(uid=uid, start=start, end=end, summary=summary, **kwargs)

    return _make


@pytest.fixture
def daily_feed_ics() -> str:
    """
    Feed used by the end-to-end tests.

    Contents:
      - "Lunch with Sam": single event 2024-03-14 13:00-14:00 UTC
      - "Conference": all-day on 2024-03-14
      - "Standup": weekly on Thursdays 09:00-09:30 UTC from 2024-02-01,
        2024-03-07 excluded, 2024-03-21 moved to 10:00-10:30 ("Standup (moved)")
      - a VTODO that must be ignored
    """
    return (FIXTURES_DIR / "daily-feed.ics").read_text(encoding="utf-8")


@pytest.fixture
def sample_ics_simple() -> str:
    """One timed event: "Team Meeting" 2024-01-15 10:00-11:00 UTC."""
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//calnote test//EN
BEGIN:VEVENT
UID:test-event-001@calnote.test
DTSTART:20240115T100000Z
DTEND:20240115T110000Z
SUMMARY:Team Meeting
DTSTAMP:20240115T090000Z
END:VEVENT
END:VCALENDAR
"""
