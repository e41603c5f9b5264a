"""Data models for calendar feed processing."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from calnote.core.timezone_utils import now_utc as _now_utc


class CalendarEvent(BaseModel):
    """A VEVENT decoded from a calendar feed.

    Override components (those carrying RECURRENCE-ID) share their master's
    ``uid`` and live in the master's ``recurrence_overrides``.
    """

    component_type: Literal["VEVENT"] = "VEVENT"

    uid: str = Field(..., description="Event UID, unique within a feed")
    start: datetime = Field(..., description="Timezone-aware start instant")
    end: datetime = Field(..., description="Timezone-aware end instant")
    summary: str = Field(default="", description="Display text")

    rrule: Optional[str] = Field(default=None, description="RRULE value as found in the feed")
    exdates: list[datetime] = Field(default_factory=list, description="Excluded occurrences")
    recurrence_id: Optional[datetime] = Field(
        default=None, description="Occurrence this component replaces or represents"
    )
    recurrence_overrides: dict[str, CalendarEvent] = Field(
        default_factory=dict, description="Occurrence key -> replacement event"
    )
    status: Optional[str] = Field(default=None, description="STATUS property, upper-cased")

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        return self.rrule is not None

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @field_serializer("start", "end", "recurrence_id", when_used="unless-none")
    def serialize_datetime(self, dt: datetime) -> str:
        return dt.isoformat()


class OtherComponent(BaseModel):
    """Any non-VEVENT component (VTIMEZONE, VTODO, ...). Ignored by the resolver."""

    component_type: str
    uid: Optional[str] = None

    model_config = ConfigDict(frozen=True)


CalendarComponent = Union[CalendarEvent, OtherComponent]


class Window(BaseModel):
    """Half-open instant range ``[start, end)``."""

    start: datetime
    end: datetime

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_bounds(self) -> Window:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Window bounds must be timezone-aware")
        if self.end < self.start:
            raise ValueError("Window end must not precede its start")
        return self

    @classmethod
    def for_day(cls, day: date, tz: tzinfo) -> Window:
        """Window covering one calendar day in ``tz``."""
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
        return cls(start=start, end=end)

    def contains(self, start: datetime, end: datetime) -> bool:
        """Full containment: the whole span must sit inside the window."""
        return start >= self.start and end <= self.end


class ICSFetchResponse(BaseModel):
    """Result of a feed fetch: either content or an error message, never both."""

    success: bool
    url: str
    content: Optional[str] = None
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    fetch_time: datetime = Field(default_factory=_now_utc)

    @property
    def content_length(self) -> Optional[int]:
        if self.content is None:
            return None
        return len(self.content.encode("utf-8"))


class PluginSettings(BaseModel):
    """Persisted plugin settings; the on-disk key name follows the host's data.json."""

    calendar_url: str = Field(default="", alias="CalendarURL")

    model_config = ConfigDict(populate_by_name=True)
