"""Pydantic models for local scheduling records and provider events.

Defines the two sides of a sync link:

- :class:`Task` and :class:`Meeting` -- locally owned scheduling records
  as held by the record store.  Only the fields the sync engine reads are
  declared; everything else is kept verbatim (``extra="allow"``).
- :class:`ExternalEvent` -- a Google Calendar event resource, parsed just
  far enough to answer provenance and timing questions.
- :class:`CalendarSummary` -- one entry of the user's calendar list.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Literal
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

EntityType = Literal["task", "meeting"]

# Entity names used by the record store for each record variant.
STORE_ENTITIES: dict[str, str] = {"task": "Task", "meeting": "Meeting"}

# Field on the local record holding the linked provider event id.
LINK_FIELD = "external_event_id"

CANCELLED_STATUS = "cancelled"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---------------------------------------------------------------------------
# Local records
# ---------------------------------------------------------------------------


class _ScheduleRecord(BaseModel):
    """Fields shared by every local scheduling record."""

    model_config = ConfigDict(extra="allow")

    id: str
    organisation_id: str | None = None
    title: str | None = None
    description: str | None = None
    status: str | None = None
    external_event_id: str | None = None

    @field_validator("external_event_id", mode="before")
    @classmethod
    def _blank_link(cls, value: Any) -> Any:
        return _blank_to_none(value)


class Task(_ScheduleRecord):
    """A task with a due date and an optional due time.

    Attributes:
        due_date: Calendar day the task is due.
        due_time: Time of day the task is due; ``None`` for all-day tasks.
        priority: ``"urgent"``, ``"high"``, ``"medium"`` or ``"low"``
            (other values are tolerated).
        category: Free-form category; imported events use ``"meeting"``.
    """

    due_date: dt.date | None = None
    due_time: dt.time | None = None
    priority: str | None = None
    category: str | None = None

    @field_validator("due_date", "due_time", mode="before")
    @classmethod
    def _blank_schedule(cls, value: Any) -> Any:
        return _blank_to_none(value)


class Meeting(_ScheduleRecord):
    """A meeting on a given day with optional start and end times.

    Attributes:
        date: Calendar day of the meeting.
        start_time: Start time; ``None`` for all-day meetings.
        end_time: End time; defaults to one hour after *start_time* when
            mapped.
        location: Physical location, if any.
        meeting_link: Video conferencing URL, if any.
        meeting_type: e.g. ``"in_person"``, ``"video"``, ``"audio"``.
    """

    date: dt.date | None = None
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    location: str | None = None
    meeting_link: str | None = None
    meeting_type: str | None = None

    @field_validator("date", "start_time", "end_time", mode="before")
    @classmethod
    def _blank_schedule(cls, value: Any) -> Any:
        return _blank_to_none(value)


ScheduleRecord = Task | Meeting


def record_from_dict(entity_type: EntityType, data: dict[str, Any]) -> ScheduleRecord:
    """Build the record variant matching *entity_type* from a store dict."""
    if entity_type == "task":
        return Task.model_validate(data)
    if entity_type == "meeting":
        return Meeting.model_validate(data)
    raise ValueError(f"Unknown entity type: {entity_type!r}")


# ---------------------------------------------------------------------------
# Provider side
# ---------------------------------------------------------------------------


class ExternalEvent(BaseModel):
    """A Google Calendar event resource.

    Attributes:
        event_id: Provider-assigned event id.
        calendar_id: Calendar the event was read from or written to.
        summary: Event title.
        description: Event description.
        status: Provider status (``"confirmed"``, ``"cancelled"``, ...).
        start: Raw ``{"date": ...}`` or ``{"dateTime": ..., "timeZone": ...}``.
        end: Same shape as *start*.
        private_metadata: ``extendedProperties.private`` of the resource.
        raw: The unmodified API resource.
    """

    event_id: str
    calendar_id: str
    summary: str | None = None
    description: str | None = None
    status: str | None = None
    start: dict[str, Any] = Field(default_factory=dict)
    end: dict[str, Any] = Field(default_factory=dict)
    private_metadata: dict[str, str] = Field(default_factory=dict)
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_api(cls, resource: dict[str, Any], calendar_id: str) -> ExternalEvent:
        """Parse a Google Calendar API event resource."""
        extended = resource.get("extendedProperties") or {}
        return cls(
            event_id=resource["id"],
            calendar_id=calendar_id,
            summary=resource.get("summary"),
            description=resource.get("description"),
            status=resource.get("status"),
            start=resource.get("start") or {},
            end=resource.get("end") or {},
            private_metadata=extended.get("private") or {},
            raw=resource,
        )

    @property
    def is_all_day(self) -> bool:
        return "dateTime" not in self.start

    def local_start(self, timezone: str) -> tuple[dt.date | None, dt.time | None]:
        """Return the start as a ``(date, time)`` pair in *timezone*.

        All-day events yield ``(date, None)``.  Offset-aware timestamps are
        converted to *timezone*; naive ones are taken as already local.
        """
        if self.is_all_day:
            raw_date = self.start.get("date")
            return (dt.date.fromisoformat(raw_date) if raw_date else None), None

        start = dt.datetime.fromisoformat(self.start["dateTime"])
        if start.tzinfo is not None:
            start = start.astimezone(ZoneInfo(timezone))
        return start.date(), start.time().replace(second=0, microsecond=0)


@dataclass(frozen=True)
class CalendarSummary:
    """One calendar from the user's calendar list.

    Attributes:
        id: Calendar id (``"primary"`` aliases the user's main calendar).
        name: Display name (``summary`` in the API).
        is_primary: Whether this is the user's primary calendar.
        color: Background colour hex string, if set.
    """

    id: str
    name: str
    is_primary: bool = False
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "summary": self.name,
            "primary": self.is_primary,
            "backgroundColor": self.color,
        }
