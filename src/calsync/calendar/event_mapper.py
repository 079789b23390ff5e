"""Map local scheduling records to the Google Calendar API body format.

Converts :class:`~calsync.models.records.Task` and
:class:`~calsync.models.records.Meeting` records into ``dict`` payloads
suitable for the Google Calendar ``events().insert()`` and
``events().update()`` API methods.

The mapping includes:

- **summary** / **description** carried over verbatim.
- **start / end** -- a timed ``{dateTime, timeZone}`` pair when the record
  has a start time, otherwise an all-day ``{date}`` pair.
- **colorId** -- by priority for tasks, a fixed colour for meetings.
- **location** and a video **conferenceData** entry point for meetings.
- **extendedProperties.private** -- the provenance stamp that links the
  event back to the local record and keeps it out of the import pass.

The output is a pure function of the inputs, so re-exporting an unchanged
record sends an identical body.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from calsync.calendar.identity import SOURCE_APP_KEY, SOURCE_ID_KEY, SOURCE_TYPE_KEY
from calsync.models.records import EntityType, Meeting, ScheduleRecord, Task

logger = logging.getLogger(__name__)

DEFAULT_DURATION = dt.timedelta(hours=1)

# Google Calendar event colour ids.
TASK_PRIORITY_COLORS: dict[str, str] = {
    "urgent": "11",
    "high": "6",
    "medium": "5",
    "low": "8",
}
DEFAULT_TASK_COLOR = TASK_PRIORITY_COLORS["medium"]
MEETING_COLOR = "9"

UNTITLED_SUMMARY = "Untitled"

# Conference entries for links the provider did not create itself.
CONFERENCE_SOLUTION_TYPE = "addOn"
CONFERENCE_SOLUTION_NAME = "Video call"


def map_to_google_event(
    record: ScheduleRecord,
    entity_type: EntityType,
    timezone: str,
    source_app: str,
) -> dict:
    """Convert a local record into a Google Calendar API event body.

    Args:
        record: The :class:`Task` or :class:`Meeting` to export.
        entity_type: ``"task"`` or ``"meeting"``; recorded in the
            provenance stamp and selects the colour rules.
        timezone: IANA time zone of the record's organisation, applied to
            timed events.
        source_app: Provenance marker identifying this system.

    Returns:
        A ``dict`` conforming to the Google Calendar Event resource schema.

    Raises:
        ValueError: If the record has no date to schedule it on.
    """
    day, start_time, end_time = _schedule_of(record)
    if day is None:
        raise ValueError(f"{entity_type.capitalize()} {record.id!r} has no date to schedule")

    body: dict[str, Any] = {
        "summary": record.title or UNTITLED_SUMMARY,
        "description": record.description or "",
    }

    if start_time is not None:
        start, end = _timed_bounds(day, start_time, end_time)
        body["start"] = _format_datetime(start, timezone)
        body["end"] = _format_datetime(end, timezone)
    else:
        # Google treats an all-day end date as exclusive.
        body["start"] = {"date": day.isoformat()}
        body["end"] = {"date": (day + dt.timedelta(days=1)).isoformat()}

    body["extendedProperties"] = {
        "private": {
            SOURCE_APP_KEY: source_app,
            SOURCE_ID_KEY: record.id,
            SOURCE_TYPE_KEY: entity_type,
        }
    }

    if entity_type == "task":
        priority = getattr(record, "priority", None) or ""
        body["colorId"] = TASK_PRIORITY_COLORS.get(priority.lower(), DEFAULT_TASK_COLOR)
    elif entity_type == "meeting":
        body["colorId"] = MEETING_COLOR
        location = getattr(record, "location", None)
        if location:
            body["location"] = location
        link = getattr(record, "meeting_link", None)
        if link:
            body["conferenceData"] = {
                "conferenceSolution": {
                    "key": {"type": CONFERENCE_SOLUTION_TYPE},
                    "name": CONFERENCE_SOLUTION_NAME,
                },
                "entryPoints": [{"entryPointType": "video", "uri": link}],
            }

    logger.debug(
        "Mapped %s %r to Google Calendar body (%s -> %s)",
        entity_type,
        record.id,
        body["start"],
        body["end"],
    )

    return body


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _schedule_of(
    record: ScheduleRecord,
) -> tuple[dt.date | None, dt.time | None, dt.time | None]:
    """Return ``(date, start_time, end_time)`` for either record variant."""
    if isinstance(record, Task):
        return record.due_date, record.due_time, None
    if isinstance(record, Meeting):
        return record.date, record.start_time, record.end_time
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def _timed_bounds(
    day: dt.date,
    start_time: dt.time,
    end_time: dt.time | None,
) -> tuple[dt.datetime, dt.datetime]:
    """Combine *day* with the start/end times into naive local datetimes.

    A missing end defaults to one hour after the start.  An end at or
    before the start (an overnight event, or a default that crosses
    midnight) rolls over to the following day.
    """
    start = dt.datetime.combine(day, start_time.replace(second=0, microsecond=0))
    if end_time is None:
        return start, start + DEFAULT_DURATION

    end = dt.datetime.combine(day, end_time.replace(second=0, microsecond=0))
    if end <= start:
        end += dt.timedelta(days=1)
    return start, end


def _format_datetime(value: dt.datetime, timezone: str) -> dict:
    """Format a naive local datetime for the Google Calendar API.

    Returns:
        A dict with ``dateTime`` in ISO 8601 format (no offset) and
        ``timeZone``.
    """
    return {
        "dateTime": value.isoformat(),
        "timeZone": timezone,
    }
