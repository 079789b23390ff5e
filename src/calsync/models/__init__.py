"""Data models for calsync."""

from __future__ import annotations

from calsync.models.records import (
    CalendarSummary,
    EntityType,
    ExternalEvent,
    Meeting,
    ScheduleRecord,
    Task,
    record_from_dict,
)
from calsync.models.sync import (
    ExportResult,
    ImportResult,
    SyncError,
    SyncReport,
    SyncSettings,
)

__all__ = [
    "CalendarSummary",
    "EntityType",
    "ExportResult",
    "ExternalEvent",
    "ImportResult",
    "Meeting",
    "ScheduleRecord",
    "SyncError",
    "SyncReport",
    "SyncSettings",
    "Task",
    "record_from_dict",
]
