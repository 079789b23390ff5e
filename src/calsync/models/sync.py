"""Data models for sync settings and sync results.

- :class:`SyncSettings` -- the policy a full sync runs under, as sent by
  the client in camelCase JSON.
- :class:`ExportResult` / :class:`ImportResult` -- outcomes of the single
  record export and of one import pass.
- :class:`SyncReport` -- aggregated outcome of a full sync, including
  per-item failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Synthetic item id recorded when the import pass itself fails.
IMPORT_ITEM_ID = "import"
IMPORT_ITEM_TITLE = "Import from Google Calendar"

DEFAULT_SYNC_TASKS = False
DEFAULT_SYNC_MEETINGS = False
DEFAULT_IMPORT_FROM_GOOGLE = False


class SyncSettings(BaseModel):
    """Policy for :meth:`~calsync.calendar.sync.SyncOrchestrator.full_sync`.

    An empty filter list means "no filtering".

    Attributes:
        sync_tasks: Export non-cancelled tasks.
        task_priorities: Only export tasks with one of these priorities.
        sync_meetings: Export non-cancelled meetings.
        meeting_types: Only export meetings of one of these types.
        import_from_google: Run the import pass after exporting.
    """

    model_config = ConfigDict(populate_by_name=True)

    sync_tasks: bool = Field(default=DEFAULT_SYNC_TASKS, alias="syncTasks")
    task_priorities: list[str] = Field(default_factory=list, alias="taskPriorities")
    sync_meetings: bool = Field(default=DEFAULT_SYNC_MEETINGS, alias="syncMeetings")
    meeting_types: list[str] = Field(default_factory=list, alias="meetingTypes")
    import_from_google: bool = Field(
        default=DEFAULT_IMPORT_FROM_GOOGLE, alias="importFromGoogle"
    )


@dataclass(frozen=True)
class ExportResult:
    """Outcome of exporting one local record.

    Attributes:
        external_event_id: Id of the provider event now linked to the record.
        was_update: ``True`` if an existing event was updated, ``False`` if
            a new one was created.
    """

    external_event_id: str
    was_update: bool


@dataclass(frozen=True)
class ImportResult:
    """Outcome of one import pass.

    Attributes:
        imported: Number of new local records created.
        total: Number of externally authored events considered.
        created_record_ids: Ids of the records created, in provider order.
    """

    imported: int
    total: int
    created_record_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SyncError:
    """A single item that failed during a full sync."""

    record_id: str
    record_title: str | None
    error_message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "recordId": self.record_id,
            "recordTitle": self.record_title,
            "errorMessage": self.error_message,
        }


@dataclass
class SyncReport:
    """Aggregated result of a full sync.

    Failures of individual items are collected in *errors*; they never
    fail the sync as a whole.

    Attributes:
        exported: Number of local records successfully exported.
        imported: Number of local records created by the import pass.
        errors: One entry per failed item, in processing order.
    """

    exported: int = 0
    imported: int = 0
    errors: list[SyncError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Whether any item failed."""
        return len(self.errors) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "exported": self.exported,
            "imported": self.imported,
            "errors": [error.to_dict() for error in self.errors],
        }
