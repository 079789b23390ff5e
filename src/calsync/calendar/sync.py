"""Two-way sync orchestrator between local records and Google Calendar.

Provides :class:`SyncOrchestrator`, the engine behind the action surface:

- :meth:`~SyncOrchestrator.sync_to_google` -- upsert one local record as a
  provider event and link it on first export.
- :meth:`~SyncOrchestrator.sync_from_google` -- import externally authored
  events as new local tasks, at most once per event.
- :meth:`~SyncOrchestrator.delete_from_google` -- delete a provider event.
- :meth:`~SyncOrchestrator.full_sync` -- the policy-driven batch: export
  tasks, export meetings, then import.

Conflicts are resolved last-writer-wins: exports always overwrite the
provider event with the local record's content, and imports never touch a
record that is already linked.  Within :meth:`~SyncOrchestrator.full_sync`
a single failing item is recorded in the report and does not prevent the
remaining items from being processed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from calsync.calendar.auth import TokenProvider
from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.event_mapper import map_to_google_event
from calsync.calendar.identity import is_foreign_origin, is_linked
from calsync.config import Settings
from calsync.models.records import (
    CANCELLED_STATUS,
    LINK_FIELD,
    STORE_ENTITIES,
    CalendarSummary,
    EntityType,
    ExternalEvent,
    ScheduleRecord,
    record_from_dict,
)
from calsync.models.sync import (
    IMPORT_ITEM_ID,
    IMPORT_ITEM_TITLE,
    ExportResult,
    ImportResult,
    SyncError,
    SyncReport,
    SyncSettings,
)
from calsync.store import RecordStore

logger = logging.getLogger(__name__)

# Field values given to tasks created from imported events.
IMPORTED_TASK_CATEGORY = "meeting"
IMPORTED_TASK_STATUS = "pending"
IMPORTED_TASK_PRIORITY = "medium"
IMPORTED_TASK_TITLE = "Untitled Event"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncOrchestrator:
    """Calendar sync engine with injected collaborators.

    Args:
        gateway: Provider gateway used for every network call.
        store: Record store holding the local tasks and meetings.
        token_provider: Callable returning a bearer token; called once per
            public operation.
        settings: Engine settings (provenance marker, time zones, default
            calendar, import window).  Defaults to :class:`Settings`.
        clock: Returns the current time; drives the default import window.
    """

    def __init__(
        self,
        gateway: GoogleCalendarGateway,
        store: RecordStore,
        token_provider: TokenProvider,
        settings: Settings | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._token_provider = token_provider
        self._settings = settings or Settings()
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def list_calendars(self) -> list[CalendarSummary]:
        """List the calendars available to the authenticated user."""
        return self._gateway.list_calendars(self._token_provider())

    def sync_to_google(
        self,
        record: ScheduleRecord | dict[str, Any],
        entity_type: EntityType,
        calendar_id: str | None = None,
    ) -> ExportResult:
        """Export one local record, creating or updating its provider event.

        A record sent without a link is checked against the store first, so
        re-sending a snapshot taken before the first export updates the
        event created then instead of creating a second one.

        Args:
            record: The task or meeting, as a model or a store dict.
            entity_type: ``"task"`` or ``"meeting"``.
            calendar_id: Target calendar; defaults to the configured one.

        Returns:
            The linked event id and whether an existing event was updated.

        Raises:
            GatewayError: If the provider rejects the upsert.
            ValueError: If the record cannot be mapped (e.g. has no date).
        """
        record = self._with_stored_link(self._as_record(record, entity_type), entity_type)
        return self._export(
            self._token_provider(),
            record,
            entity_type,
            calendar_id or self._settings.default_calendar_id,
        )

    def sync_from_google(
        self,
        org_id: str,
        calendar_id: str | None = None,
        time_min: datetime | None = None,
        time_max: datetime | None = None,
    ) -> ImportResult:
        """Import externally authored events as new tasks for *org_id*.

        The window defaults to now through now plus the configured import
        window.  Events stamped by this system are ignored, and events
        already linked to a task of the organisation are skipped, so
        repeated calls over overlapping windows import each event once.

        Raises:
            GatewayError: If the events cannot be listed.
        """
        return self._import(
            self._token_provider(),
            org_id,
            calendar_id or self._settings.default_calendar_id,
            time_min,
            time_max,
        )

    def delete_from_google(
        self,
        external_event_id: str | None,
        calendar_id: str | None = None,
    ) -> bool:
        """Delete a provider event.

        Returns:
            ``True`` if an event was deleted, ``False`` if there was nothing
            to delete (no id given, or the provider no longer has it).

        Raises:
            GatewayError: On any failure other than "not found".
        """
        if not external_event_id:
            logger.info("No external event id given; nothing to delete")
            return False
        return self._gateway.delete_event(
            self._token_provider(),
            calendar_id or self._settings.default_calendar_id,
            external_event_id,
        )

    def full_sync(
        self,
        org_id: str,
        calendar_id: str | None = None,
        settings: SyncSettings | None = None,
    ) -> SyncReport:
        """Run the export and import passes selected by *settings*.

        Phases run in order: tasks, meetings, import.  Records within a
        phase are processed one at a time in store order.  Every item
        failure is caught and recorded in the report.

        Returns:
            A :class:`SyncReport` with export/import counts and failures.
        """
        settings = settings or SyncSettings()
        calendar_id = calendar_id or self._settings.default_calendar_id
        token = self._token_provider()
        report = SyncReport()

        logger.info("Starting full sync for organisation %s into %s", org_id, calendar_id)

        if settings.sync_tasks:
            self._export_all(
                token, org_id, calendar_id, "task", "priority", settings.task_priorities, report
            )

        if settings.sync_meetings:
            self._export_all(
                token, org_id, calendar_id, "meeting", "meeting_type", settings.meeting_types, report
            )

        if settings.import_from_google:
            created: list[str] = []
            try:
                self._import(token, org_id, calendar_id, None, None, created)
            except Exception as exc:
                logger.error(
                    "Import from calendar %s failed after %d task(s): %s",
                    calendar_id,
                    len(created),
                    exc,
                )
                report.errors.append(SyncError(IMPORT_ITEM_ID, IMPORT_ITEM_TITLE, str(exc)))
            # Tasks created before a failure stay in the store.
            report.imported = len(created)

        logger.info(
            "Full sync complete: %d exported, %d imported, %d error(s)",
            report.exported,
            report.imported,
            len(report.errors),
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _export(
        self,
        token: str,
        record: ScheduleRecord,
        entity_type: EntityType,
        calendar_id: str,
    ) -> ExportResult:
        body = map_to_google_event(
            record,
            entity_type,
            self._settings.timezone_for(record.organisation_id),
            self._settings.source_app,
        )

        if is_linked(record):
            event = self._gateway.upsert_event(
                token, calendar_id, body, existing_event_id=record.external_event_id
            )
            logger.info("Updated %s %s -> event %s", entity_type, record.id, event.event_id)
            return ExportResult(external_event_id=event.event_id, was_update=True)

        event = self._gateway.upsert_event(token, calendar_id, body)
        self._store.update(STORE_ENTITIES[entity_type], record.id, {LINK_FIELD: event.event_id})
        logger.info("Linked %s %s to new event %s", entity_type, record.id, event.event_id)
        return ExportResult(external_event_id=event.event_id, was_update=False)

    def _export_all(
        self,
        token: str,
        org_id: str,
        calendar_id: str,
        entity_type: EntityType,
        filter_field: str,
        allowed: list[str],
        report: SyncReport,
    ) -> None:
        """Export every eligible record of one entity type into *report*."""
        rows = self._store.filter(STORE_ENTITIES[entity_type], {"organisation_id": org_id})
        candidates = [
            row
            for row in rows
            if row.get("status") != CANCELLED_STATUS
            and (not allowed or row.get(filter_field) in allowed)
        ]
        logger.info(
            "Exporting %d of %d %s record(s)", len(candidates), len(rows), entity_type
        )

        for row in candidates:
            try:
                record = record_from_dict(entity_type, row)
                self._export(token, record, entity_type, calendar_id)
                report.exported += 1
            except Exception as exc:
                logger.error(
                    "Failed to export %s %s (%r): %s",
                    entity_type,
                    row.get("id"),
                    row.get("title"),
                    exc,
                )
                report.errors.append(
                    SyncError(str(row.get("id")), row.get("title"), str(exc))
                )

    def _import(
        self,
        token: str,
        org_id: str,
        calendar_id: str,
        time_min: datetime | None,
        time_max: datetime | None,
        created: list[str] | None = None,
    ) -> ImportResult:
        """Import foreign events, appending each new task id to *created*."""
        if not org_id:
            raise ValueError("An organisation id is required to import events")

        now = self._clock()
        window = timedelta(days=self._settings.import_window_days)
        time_min = time_min or now
        time_max = time_max or now + window

        events = self._gateway.list_events(token, calendar_id, time_min, time_max)
        foreign = [
            event
            for event in events
            if is_foreign_origin(event, self._settings.source_app)
            and event.status != CANCELLED_STATUS
        ]

        org_timezone = self._settings.timezone_for(org_id)
        if created is None:
            created = []

        for event in foreign:
            existing = self._store.filter(
                STORE_ENTITIES["task"],
                {"organisation_id": org_id, LINK_FIELD: event.event_id},
            )
            if existing:
                logger.debug("Event %s already imported as task %s", event.event_id, existing[0].get("id"))
                continue

            task = self._store.create(STORE_ENTITIES["task"], _task_fields(event, org_id, org_timezone))
            created.append(task["id"])
            logger.info("Imported event %s as task %s", event.event_id, task["id"])

        logger.info(
            "Imported %d new event(s) of %d external event(s) from %s",
            len(created),
            len(foreign),
            calendar_id,
        )
        return ImportResult(imported=len(created), total=len(foreign), created_record_ids=created)

    def _with_stored_link(self, record: ScheduleRecord, entity_type: EntityType) -> ScheduleRecord:
        """Fill in a link the store already holds for an unlinked *record*."""
        if is_linked(record):
            return record
        stored = self._store.filter(STORE_ENTITIES[entity_type], {"id": record.id})
        link = stored[0].get(LINK_FIELD) if stored else None
        if not link:
            return record
        logger.debug("Using stored link %s for %s %s", link, entity_type, record.id)
        return record.model_copy(update={LINK_FIELD: link})

    @staticmethod
    def _as_record(record: ScheduleRecord | dict[str, Any], entity_type: EntityType) -> ScheduleRecord:
        if isinstance(record, dict):
            return record_from_dict(entity_type, record)
        return record


def _task_fields(event: ExternalEvent, org_id: str, org_timezone: str) -> dict[str, Any]:
    """Build the store fields for a task imported from *event*."""
    due_date, due_time = event.local_start(org_timezone)
    return {
        "organisation_id": org_id,
        "title": event.summary or IMPORTED_TASK_TITLE,
        "description": event.description or "",
        "due_date": due_date.isoformat() if due_date else None,
        "due_time": due_time.strftime("%H:%M") if due_time else None,
        "category": IMPORTED_TASK_CATEGORY,
        "status": IMPORTED_TASK_STATUS,
        "priority": IMPORTED_TASK_PRIORITY,
        LINK_FIELD: event.event_id,
    }
