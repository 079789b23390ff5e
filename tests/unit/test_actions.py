"""Tests for the JSON action surface.

Test matrix:

| Test | Scenario | Expected |
|---|---|---|
| test_list_calendars | listCalendars | 200, provider field names |
| test_sync_to_google_create / _update | syncToGoogle | 200, created / updated message |
| test_sync_from_google | syncFromGoogle | 200, imported/total |
| test_delete_* | deleteFromGoogle | 200 in all three cases |
| test_full_sync | fullSync with camelCase settings | 200, results |
| test_invalid_action / test_non_object_body | Unknown or malformed | 400 |
| test_missing_required_fields | Schema failure | 400 with details |
| test_missing_token | Token provider raises AuthError | 401 |
| test_provider_auth_rejection | Provider 403 | 403 |
| test_provider_failure | Provider 500 | 500 with raw body |
| test_unmappable_record | No date | 400 |
| test_unexpected_error | Bug in a collaborator | 500 |
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from calsync.actions import (
    DeleteFromGoogleRequest,
    FullSyncRequest,
    handle_request,
    parse_request,
)
from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.sync import SyncOrchestrator
from calsync.config import Settings
from calsync.exceptions import AuthError, InputError
from calsync.models.records import CalendarSummary
from calsync.models.sync import ExportResult, ImportResult, SyncError, SyncReport
from calsync.store import InMemoryRecordStore
from tests.fakes import FIXED_NOW, FakeCalendarService, make_http_error


@pytest.fixture()
def orchestrator() -> MagicMock:
    return MagicMock(spec=SyncOrchestrator)


def _real_orchestrator(
    service: FakeCalendarService, store: InMemoryRecordStore, token_provider: object
) -> SyncOrchestrator:
    gateway = GoogleCalendarGateway(service_factory=lambda _t: service, max_retries=0, base_delay=0.0)
    return SyncOrchestrator(
        gateway, store, token_provider, settings=Settings(), clock=lambda: FIXED_NOW  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestParseRequest:
    def test_delete_without_data(self) -> None:
        request = parse_request({"action": "deleteFromGoogle"})

        assert isinstance(request, DeleteFromGoogleRequest)
        assert request.data.google_event_id is None

    def test_full_sync_settings_aliases(self) -> None:
        request = parse_request(
            {
                "action": "fullSync",
                "data": {"orgId": "org-1", "syncSettings": {"syncTasks": True, "taskPriorities": ["high"]}},
            }
        )

        assert isinstance(request, FullSyncRequest)
        assert request.data.sync_settings.sync_tasks is True
        assert request.data.sync_settings.task_priorities == ["high"]
        assert request.data.sync_settings.import_from_google is False

    @pytest.mark.parametrize("payload", [None, [], "fullSync"])
    def test_non_object_body(self, payload: object) -> None:
        with pytest.raises(InputError, match="JSON object"):
            parse_request(payload)

    def test_invalid_action(self) -> None:
        with pytest.raises(InputError, match="Invalid action"):
            parse_request({"action": "explode"})

    def test_bad_event_type(self) -> None:
        with pytest.raises(InputError) as exc_info:
            parse_request({"action": "syncToGoogle", "data": {"event": {"id": "T1"}, "eventType": "reminder"}})

        assert "eventType" in exc_info.value.details


# ---------------------------------------------------------------------------
# Success responses
# ---------------------------------------------------------------------------


class TestSuccessResponses:
    def test_list_calendars(self, orchestrator: MagicMock) -> None:
        orchestrator.list_calendars.return_value = [
            CalendarSummary(id="primary-id", name="Work", is_primary=True, color="#9fe1e7")
        ]

        response = handle_request({"action": "listCalendars"}, orchestrator)

        assert response.status == 200
        assert response.body == {
            "success": True,
            "calendars": [
                {"id": "primary-id", "summary": "Work", "primary": True, "backgroundColor": "#9fe1e7"}
            ],
        }

    def test_sync_to_google_create(self, orchestrator: MagicMock) -> None:
        orchestrator.sync_to_google.return_value = ExportResult("evt-1", was_update=False)
        event = {"id": "T1", "due_date": "2024-03-01"}

        response = handle_request(
            {"action": "syncToGoogle", "data": {"event": event, "eventType": "task"}},
            orchestrator,
        )

        assert response.ok
        assert response.body == {
            "success": True,
            "googleEventId": "evt-1",
            "message": "Event created in Google Calendar",
        }
        orchestrator.sync_to_google.assert_called_once_with(event, "task", None)

    def test_sync_to_google_update(self, orchestrator: MagicMock) -> None:
        orchestrator.sync_to_google.return_value = ExportResult("evt-1", was_update=True)

        response = handle_request(
            {
                "action": "syncToGoogle",
                "data": {"event": {"id": "M1"}, "eventType": "meeting", "calendarId": "team"},
            },
            orchestrator,
        )

        assert response.body["message"] == "Event updated in Google Calendar"
        orchestrator.sync_to_google.assert_called_once_with({"id": "M1"}, "meeting", "team")

    def test_sync_from_google(self, orchestrator: MagicMock) -> None:
        orchestrator.sync_from_google.return_value = ImportResult(imported=2, total=5)

        response = handle_request(
            {
                "action": "syncFromGoogle",
                "data": {"orgId": "org-1", "timeMin": "2024-03-01T00:00:00Z"},
            },
            orchestrator,
        )

        assert response.body == {
            "success": True,
            "imported": 2,
            "total": 5,
            "message": "Imported 2 new events from Google Calendar",
        }
        org_id, calendar_id, time_min, time_max = orchestrator.sync_from_google.call_args.args
        assert (org_id, calendar_id, time_max) == ("org-1", None, None)
        assert time_min.isoformat() == "2024-03-01T00:00:00+00:00"

    def test_delete_without_id(self, orchestrator: MagicMock) -> None:
        response = handle_request({"action": "deleteFromGoogle", "data": {}}, orchestrator)

        assert response.body == {"success": True, "message": "No Google event to delete"}
        orchestrator.delete_from_google.assert_not_called()

    @pytest.mark.parametrize(
        ("deleted", "message"),
        [
            (True, "Event deleted from Google Calendar"),
            (False, "Event already deleted from Google Calendar"),
        ],
    )
    def test_delete(self, orchestrator: MagicMock, deleted: bool, message: str) -> None:
        orchestrator.delete_from_google.return_value = deleted

        response = handle_request(
            {"action": "deleteFromGoogle", "data": {"googleEventId": "evt-1"}}, orchestrator
        )

        assert response.status == 200
        assert response.body["message"] == message

    def test_full_sync(self, orchestrator: MagicMock) -> None:
        orchestrator.full_sync.return_value = SyncReport(
            exported=4, imported=1, errors=[SyncError("T9", "Broken", "HTTP 500")]
        )

        response = handle_request(
            {"action": "fullSync", "data": {"orgId": "org-1", "syncSettings": {"syncTasks": True}}},
            orchestrator,
        )

        assert response.status == 200
        assert response.body["results"] == {
            "exported": 4,
            "imported": 1,
            "errors": [{"recordId": "T9", "recordTitle": "Broken", "errorMessage": "HTTP 500"}],
        }
        assert response.body["message"] == "Synced 4 events to Google, imported 1 from Google"


# ---------------------------------------------------------------------------
# Error responses
# ---------------------------------------------------------------------------


class TestErrorResponses:
    def test_invalid_action(self, orchestrator: MagicMock) -> None:
        response = handle_request({"action": "explode"}, orchestrator)

        assert response.status == 400
        assert response.body["error"] == "Invalid action"

    def test_missing_required_fields(self, orchestrator: MagicMock) -> None:
        response = handle_request({"action": "fullSync", "data": {}}, orchestrator)

        assert response.status == 400
        assert response.body["error"] == "Invalid fullSync request"
        assert "orgId" in response.body["details"]
        orchestrator.full_sync.assert_not_called()

    def test_empty_org_id(self, orchestrator: MagicMock) -> None:
        response = handle_request({"action": "syncFromGoogle", "data": {"orgId": ""}}, orchestrator)

        assert response.status == 400

    def test_missing_token(self) -> None:
        token_provider = MagicMock(side_effect=AuthError("No Google Calendar access token configured"))
        orchestrator = _real_orchestrator(FakeCalendarService(), InMemoryRecordStore(), token_provider)

        response = handle_request({"action": "listCalendars"}, orchestrator)

        assert response.status == 401
        assert "access token" in response.body["error"]

    def test_provider_auth_rejection(self) -> None:
        service = MagicMock()
        service.calendarList().list().execute.side_effect = make_http_error(403, b"forbidden")
        gateway = GoogleCalendarGateway(service_factory=lambda _t: service, base_delay=0.0)
        real = SyncOrchestrator(gateway, InMemoryRecordStore(), lambda: "token")

        response = handle_request({"action": "listCalendars"}, real)

        assert response.status == 403
        assert response.body["details"] == "forbidden"

    def test_provider_failure(self) -> None:
        service = FakeCalendarService()
        service.fail_summaries.add("Broken")
        orchestrator = _real_orchestrator(service, InMemoryRecordStore(), lambda: "token")

        response = handle_request(
            {
                "action": "syncToGoogle",
                "data": {
                    "event": {"id": "T1", "title": "Broken", "due_date": "2024-03-01"},
                    "eventType": "task",
                },
            },
            orchestrator,
        )

        assert response.status == 500
        assert "Backend Error" in response.body["details"]

    def test_unmappable_record(self) -> None:
        orchestrator = _real_orchestrator(FakeCalendarService(), InMemoryRecordStore(), lambda: "token")

        response = handle_request(
            {"action": "syncToGoogle", "data": {"event": {"id": "T1"}, "eventType": "task"}},
            orchestrator,
        )

        assert response.status == 400
        assert "no date" in response.body["error"]

    def test_unexpected_error(self, orchestrator: MagicMock) -> None:
        orchestrator.full_sync.side_effect = RuntimeError("store offline")

        response = handle_request({"action": "fullSync", "data": {"orgId": "org-1"}}, orchestrator)

        assert response.status == 500
        assert response.body == {"error": "store offline", "details": "RuntimeError('store offline')"}
