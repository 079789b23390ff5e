"""JSON action surface for the sync engine.

Requests have the shape ``{"action": ..., "data": {...}}``.  Each action
is a separate pydantic model; the union is discriminated on ``action`` so
every request is validated against its own schema before it reaches the
orchestrator.  :func:`handle_request` dispatches through a lookup table
and renders the JSON response together with an HTTP status code:

| Error                         | Status     |
|-------------------------------|------------|
| malformed request, bad record | 400        |
| missing / rejected token      | 401 or 403 |
| provider or unexpected error  | 500        |

Error bodies are ``{"error": ..., "details": ...}``.  Per-item failures
inside ``fullSync`` are not errors: they are listed in ``results.errors``
of a successful response.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from calsync.calendar.exceptions import CalendarAuthError, GatewayError
from calsync.calendar.sync import SyncOrchestrator
from calsync.exceptions import AuthError, InputError
from calsync.models.records import EntityType
from calsync.models.sync import SyncSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SyncToGoogleData(_Payload):
    event: dict[str, Any]
    event_type: EntityType = Field(alias="eventType")
    calendar_id: str | None = Field(default=None, alias="calendarId")


class SyncFromGoogleData(_Payload):
    org_id: str = Field(alias="orgId", min_length=1)
    calendar_id: str | None = Field(default=None, alias="calendarId")
    time_min: datetime | None = Field(default=None, alias="timeMin")
    time_max: datetime | None = Field(default=None, alias="timeMax")


class DeleteFromGoogleData(_Payload):
    google_event_id: str | None = Field(default=None, alias="googleEventId")
    calendar_id: str | None = Field(default=None, alias="calendarId")


class FullSyncData(_Payload):
    org_id: str = Field(alias="orgId", min_length=1)
    calendar_id: str | None = Field(default=None, alias="calendarId")
    sync_settings: SyncSettings = Field(default_factory=SyncSettings, alias="syncSettings")


class ListCalendarsRequest(BaseModel):
    action: Literal["listCalendars"]
    data: dict[str, Any] | None = None


class SyncToGoogleRequest(BaseModel):
    action: Literal["syncToGoogle"]
    data: SyncToGoogleData


class SyncFromGoogleRequest(BaseModel):
    action: Literal["syncFromGoogle"]
    data: SyncFromGoogleData


class DeleteFromGoogleRequest(BaseModel):
    action: Literal["deleteFromGoogle"]
    data: DeleteFromGoogleData = Field(default_factory=DeleteFromGoogleData)


class FullSyncRequest(BaseModel):
    action: Literal["fullSync"]
    data: FullSyncData


ActionRequest = Annotated[
    Union[
        ListCalendarsRequest,
        SyncToGoogleRequest,
        SyncFromGoogleRequest,
        DeleteFromGoogleRequest,
        FullSyncRequest,
    ],
    Field(discriminator="action"),
]

_REQUEST_ADAPTER: TypeAdapter[Any] = TypeAdapter(ActionRequest)

ACTIONS = frozenset(
    {"listCalendars", "syncToGoogle", "syncFromGoogle", "deleteFromGoogle", "fullSync"}
)


@dataclass(frozen=True)
class ActionResponse:
    """A rendered response: HTTP status code plus JSON body."""

    status: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def parse_request(payload: Any) -> BaseModel:
    """Validate *payload* into one of the typed request variants.

    Raises:
        InputError: If the body is not an object, names an unknown
            action, or fails the action's schema.
    """
    if not isinstance(payload, dict):
        raise InputError("Request body must be a JSON object")

    action = payload.get("action")
    if action not in ACTIONS:
        raise InputError("Invalid action", details=f"Unknown action: {action!r}")

    try:
        return _REQUEST_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InputError(f"Invalid {action} request", details=str(exc)) from exc


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _list_calendars(orchestrator: SyncOrchestrator, request: ListCalendarsRequest) -> dict:
    calendars = orchestrator.list_calendars()
    return {"success": True, "calendars": [calendar.to_dict() for calendar in calendars]}


def _sync_to_google(orchestrator: SyncOrchestrator, request: SyncToGoogleRequest) -> dict:
    data = request.data
    result = orchestrator.sync_to_google(data.event, data.event_type, data.calendar_id)
    return {
        "success": True,
        "googleEventId": result.external_event_id,
        "message": (
            "Event updated in Google Calendar"
            if result.was_update
            else "Event created in Google Calendar"
        ),
    }


def _sync_from_google(orchestrator: SyncOrchestrator, request: SyncFromGoogleRequest) -> dict:
    data = request.data
    result = orchestrator.sync_from_google(data.org_id, data.calendar_id, data.time_min, data.time_max)
    return {
        "success": True,
        "imported": result.imported,
        "total": result.total,
        "message": f"Imported {result.imported} new events from Google Calendar",
    }


def _delete_from_google(orchestrator: SyncOrchestrator, request: DeleteFromGoogleRequest) -> dict:
    data = request.data
    if not data.google_event_id:
        return {"success": True, "message": "No Google event to delete"}
    deleted = orchestrator.delete_from_google(data.google_event_id, data.calendar_id)
    message = (
        "Event deleted from Google Calendar"
        if deleted
        else "Event already deleted from Google Calendar"
    )
    return {"success": True, "message": message}


def _full_sync(orchestrator: SyncOrchestrator, request: FullSyncRequest) -> dict:
    data = request.data
    report = orchestrator.full_sync(data.org_id, data.calendar_id, data.sync_settings)
    return {
        "success": True,
        "results": report.to_dict(),
        "message": (
            f"Synced {report.exported} events to Google, "
            f"imported {report.imported} from Google"
        ),
    }


_HANDLERS: dict[type[BaseModel], Callable[[SyncOrchestrator, Any], dict]] = {
    ListCalendarsRequest: _list_calendars,
    SyncToGoogleRequest: _sync_to_google,
    SyncFromGoogleRequest: _sync_from_google,
    DeleteFromGoogleRequest: _delete_from_google,
    FullSyncRequest: _full_sync,
}


def handle_request(payload: Any, orchestrator: SyncOrchestrator) -> ActionResponse:
    """Validate, dispatch and render one action request.

    Never raises; every failure is rendered as an error response.

    Args:
        payload: Decoded JSON request body.
        orchestrator: The engine to run the action against.

    Returns:
        The :class:`ActionResponse` to send back.
    """
    try:
        request = parse_request(payload)
        handler = _HANDLERS[type(request)]
        logger.info("Handling %s request", request.action)  # type: ignore[attr-defined]
        return ActionResponse(200, handler(orchestrator, request))

    except InputError as exc:
        logger.warning("Rejected request: %s", exc)
        return _error(400, str(exc), exc.details)
    except AuthError as exc:
        logger.warning("Authentication failed: %s", exc)
        return _error(exc.status_code, str(exc), "")
    except CalendarAuthError as exc:
        logger.warning("Calendar provider rejected credentials: %s", exc)
        return _error(exc.status_code or 401, str(exc), exc.details)
    except GatewayError as exc:
        return _error(500, str(exc), exc.details)
    except ValueError as exc:
        logger.warning("Invalid record: %s", exc)
        return _error(400, str(exc), repr(exc))
    except Exception as exc:
        logger.exception("Calendar sync failed")
        return _error(500, str(exc) or "Sync failed", repr(exc))


def _error(status: int, message: str, details: str) -> ActionResponse:
    return ActionResponse(status, {"error": message, "details": details})
