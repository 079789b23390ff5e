"""Thin Google Calendar gateway for the sync engine.

Provides :class:`GoogleCalendarGateway`, a wrapper around the Google
Calendar API that exposes exactly the four operations the sync engine
needs:

- **list calendars** -- the user's calendar list.
- **list events** -- all event occurrences in a time range, with recurring
  events expanded (``singleEvents``) and pagination handled.
- **upsert event** -- update by id when one is given, otherwise insert.
- **delete event** -- treating an already-missing event as deleted.

The gateway holds no business logic.  Every call is authenticated with a
bearer token supplied by the caller.  Idempotent calls (list, update,
delete) are wrapped in :func:`~calsync.calendar.exceptions.with_retry`;
inserts are attempted exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build

from calsync.calendar.exceptions import CalendarNotFoundError, with_retry
from calsync.models.records import CalendarSummary, ExternalEvent

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[str], Any]

# Without this the API drops ``conferenceData`` from insert/update bodies.
CONFERENCE_DATA_VERSION = 1


def build_calendar_service(token: str) -> Any:
    """Build a Calendar v3 service resource authenticated with *token*."""
    credentials = Credentials(token=token)
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


class GoogleCalendarGateway:
    """Google Calendar list/create/update/delete operations.

    Args:
        service_factory: Callable that returns a ``googleapiclient``
            service resource for a bearer token.  Defaults to
            :func:`build_calendar_service`.  Pass a factory returning a
            mock here in tests.
        max_retries: Retry budget for idempotent calls.
        base_delay: Initial backoff delay in seconds.
    """

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
    ) -> None:
        self._service_factory = service_factory or build_calendar_service
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._service: Any | None = None
        self._service_token: str | None = None

    def _service_for(self, token: str) -> Any:
        """Return a service resource for *token*, reusing the last one built."""
        if self._service is None or self._service_token != token:
            self._service = self._service_factory(token)
            self._service_token = token
        return self._service

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    @with_retry()
    def list_calendars(self, token: str) -> list[CalendarSummary]:
        """List the calendars visible to the token's user.

        Returns:
            One :class:`CalendarSummary` per calendar, in provider order.
        """
        service = self._service_for(token)
        calendars: list[CalendarSummary] = []
        page_token: str | None = None

        while True:
            response = service.calendarList().list(pageToken=page_token).execute()
            for item in response.get("items", []):
                calendars.append(
                    CalendarSummary(
                        id=item["id"],
                        name=item.get("summary", ""),
                        is_primary=bool(item.get("primary", False)),
                        color=item.get("backgroundColor"),
                    )
                )
            page_token = response.get("nextPageToken")
            if page_token is None:
                break

        logger.info("Listed %d calendar(s)", len(calendars))
        return calendars

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @with_retry()
    def list_events(
        self,
        token: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
    ) -> list[ExternalEvent]:
        """List event occurrences in ``[time_min, time_max)``.

        Recurring events are expanded into single occurrences and results
        are ordered by start time.  Naive datetimes are taken as UTC.

        Returns:
            A flat list of :class:`ExternalEvent` from all pages.
        """
        service = self._service_for(token)
        events: list[ExternalEvent] = []
        page_token: str | None = None

        while True:
            response = (
                service.events()
                .list(
                    calendarId=calendar_id,
                    timeMin=_rfc3339(time_min),
                    timeMax=_rfc3339(time_max),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                )
                .execute()
            )
            for item in response.get("items", []):
                events.append(ExternalEvent.from_api(item, calendar_id))

            page_token = response.get("nextPageToken")
            if page_token is None:
                break

        logger.info(
            "Listed %d event(s) in %s between %s and %s",
            len(events),
            calendar_id,
            _rfc3339(time_min),
            _rfc3339(time_max),
        )
        return events

    def upsert_event(
        self,
        token: str,
        calendar_id: str,
        body: dict,
        existing_event_id: str | None = None,
    ) -> ExternalEvent:
        """Update *existing_event_id* with *body*, or insert a new event.

        Returns:
            The provider's canonical event, including its id.

        Raises:
            CalendarNotFoundError: If *existing_event_id* no longer exists.
            GatewayError: On any other non-success response.
        """
        if existing_event_id:
            return self._update_event(token, calendar_id, existing_event_id, body)
        return self._insert_event(token, calendar_id, body)

    def delete_event(self, token: str, calendar_id: str, event_id: str) -> bool:
        """Delete an event by its id.

        Returns:
            ``True`` if the event was deleted, ``False`` if the provider
            reported it as already missing (HTTP 404 or 410).
        """
        try:
            self._delete_event(token, calendar_id, event_id)
        except CalendarNotFoundError:
            logger.info("Event %s already absent from %s", event_id, calendar_id)
            return False
        logger.info("Deleted event (id=%s) from %s", event_id, calendar_id)
        return True

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @with_retry(max_retries=0)
    def _insert_event(self, token: str, calendar_id: str, body: dict) -> ExternalEvent:
        result = (
            self._service_for(token)
            .events()
            .insert(
                calendarId=calendar_id,
                body=body,
                conferenceDataVersion=CONFERENCE_DATA_VERSION,
            )
            .execute()
        )
        logger.info("Created event '%s' (id=%s)", body.get("summary", "?"), result.get("id", "?"))
        return ExternalEvent.from_api(result, calendar_id)

    @with_retry()
    def _update_event(
        self,
        token: str,
        calendar_id: str,
        event_id: str,
        body: dict,
    ) -> ExternalEvent:
        result = (
            self._service_for(token)
            .events()
            .update(
                calendarId=calendar_id,
                eventId=event_id,
                body=body,
                conferenceDataVersion=CONFERENCE_DATA_VERSION,
            )
            .execute()
        )
        logger.info("Updated event '%s' (id=%s)", body.get("summary", "?"), event_id)
        return ExternalEvent.from_api(result, calendar_id)

    @with_retry()
    def _delete_event(self, token: str, calendar_id: str, event_id: str) -> None:
        self._service_for(token).events().delete(
            calendarId=calendar_id, eventId=event_id
        ).execute()


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------


def _rfc3339(value: datetime) -> str:
    """Format *value* as an RFC 3339 timestamp, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
