"""Google Calendar integration for calsync."""

from __future__ import annotations

from calsync.calendar.auth import (
    CachedCredentialsTokenProvider,
    StaticTokenProvider,
    get_calendar_credentials,
)
from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.event_mapper import map_to_google_event
from calsync.calendar.exceptions import GatewayError
from calsync.calendar.identity import is_foreign_origin, is_linked
from calsync.calendar.sync import SyncOrchestrator

__all__ = [
    "CachedCredentialsTokenProvider",
    "GatewayError",
    "GoogleCalendarGateway",
    "StaticTokenProvider",
    "SyncOrchestrator",
    "get_calendar_credentials",
    "is_foreign_origin",
    "is_linked",
    "map_to_google_event",
]
