"""calsync: two-way Google Calendar sync for tasks and meetings.

Exports local scheduling records to Google Calendar, imports externally
authored events as tasks, and runs policy-driven batch syncs.
"""

from __future__ import annotations

from calsync.actions import ActionResponse, handle_request, parse_request
from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.exceptions import GatewayError
from calsync.calendar.sync import SyncOrchestrator
from calsync.exceptions import AuthError, InputError
from calsync.models.records import ExternalEvent, Meeting, Task
from calsync.models.sync import SyncReport, SyncSettings
from calsync.store import InMemoryRecordStore, JsonFileRecordStore, RecordStore

__version__ = "0.1.0"

__all__ = [
    "ActionResponse",
    "AuthError",
    "ExternalEvent",
    "GatewayError",
    "GoogleCalendarGateway",
    "InMemoryRecordStore",
    "InputError",
    "JsonFileRecordStore",
    "Meeting",
    "RecordStore",
    "SyncOrchestrator",
    "SyncReport",
    "SyncSettings",
    "Task",
    "handle_request",
    "parse_request",
]
