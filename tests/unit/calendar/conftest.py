"""Shared fixtures for calendar unit tests."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, create_autospec

import pytest
from google.oauth2.credentials import Credentials

from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.sync import SyncOrchestrator
from calsync.config import Settings
from calsync.store import InMemoryRecordStore
from tests.fakes import FIXED_NOW, FakeCalendarService


@pytest.fixture()
def mock_credentials() -> MagicMock:
    """Return a mock Credentials object that reports as valid."""
    creds = create_autospec(Credentials, instance=True)
    creds.valid = True
    creds.expired = False
    creds.token = "cached-access-token"
    creds.refresh_token = "fake-refresh-token"
    creds.to_json.return_value = '{"token": "fake"}'
    return creds


@pytest.fixture()
def mock_expired_credentials() -> MagicMock:
    """Return a mock Credentials object that is expired but has a refresh token."""
    creds = create_autospec(Credentials, instance=True)
    creds.valid = False
    creds.expired = True
    creds.token = "stale-access-token"
    creds.refresh_token = "fake-refresh-token"
    creds.to_json.return_value = '{"token": "refreshed"}'
    return creds


@pytest.fixture()
def tmp_credentials_file(tmp_path: Path) -> Path:
    """Write a minimal credentials.json to a temp directory and return its path."""
    creds_path = tmp_path / "credentials.json"
    creds_path.write_text('{"installed": {"client_id": "fake", "client_secret": "fake"}}')
    return creds_path


@pytest.fixture()
def tmp_token_file(tmp_path: Path) -> Path:
    """Return a path for token.json in a temp directory (file does not exist yet)."""
    return tmp_path / "token.json"


# ---------------------------------------------------------------------------
# Sync engine wiring
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        source_app="brifatsen",
        timezone="Africa/Freetown",
        org_timezones={"org-london": "Europe/London"},
        access_token="test-access-token",
    )


@pytest.fixture()
def fake_service() -> FakeCalendarService:
    return FakeCalendarService()


@pytest.fixture()
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def token_provider() -> MagicMock:
    return MagicMock(return_value="test-access-token")


@pytest.fixture()
def orchestrator(
    fake_service: FakeCalendarService,
    store: InMemoryRecordStore,
    token_provider: MagicMock,
    settings: Settings,
) -> SyncOrchestrator:
    """Orchestrator over the fake service with a fixed clock and no backoff."""
    gateway = GoogleCalendarGateway(
        service_factory=lambda _token: fake_service, max_retries=1, base_delay=0.0
    )
    return SyncOrchestrator(
        gateway,
        store,
        token_provider,
        settings=settings,
        clock=lambda: FIXED_NOW,
    )
