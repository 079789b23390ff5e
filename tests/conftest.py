"""Shared fixtures for calsync tests."""

from __future__ import annotations

import logging
from collections.abc import Generator

import pytest

from calsync.log import GOOGLE_LOGGERS

CALSYNC_ENV_VARS = (
    "CALSYNC_SOURCE_APP",
    "TIMEZONE",
    "ORG_TIMEZONES",
    "DEFAULT_CALENDAR_ID",
    "IMPORT_WINDOW_DAYS",
    "GOOGLE_ACCESS_TOKEN",
    "GOOGLE_CREDENTIALS_PATH",
    "GOOGLE_TOKEN_PATH",
    "CALSYNC_MAX_RETRIES",
    "LOG_LEVEL",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove all calsync-related environment variables.

    Patches ``load_dotenv`` so a real ``.env`` file cannot re-inject values
    that the test explicitly removed.
    """
    monkeypatch.setattr("calsync.config.load_dotenv", lambda *_a, **_kw: None)
    for key in CALSYNC_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def monkeypatch_env(clean_env: None, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set a typical environment on top of :func:`clean_env`.

    Returns the dict of variables so tests can inspect or override values.
    """
    env_vars = {
        "GOOGLE_ACCESS_TOKEN": "test-access-token",
        "TIMEZONE": "Africa/Freetown",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture(autouse=True)
def _reset_root_logger() -> Generator[None, None, None]:
    """Reset the root and Google loggers after each test to prevent leaks."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    google_levels = {name: logging.getLogger(name).level for name in GOOGLE_LOGGERS}
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    for name, level in google_levels.items():
        logging.getLogger(name).setLevel(level)
