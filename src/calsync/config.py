"""Configuration loading for calsync.

Reads settings from environment variables (with .env support via
python-dotenv).  Every setting has a default, so an empty environment is
valid; values that are present but malformed raise :class:`ConfigError`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

DEFAULT_SOURCE_APP = "brifatsen"
DEFAULT_TIMEZONE = "Africa/Freetown"
DEFAULT_CALENDAR_ID = "primary"
DEFAULT_IMPORT_WINDOW_DAYS = 90
DEFAULT_MAX_RETRIES = 3


class ConfigError(Exception):
    """Raised when configuration values are present but invalid."""


@dataclass(frozen=True)
class Settings:
    """Sync engine settings loaded from environment variables.

    Attributes:
        source_app: Provenance marker stamped onto every exported event.
        timezone: Default IANA time zone for organisations without an
            override.
        org_timezones: Per-organisation IANA time zone overrides.
        default_calendar_id: Calendar used when a request names none.
        import_window_days: Length of the default import window.
        access_token: Static bearer token, if provisioned externally.
        credentials_path: OAuth client secrets file for the installed-app
            flow.
        token_path: Cached user token written by the OAuth flow.
        max_retries: Retry budget for idempotent provider calls.
        log_level: Logging level (default ``"INFO"``).
    """

    source_app: str = DEFAULT_SOURCE_APP
    timezone: str = DEFAULT_TIMEZONE
    org_timezones: dict[str, str] = field(default_factory=dict)
    default_calendar_id: str = DEFAULT_CALENDAR_ID
    import_window_days: int = DEFAULT_IMPORT_WINDOW_DAYS
    access_token: str | None = None
    credentials_path: str = "credentials.json"
    token_path: str = "token.json"
    max_retries: int = DEFAULT_MAX_RETRIES
    log_level: str = "INFO"

    def timezone_for(self, org_id: str | None) -> str:
        """Return the time zone configured for *org_id*, or the default."""
        if org_id is not None and org_id in self.org_timezones:
            return self.org_timezones[org_id]
        return self.timezone

    def __repr__(self) -> str:
        token = "'***'" if self.access_token else "None"
        return (
            f"Settings(source_app={self.source_app!r}, "
            f"timezone={self.timezone!r}, "
            f"org_timezones={self.org_timezones!r}, "
            f"default_calendar_id={self.default_calendar_id!r}, "
            f"import_window_days={self.import_window_days!r}, "
            f"access_token={token}, "
            f"credentials_path={self.credentials_path!r}, "
            f"token_path={self.token_path!r}, "
            f"max_retries={self.max_retries!r}, "
            f"log_level={self.log_level!r})"
        )


def load_settings() -> Settings:
    """Load and validate settings from environment variables.

    Calls :func:`dotenv.load_dotenv` so a ``.env`` file in the working
    directory is picked up automatically.

    Returns:
        A validated :class:`Settings` instance.

    Raises:
        ConfigError: If any variable is set to an invalid value.  The
            message names **all** offending variables.
    """
    load_dotenv()

    values: dict[str, object] = {}
    problems: list[str] = []

    string_vars = {
        "CALSYNC_SOURCE_APP": "source_app",
        "DEFAULT_CALENDAR_ID": "default_calendar_id",
        "GOOGLE_ACCESS_TOKEN": "access_token",
        "GOOGLE_CREDENTIALS_PATH": "credentials_path",
        "GOOGLE_TOKEN_PATH": "token_path",
        "LOG_LEVEL": "log_level",
    }
    for env_var, field_name in string_vars.items():
        raw = _get(env_var)
        if raw:
            values[field_name] = raw

    log_level = values.get("log_level")
    if isinstance(log_level, str) and not isinstance(logging.getLevelName(log_level.upper()), int):
        problems.append(f"LOG_LEVEL (unknown level {log_level!r})")

    timezone = _get("TIMEZONE")
    if timezone:
        if _is_valid_zone(timezone):
            values["timezone"] = timezone
        else:
            problems.append(f"TIMEZONE (unknown time zone {timezone!r})")

    org_timezones = _get("ORG_TIMEZONES")
    if org_timezones:
        try:
            values["org_timezones"] = _parse_org_timezones(org_timezones)
        except ValueError as exc:
            problems.append(f"ORG_TIMEZONES ({exc})")

    for env_var, field_name in (
        ("IMPORT_WINDOW_DAYS", "import_window_days"),
        ("CALSYNC_MAX_RETRIES", "max_retries"),
    ):
        raw = _get(env_var)
        if not raw:
            continue
        try:
            number = int(raw)
        except ValueError:
            problems.append(f"{env_var} (not an integer: {raw!r})")
            continue
        if number < 0:
            problems.append(f"{env_var} (must not be negative)")
            continue
        values[field_name] = number

    if problems:
        raise ConfigError("Invalid environment variables: " + "; ".join(problems))

    return Settings(**values)  # type: ignore[arg-type]


def _get(env_var: str) -> str:
    return os.environ.get(env_var, "").strip()


def _is_valid_zone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def _parse_org_timezones(raw: str) -> dict[str, str]:
    """Parse ``"org1=Europe/London,org2=Africa/Lagos"`` into a mapping.

    Raises:
        ValueError: On a malformed pair or an unknown time zone.
    """
    mapping: dict[str, str] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        org_id, sep, zone = pair.partition("=")
        org_id, zone = org_id.strip(), zone.strip()
        if not sep or not org_id or not zone:
            raise ValueError(f"expected org=Zone, got {pair!r}")
        if not _is_valid_zone(zone):
            raise ValueError(f"unknown time zone {zone!r} for {org_id!r}")
        mapping[org_id] = zone
    return mapping
