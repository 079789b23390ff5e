"""Bearer token provisioning for Google Calendar API calls.

The sync engine asks a *token provider* -- any zero-argument callable
returning an access token -- for a token before each operation.  Two
providers are available:

- :class:`StaticTokenProvider` -- a token provisioned by some other
  service (e.g. an OAuth connector in the hosting platform).
- :class:`CachedCredentialsTokenProvider` -- a locally cached user token
  (``token.json``) obtained through the Desktop application OAuth flow of
  ``google-auth-oauthlib`` and refreshed through ``google-auth``.

Usage::

    from calsync.calendar.auth import get_calendar_credentials

    creds = get_calendar_credentials(
        credentials_path=Path("credentials.json"),
        token_path=Path("token.json"),
    )
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from pathlib import Path

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow

from calsync.exceptions import AuthError

logger = logging.getLogger(__name__)

SCOPES: list[str] = ["https://www.googleapis.com/auth/calendar"]
"""OAuth 2.0 scopes required for calendar list and event read/write access."""

TokenProvider = Callable[[], str]


class StaticTokenProvider:
    """Return a fixed, externally provisioned bearer token."""

    def __init__(self, token: str | None) -> None:
        self._token = token

    def __call__(self) -> str:
        if not self._token:
            raise AuthError("No Google Calendar access token configured")
        return self._token


class CachedCredentialsTokenProvider:
    """Return the access token of a cached, auto-refreshed user credential.

    Args:
        credentials_path: OAuth client secrets file.
        token_path: Cached user token file.
        interactive: Whether a browser flow may be launched when no
            usable token is cached.  Request handlers should leave this
            off; the ``authorize`` CLI command turns it on.
    """

    def __init__(
        self,
        credentials_path: Path | str,
        token_path: Path | str,
        interactive: bool = False,
    ) -> None:
        self._credentials_path = Path(credentials_path)
        self._token_path = Path(token_path)
        self._interactive = interactive

    def __call__(self) -> str:
        creds = get_calendar_credentials(
            self._credentials_path,
            self._token_path,
            interactive=self._interactive,
        )
        if not creds.token:
            raise AuthError("Cached Google credentials carry no access token")
        return creds.token


def get_calendar_credentials(
    credentials_path: Path | str,
    token_path: Path | str,
    interactive: bool = True,
) -> Credentials:
    """Obtain valid Google Calendar OAuth 2.0 credentials.

    Follows a three-step strategy:

    1. **Cached token** -- load ``token_path`` and return if still valid.
    2. **Refresh** -- if the cached token is expired but has a refresh token,
       attempt to refresh it.  On success, save the updated token and return.
    3. **Browser flow** -- if *interactive*, launch the ``InstalledAppFlow``
       local-server OAuth flow to obtain new credentials.

    Args:
        credentials_path: Path to the OAuth client secrets file
            (``credentials.json``) downloaded from Google Cloud Console.
        token_path: Path where the cached user token is stored
            (``token.json``).  Created/updated automatically.
        interactive: Allow step 3.

    Returns:
        A valid :class:`google.oauth2.credentials.Credentials` instance
        with the ``calendar`` scope.

    Raises:
        AuthError: If no valid token can be produced without a browser
            flow (non-interactive), or ``credentials_path`` does not exist.
    """
    credentials_path = Path(credentials_path)
    token_path = Path(token_path)

    creds = _load_cached_token(token_path)

    if creds is not None and creds.valid:
        logger.debug("Loaded valid cached token from %s", token_path)
        return creds

    if creds is not None and creds.expired and creds.refresh_token:
        logger.info("Cached token expired, attempting refresh")
        refreshed = _refresh_token(creds)
        if refreshed is not None:
            _save_token(refreshed, token_path)
            return refreshed
        logger.warning("Token refresh failed")

    if not interactive:
        raise AuthError(f"No valid Google Calendar token at {token_path}; run 'calsync authorize'")

    logger.info("Starting browser-based OAuth flow")
    creds = _run_browser_flow(credentials_path)
    _save_token(creds, token_path)
    return creds


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_cached_token(token_path: Path) -> Credentials | None:
    """Load credentials from a cached token file.

    Returns:
        A :class:`Credentials` instance, or ``None`` if the file does not
        exist or cannot be parsed.
    """
    if not token_path.exists():
        logger.info("No cached token found at %s", token_path)
        return None

    try:
        return Credentials.from_authorized_user_file(str(token_path), SCOPES)
    except (json.JSONDecodeError, ValueError, KeyError) as exc:
        logger.warning("Failed to parse cached token at %s: %s", token_path, exc)
        return None


def _refresh_token(creds: Credentials) -> Credentials | None:
    """Attempt to refresh expired credentials.

    Returns:
        The refreshed :class:`Credentials`, or ``None`` if the refresh
        request fails.
    """
    try:
        creds.refresh(Request())
    except Exception as exc:
        logger.warning("Token refresh failed: %s", exc)
        return None
    logger.info("Token refresh succeeded")
    return creds


def _run_browser_flow(credentials_path: Path) -> Credentials:
    """Launch the InstalledAppFlow to authenticate via browser.

    Raises:
        AuthError: If the client secrets file is missing.
    """
    if not credentials_path.exists():
        msg = f"OAuth client secrets file not found: {credentials_path}"
        logger.error(msg)
        raise AuthError(msg)

    flow = InstalledAppFlow.from_client_secrets_file(
        str(credentials_path),
        scopes=SCOPES,
    )
    creds = flow.run_local_server(port=0)
    logger.info("Browser OAuth flow completed successfully")
    return creds


def _save_token(creds: Credentials, token_path: Path) -> None:
    """Persist credentials to a token file, creating parent directories."""
    token_path.parent.mkdir(parents=True, exist_ok=True)
    token_path.write_text(creds.to_json())
    logger.info("Token saved to %s", token_path)
