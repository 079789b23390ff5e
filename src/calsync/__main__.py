"""Entry point for ``python -m calsync``.

Provides a CLI that runs action requests against a JSON-file record
store.  Uses stdlib :mod:`argparse` for argument parsing.

Subcommands:
    request   -- Run one ``{"action": ..., "data": ...}`` request from a
                 file (or ``-`` for stdin) and print the JSON response.
    calendars -- Shortcut for the ``listCalendars`` action.
    authorize -- Run the OAuth browser flow and cache the user token.

Exit codes:
    0 -- The request succeeded.
    1 -- The request failed, or configuration / input was invalid.
    2 -- Argument parsing error (handled by argparse).
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from calsync.actions import ActionResponse, handle_request
from calsync.calendar.auth import (
    CachedCredentialsTokenProvider,
    StaticTokenProvider,
    TokenProvider,
    get_calendar_credentials,
)
from calsync.calendar.client import GoogleCalendarGateway
from calsync.calendar.sync import SyncOrchestrator
from calsync.config import ConfigError, Settings, load_settings
from calsync.exceptions import AuthError
from calsync.log import setup_logging
from calsync.store import InMemoryRecordStore, JsonFileRecordStore

DEFAULT_STORE_PATH = "records.json"


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="calsync",
        description="Synchronize local tasks and meetings with Google Calendar.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    verbose = argparse.ArgumentParser(add_help=False)
    verbose.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug-level logging.",
    )

    request_parser = subparsers.add_parser(
        "request",
        parents=[verbose],
        help="Run an action request and print the JSON response.",
    )
    request_parser.add_argument(
        "request_file",
        help="Path to the JSON request file, or '-' to read stdin.",
    )
    request_parser.add_argument(
        "--store",
        default=DEFAULT_STORE_PATH,
        help=f"JSON record store file (default: {DEFAULT_STORE_PATH}).",
    )

    subparsers.add_parser(
        "calendars",
        parents=[verbose],
        help="List the calendars available to the authorized account.",
    )

    subparsers.add_parser(
        "authorize",
        parents=[verbose],
        help="Run the OAuth flow and cache the user token.",
    )

    return parser


def build_token_provider(settings: Settings) -> TokenProvider:
    """Prefer a static access token; fall back to the cached user token."""
    if settings.access_token:
        return StaticTokenProvider(settings.access_token)
    return CachedCredentialsTokenProvider(settings.credentials_path, settings.token_path)


def build_orchestrator(settings: Settings, store_path: str) -> SyncOrchestrator:
    """Wire the production gateway, token provider and JSON record store."""
    return SyncOrchestrator(
        gateway=GoogleCalendarGateway(max_retries=settings.max_retries),
        store=JsonFileRecordStore(store_path),
        token_provider=build_token_provider(settings),
        settings=settings,
    )


def _read_request(source: str) -> Any:
    if source == "-":
        return json.load(sys.stdin)
    with open(source, encoding="utf-8") as f:
        return json.load(f)


def _emit(response: ActionResponse) -> int:
    print(json.dumps(response.body, indent=2, default=str))
    return 0 if response.ok else 1


def _handle_request(args: argparse.Namespace, settings: Settings) -> int:
    try:
        payload = _read_request(args.request_file)
    except FileNotFoundError:
        print(f"Error: File not found: {args.request_file}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as exc:
        return _emit(ActionResponse(400, {"error": "Malformed JSON request", "details": str(exc)}))

    try:
        orchestrator = build_orchestrator(settings, args.store)
    except ValueError as exc:
        print(f"Error: Unreadable record store {args.store}: {exc}", file=sys.stderr)
        return 1
    return _emit(handle_request(payload, orchestrator))


def _handle_calendars(settings: Settings) -> int:
    orchestrator = SyncOrchestrator(
        gateway=GoogleCalendarGateway(max_retries=settings.max_retries),
        store=InMemoryRecordStore(),
        token_provider=build_token_provider(settings),
        settings=settings,
    )
    return _emit(handle_request({"action": "listCalendars"}, orchestrator))


def _handle_authorize(settings: Settings) -> int:
    try:
        get_calendar_credentials(settings.credentials_path, settings.token_path)
    except AuthError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Authorized; token cached at {settings.token_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the calsync CLI.

    Args:
        argv: Command-line arguments.  Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: ``0`` on success, ``1`` on error.
    """
    parser = build_parser()
    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    try:
        settings = load_settings()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    setup_logging("DEBUG" if args.verbose else settings.log_level)

    if args.command == "authorize":
        return _handle_authorize(settings)
    if args.command == "calendars":
        return _handle_calendars(settings)
    return _handle_request(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
