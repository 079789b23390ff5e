"""Unit tests for the CLI entrypoint.

Tests cover: request from a file and from stdin, missing arguments,
nonexistent file, malformed JSON, unreadable record store, invalid
configuration, the calendars shortcut, --verbose, and authorize.
"""

from __future__ import annotations

import io
import json
import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from calsync.__main__ import build_token_provider, main
from calsync.actions import ActionResponse
from calsync.calendar.auth import CachedCredentialsTokenProvider, StaticTokenProvider
from calsync.config import Settings
from calsync.exceptions import AuthError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_request(tmp_path: Path, payload: object, name: str = "request.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload))
    return path


def _ok(body: dict | None = None) -> ActionResponse:
    return ActionResponse(200, body or {"success": True})


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestRequestCommand:
    def test_request_file_prints_response(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        request = _write_request(tmp_path, {"action": "deleteFromGoogle"})
        store = tmp_path / "records.json"

        with patch("calsync.__main__.handle_request", return_value=_ok()) as mock_handle:
            exit_code = main(["request", str(request), "--store", str(store)])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == {"success": True}
        assert mock_handle.call_args.args[0] == {"action": "deleteFromGoogle"}

    def test_request_from_stdin(
        self,
        monkeypatch_env: dict[str, str],
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO('{"action": "listCalendars"}'))

        with patch("calsync.__main__.handle_request", return_value=_ok()) as mock_handle:
            exit_code = main(["request", "-", "--store", str(tmp_path / "records.json")])

        assert exit_code == 0
        assert mock_handle.call_args.args[0] == {"action": "listCalendars"}

    def test_error_response_exits_1(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        request = _write_request(tmp_path, {"action": "explode"})

        exit_code = main(["request", str(request), "--store", str(tmp_path / "records.json")])

        assert exit_code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "Invalid action"

    def test_nonexistent_file(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        exit_code = main(["request", str(tmp_path / "missing.json")])

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().err

    def test_malformed_json(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        request = tmp_path / "request.json"
        request.write_text("{not json")

        exit_code = main(["request", str(request)])

        assert exit_code == 1
        assert json.loads(capsys.readouterr().out)["error"] == "Malformed JSON request"

    def test_unreadable_store(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        request = _write_request(tmp_path, {"action": "listCalendars"})
        store = tmp_path / "records.json"
        store.write_text("[1, 2, 3]")

        exit_code = main(["request", str(request), "--store", str(store)])

        assert exit_code == 1
        assert "Unreadable record store" in capsys.readouterr().err

    def test_missing_arguments(self, monkeypatch_env: dict[str, str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["request"])

        assert exc_info.value.code == 2

    def test_invalid_config(
        self,
        tmp_path: Path,
        clean_env: None,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("TIMEZONE", "Nowhere/Land")
        request = _write_request(tmp_path, {"action": "listCalendars"})

        exit_code = main(["request", str(request)])

        assert exit_code == 1
        assert "TIMEZONE" in capsys.readouterr().err

    def test_verbose_enables_debug_logging(
        self,
        tmp_path: Path,
        monkeypatch_env: dict[str, str],
    ) -> None:
        request = _write_request(tmp_path, {"action": "deleteFromGoogle"})

        with patch("calsync.__main__.handle_request", return_value=_ok()):
            main(["request", str(request), "--store", str(tmp_path / "r.json"), "-v"])

        assert logging.getLogger().level == logging.DEBUG


class TestCalendarsCommand:
    def test_calendars_runs_list_action(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        body = {"success": True, "calendars": []}

        with patch("calsync.__main__.handle_request", return_value=_ok(body)) as mock_handle:
            exit_code = main(["calendars"])

        assert exit_code == 0
        assert mock_handle.call_args.args[0] == {"action": "listCalendars"}
        assert json.loads(capsys.readouterr().out) == body


class TestAuthorizeCommand:
    def test_authorize_caches_token(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch("calsync.__main__.get_calendar_credentials", return_value=MagicMock()) as mock_get:
            exit_code = main(["authorize"])

        assert exit_code == 0
        mock_get.assert_called_once_with("credentials.json", "token.json")
        assert "token.json" in capsys.readouterr().out

    def test_authorize_failure(
        self,
        monkeypatch_env: dict[str, str],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        with patch(
            "calsync.__main__.get_calendar_credentials",
            side_effect=AuthError("OAuth client secrets file not found: credentials.json"),
        ):
            exit_code = main(["authorize"])

        assert exit_code == 1
        assert "client secrets" in capsys.readouterr().err


class TestBuildTokenProvider:
    def test_static_token_preferred(self) -> None:
        provider = build_token_provider(Settings(access_token="abc"))

        assert isinstance(provider, StaticTokenProvider)
        assert provider() == "abc"

    def test_cached_credentials_fallback(self) -> None:
        assert isinstance(build_token_provider(Settings()), CachedCredentialsTokenProvider)
