"""Request-level exceptions for calsync.

These map onto the HTTP status codes returned by the action surface in
:mod:`calsync.actions`.  Provider failures live in
:mod:`calsync.calendar.exceptions`.
"""

from __future__ import annotations


class InputError(Exception):
    """Raised when a request is malformed or a required field is missing.

    Surfaced as HTTP 400.

    Attributes:
        details: Optional diagnostic text (e.g. the pydantic validation
            report) echoed back in the ``details`` field of the response.
    """

    def __init__(self, message: str, details: str = "") -> None:
        super().__init__(message)
        self.details = details


class AuthError(Exception):
    """Raised when no usable bearer token is available.

    Surfaced as HTTP 401 by default, or 403 when the token was present but
    rejected for lack of permission.
    """

    def __init__(self, message: str = "Unauthorized", status_code: int = 401) -> None:
        super().__init__(message)
        self.status_code = status_code
