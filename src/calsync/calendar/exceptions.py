"""Gateway exceptions and retry logic for Google Calendar API operations.

Defines the calendar-specific exception hierarchy and a ``@with_retry``
decorator that handles transient failures (rate limits, provider 5xx,
network errors) with exponential backoff.

Exception hierarchy::

    GatewayError               (base for all Calendar API errors)
    +-- CalendarAuthError      (HTTP 401 / 403)
    +-- CalendarRateLimitError (HTTP 429)
    +-- CalendarNotFoundError  (HTTP 404 / 410)

Every error carries the provider's raw error body in ``details``.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# ---------------------------------------------------------------------------
# Exception classes
# ---------------------------------------------------------------------------


class GatewayError(Exception):
    """Base exception for Google Calendar API errors.

    Attributes:
        status_code: HTTP status code from the API, or ``None`` if the
            error did not originate from an HTTP response.
        details: Raw error body returned by the provider.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class CalendarAuthError(GatewayError):
    """Raised when the provider rejects the bearer token (401) or denies access (403)."""

    def __init__(
        self,
        message: str = "Calendar authentication failed",
        status_code: int = 401,
        details: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)


class CalendarRateLimitError(GatewayError):
    """Raised when the Calendar API returns HTTP 429 (rate limit exceeded)."""

    def __init__(
        self,
        message: str = "Calendar API rate limit exceeded",
        details: str = "",
    ) -> None:
        super().__init__(message, status_code=429, details=details)


class CalendarNotFoundError(GatewayError):
    """Raised when a Calendar resource is missing (404) or already deleted (410)."""

    def __init__(
        self,
        message: str = "Calendar resource not found",
        status_code: int = 404,
        details: str = "",
    ) -> None:
        super().__init__(message, status_code=status_code, details=details)


# ---------------------------------------------------------------------------
# Retry decorator
# ---------------------------------------------------------------------------

_DEFAULT_MAX_RETRIES = 3
_DEFAULT_BASE_DELAY = 1.0  # seconds

NOT_FOUND_STATUSES = frozenset({404, 410})


def _error_body(error: HttpError) -> str:
    content = error.content
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return str(content or "")


def classify_http_error(error: HttpError) -> GatewayError:
    """Map an ``HttpError`` to the appropriate gateway exception.

    Args:
        error: The ``googleapiclient.errors.HttpError`` to classify.

    Returns:
        A :class:`GatewayError` subclass matching the HTTP status code.
    """
    status = int(error.resp.status)
    details = _error_body(error)
    message = f"Calendar API error (HTTP {status}): {details}"

    if status in NOT_FOUND_STATUSES:
        return CalendarNotFoundError(message, status_code=status, details=details)
    if status == 429:
        return CalendarRateLimitError(message, details=details)
    if status in (401, 403):
        return CalendarAuthError(message, status_code=status, details=details)
    return GatewayError(message, status_code=status, details=details)


def _is_transient(error: GatewayError) -> bool:
    if isinstance(error, CalendarRateLimitError):
        return True
    return error.status_code is not None and error.status_code >= 500


def with_retry(
    max_retries: int | None = None,
    base_delay: float | None = None,
) -> Callable[[F], F]:
    """Decorator that retries Calendar API calls on transient failures.

    Retry policy:
    - **HTTP 429** and **HTTP 5xx**: exponential backoff, up to
      *max_retries*.
    - **Network errors** (``OSError``, ``TimeoutError``): exponential
      backoff, up to *max_retries*.
    - **HTTP 401/403, 404/410** and other 4xx: raised immediately as the
      matching :class:`GatewayError` subclass.

    Only apply this with ``max_retries > 0`` to idempotent calls.  A
    retried insert may have reached the provider before failing, and
    replaying it would create a second event.

    When *max_retries* or *base_delay* is ``None`` the value is read from
    the decorated method's instance (``self._max_retries`` /
    ``self._base_delay``), falling back to the module defaults.

    Args:
        max_retries: Maximum number of retry attempts.
        base_delay: Initial backoff delay in seconds.  Doubled on each
            subsequent retry.

    Returns:
        A decorator that wraps the target function with retry logic.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            instance = args[0] if args else None
            retries = max_retries
            if retries is None:
                retries = getattr(instance, "_max_retries", _DEFAULT_MAX_RETRIES)
            delay_base = base_delay
            if delay_base is None:
                delay_base = getattr(instance, "_base_delay", _DEFAULT_BASE_DELAY)

            for attempt in range(retries + 1):
                try:
                    return func(*args, **kwargs)

                except HttpError as exc:
                    cal_error = classify_http_error(exc)

                    if not _is_transient(cal_error):
                        if isinstance(cal_error, CalendarNotFoundError):
                            logger.info("Resource not found (HTTP %s)", cal_error.status_code)
                        else:
                            logger.error(
                                "Calendar API error (HTTP %s): %s",
                                cal_error.status_code,
                                cal_error.details,
                            )
                        raise cal_error from exc

                    if attempt >= retries:
                        logger.error(
                            "Calendar API error (HTTP %s) after %d retries: %s",
                            cal_error.status_code,
                            retries,
                            cal_error.details,
                        )
                        raise cal_error from exc

                    delay = delay_base * (2**attempt)
                    logger.warning(
                        "Calendar API returned HTTP %s, retrying in %.1fs (attempt %d/%d)",
                        cal_error.status_code,
                        delay,
                        attempt + 1,
                        retries,
                    )
                    time.sleep(delay)

                except (OSError, TimeoutError) as exc:
                    if attempt >= retries:
                        logger.error("Network error after %d retries: %s", retries, exc)
                        raise GatewayError(
                            f"Network error after {retries} retries: {exc}",
                            details=str(exc),
                        ) from exc
                    delay = delay_base * (2**attempt)
                    logger.warning(
                        "Network error, retrying in %.1fs (attempt %d/%d): %s",
                        delay,
                        attempt + 1,
                        retries,
                        exc,
                    )
                    time.sleep(delay)

            raise GatewayError("Retry loop exhausted unexpectedly")  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    return decorator
