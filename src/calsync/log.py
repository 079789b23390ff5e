"""Logging setup for the calsync command line.

Log records go to *stderr* with ISO 8601 timestamps and pipe-separated
fields; *stdout* is reserved for the JSON action response.  The Google
client libraries log request URLs and retry sleeps, so their loggers are
capped at WARNING unless DEBUG output was asked for.
"""

from __future__ import annotations

import logging
import sys

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are only useful when debugging provider calls.
GOOGLE_LOGGERS = ("googleapiclient", "google_auth_oauthlib", "google.auth")

_HANDLER_ATTR = "_calsync_log_handler"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for a calsync run.

    Safe to call more than once: the calsync stderr handler is attached
    once and later calls only change levels.  Handlers installed by an
    embedding application are left alone.

    Args:
        level: A standard logging level name, case-insensitive.

    Raises:
        ValueError: If *level* is not a recognised logging level string.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level!r}")

    root = logging.getLogger()
    root.setLevel(numeric_level)

    google_level = logging.NOTSET if numeric_level <= logging.DEBUG else logging.WARNING
    for name in GOOGLE_LOGGERS:
        logging.getLogger(name).setLevel(google_level)

    handler = next((h for h in root.handlers if getattr(h, _HANDLER_ATTR, False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        setattr(handler, _HANDLER_ATTR, True)
        root.addHandler(handler)
    handler.setLevel(numeric_level)
