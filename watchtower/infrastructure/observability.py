"""Structured Logging — JSON formatter and setup for host applications.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (label, error_code, endpoint, status_code, ...) surfaced when present
    - Importing watchtower never configures logging; the host calls setup_logging

Design Decisions:
    - Stdlib logging with a JSON formatter; records stay plain LogRecords so host
      handlers (and pytest caplog) see the same `extra=` attributes
    - One field list (LOG_FIELDS) shared by every module that logs with `extra=`
    - setup_logging() owns at most one handler on the package logger; calling it
      again swaps that handler instead of duplicating output
"""

import json
import logging
from datetime import datetime, timezone


LOG_FIELDS = (
    "label", "error_code", "endpoint", "status_code",
    "timeout_ms", "stage", "event_type",
)

_HANDLER_NAME = "watchtower"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in LOG_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach a stream handler to the `watchtower` logger tree."""
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s — %(message)s",
        ))
    handler.set_name(_HANDLER_NAME)
    package_logger = logging.getLogger("watchtower")
    for existing in list(package_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
