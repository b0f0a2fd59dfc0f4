"""Logging setup for the task coordinator.

Records are emitted as JSON lines. Structured fields are attached with
``extra={"extra_fields": {...}}`` and merged into the top level of the entry.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

# LogRecord attributes that never belong in the structured payload.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("name", logging.INFO, "path", 1, "msg", None, None).__dict__
) | {"message", "asctime", "stack_info", "taskName"}


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
            error = record.exc_info[1]
            code = getattr(error, "code", None)
            if isinstance(code, str):
                entry["error_code"] = code

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS:
                continue
            if key == "extra_fields" and isinstance(value, dict):
                entry.update(value)
            else:
                entry[key] = value

        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None, stream: Optional[TextIO] = None):
    """Installs the JSON handler on the root logger.

    Args:
        level: Optional log level override. Defaults to LOG_LEVEL env var or INFO.
        stream: Destination stream. Defaults to stderr so that command output
            on stdout stays clean.
    """
    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    root = logging.getLogger()
    root.setLevel(log_level)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())

    for existing in root.handlers[:]:
        root.removeHandler(existing)

    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Retrieves a logger with the given name.

    Args:
        name: The name of the logger (typically __name__).

    Returns:
        A logging.Logger instance.
    """
    return logging.getLogger(name)
