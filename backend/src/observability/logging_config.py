"""Structured logging.

One JSON object per line. Every record carries the request id it was emitted
under; moderation records add actor, subject and operation fields so a
transition can be followed from the log alone, and counter records add the
counter key and values involved.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, TextIO

from .request_id import get_request_id

# Record attributes copied into the JSON line when the caller passed them in ``extra``
EXTRA_FIELDS = (
    # moderation
    "actor_id",
    "subject_type",
    "subject_id",
    "operation_type",
    "old_value",
    "new_value",
    "error_kind",
    # counters
    "counter",
    "entity_id",
    "cached",
    "actual",
    "by",
    # http
    "method",
    "path",
    "status_code",
    "duration_ms",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "alembic.runtime.migration")


class RequestIDFilter(logging.Filter):
    """Stamp the current request id on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", get_request_id()),
            "message": record.getMessage(),
        }
        payload.update({
            field: getattr(record, field)
            for field in EXTRA_FIELDS
            if hasattr(record, field)
        })
        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_format: bool = True, stream: Optional[TextIO] = None) -> None:
    """Install a single root handler.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines if True, otherwise a human-readable format
        stream: Output stream, stdout by default
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(TEXT_FORMAT))
    handler.addFilter(RequestIDFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
