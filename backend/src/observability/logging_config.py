"""Logging setup for SecureShop.

Every record passes through ContextFilter, which stamps the current request
id and strips bearer tokens from the message. Denials and failures are
logged with a correlation_id and a reason; those two fields are what an
operator searches for when a client reports a 403 or 500.
"""

import json
import logging
import re
import sys
from datetime import datetime, timezone

from .context import current_request_id

# Extra attributes copied from a log record into the JSON payload
_EXTRA_FIELDS = (
    "correlation_id",
    "reason",
    "user_id",
    "order_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
)

_BEARER = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE)

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s [%(request_id)s] %(name)s: %(message)s"


class ContextFilter(logging.Filter):
    """Attach the request id and redact bearer tokens."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id() or "-"
        message = record.getMessage()
        redacted = _BEARER.sub(r"\1[REDACTED]", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value if isinstance(value, (int, float)) else str(value)

        if record.exc_info:
            payload["exc_type"] = record.exc_info[0].__name__
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload)


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, human-readable text otherwise
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JSONFormatter() if json_format else logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    # Our middleware writes the access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
