"""Logging for the Users API.

Every record can carry structured fields under ``extra_fields``; the access
log, the error log and the user event log all use that slot. In production
records are written as one JSON object per line, elsewhere as text with the
structured fields appended as ``key=value`` pairs.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

from users_api.config import get_settings

ROOT_LOGGER = "users_api"

# Correlates every record written while one request is being served
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_configured = False


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    return dict(getattr(record, "extra_fields", None) or {})


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get(),
        }
        log_data.update(_fields(record))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class StandardFormatter(logging.Formatter):
    """Human-readable lines for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        record.request_id = request_id_var.get() or "-"
        line = super().format(record)
        fields = _fields(record)
        if fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in fields.items())
        return line


def setup_logging() -> logging.Logger:
    """Configure the ``users_api`` logger tree once, based on the settings."""
    global _configured

    logger = logging.getLogger(ROOT_LOGGER)
    if _configured:
        return logger

    settings = get_settings()
    level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.is_production else StandardFormatter())

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database.echo else logging.WARNING
    )

    _configured = True
    logger.info(
        f"Logging configured: level={settings.log_level}, "
        f"format={'JSON' if settings.is_production else 'Standard'}"
    )
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``users_api`` tree."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def set_request_id(request_id: str) -> None:
    """Set the request ID for the current context."""
    request_id_var.set(request_id)


def log_request(
    method: str,
    route: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """
    Write one access-log record.

    Args:
        method: HTTP method
        route: Matched route template (``/api/users/{user_id}``), or the raw
            path when no route matched
        status_code: Response status
        duration_ms: Time spent serving the request
        user_id: ``user_id`` path parameter, if the route has one
    """
    fields: Dict[str, Any] = {
        "method": method,
        "route": route,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }
    if user_id is not None:
        fields["user_id"] = user_id
    fields.update(kwargs)
    get_logger("http").info(
        f"{method} {route} - {status_code} - {duration_ms:.2f}ms",
        extra={"extra_fields": fields},
    )


def log_user_event(operation: str, user_id: Optional[str] = None, **fields: Any) -> None:
    """Record a completed or rejected operation on the users resource."""
    event: Dict[str, Any] = {"operation": operation}
    if user_id is not None:
        event["user_id"] = str(user_id)
    event.update(fields)
    get_logger("users").info(
        f"user.{operation}" + (f" {user_id}" if user_id is not None else ""),
        extra={"extra_fields": event},
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """Log an exception with its traceback and request context."""
    fields: Dict[str, Any] = {"error_type": type(error).__name__}
    fields.update(context or {})
    get_logger("error").error(
        f"{type(error).__name__}: {error}",
        exc_info=error,
        extra={"extra_fields": fields},
    )
