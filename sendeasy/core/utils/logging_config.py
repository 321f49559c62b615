"""
Structured logging for SendEasy.

Every record is rendered as one JSON object carrying the request's
correlation id. Extra fields whose names look sensitive (session passwords,
shared text, storage keys) are replaced with ``[REDACTED]`` outside dev mode.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sendeasy.core.config import settings

# Set per request by the HTTP middleware, read by the formatter
correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord has; anything else was passed through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_SENSITIVE_KEYWORDS = (
    "password", "secret", "key", "token", "credential", "auth",
    "cookie", "private", "content",
)

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "boto3", "botocore", "s3transfer", "multipart")


def is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS)


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def __init__(self, include_sensitive: bool = False):
        super().__init__()
        self.include_sensitive = include_sensitive

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            name: value if self.include_sensitive or not is_sensitive_field(name) else "[REDACTED]"
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=_json_default)


def _json_default(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def setup_logging(
    log_level: str = "INFO",
    enable_json: bool = True,
    log_file: Optional[str] = None,
    include_sensitive: bool = False,
) -> None:
    """
    Replace the root handlers with a stdout handler (and optionally a file).

    Args:
        log_level: name of the root level, e.g. ``"DEBUG"``
        enable_json: JSON lines when true, a plain one-line format otherwise
        log_file: also append to this file
        include_sensitive: keep password and content fields unredacted
    """
    if enable_json:
        formatter: logging.Formatter = StructuredFormatter(include_sensitive=include_sensitive)
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level.upper())
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_correlation_id() -> str:
    """Return the current correlation id, creating one if the context has none."""
    correlation_id = correlation_id_ctx.get()
    if not correlation_id:
        correlation_id = str(uuid.uuid4())
        correlation_id_ctx.set(correlation_id)
    return correlation_id


def set_correlation_id(correlation_id: Optional[str]) -> None:
    correlation_id_ctx.set(correlation_id)


def init_application_logging() -> None:
    """Configure logging from settings: plain DEBUG output in dev mode, JSON INFO otherwise."""
    dev = settings.dev_mode or settings.debug
    setup_logging(
        log_level="DEBUG" if dev else "INFO",
        enable_json=not dev,
        log_file=settings.log_file,
        include_sensitive=dev,
    )
    logging.getLogger("sendeasy.startup").info(
        "Logging configured",
        extra={"dev_mode": dev, "json_logging": not dev, "log_file": settings.log_file},
    )
