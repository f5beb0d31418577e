"""
Central logging configuration for the auth service.

Every record carries the call id and RPC method of the call it was emitted
in (set by the RPC context middleware). Development gets one readable line
per record, production one JSON object per line. Emails go through
``mask_email`` before they reach a log call; passwords, hashes and tokens
are never logged.

Usage:
    from pharmacy_auth.logging_config import get_logger, mask_email
    logger = get_logger(__name__)
    logger.info("Login attempt", extra={"email": mask_email(email)})
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

call_id_var: ContextVar[Optional[str]] = ContextVar("call_id", default=None)
rpc_method_var: ContextVar[Optional[str]] = ContextVar("rpc_method", default=None)

# Libraries whose INFO output is noise for this service
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine")

# Attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "call_id", "rpc_method",
}


def mask_email(email: Optional[str]) -> str:
    """
    Mask an email address for logging.

    Keeps the first character of the local part and the full domain:
    ``alice@test.com`` -> ``a***@test.com``.
    """
    if not email:
        return "-"
    local, sep, domain = email.strip().partition("@")
    if not sep:
        return "***"
    return f"{local[:1]}***@{domain}"


class CallContextFilter(logging.Filter):
    """Stamp records with the current call id and RPC method."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.call_id = call_id_var.get() or "-"  # type: ignore[attr-defined]
        record.rpc_method = rpc_method_var.get() or "-"  # type: ignore[attr-defined]
        return True


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields passed through ``extra=`` on the log call."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_ATTRS and value is not None
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record for production log aggregators."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in ("call_id", "rpc_method"):
            value = getattr(record, key, "-")
            if value != "-":
                entry[key] = value
        entry.update(extra_fields(record))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Readable line with the call context and any extra fields appended."""

    def __init__(self):
        super().__init__(
            "%(asctime)s %(levelname)-5s [%(name)s] %(rpc_method)s call=%(call_id)s %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = extra_fields(record)
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def configure_logging(
    *,
    log_level: str = "INFO",
    environment: str = "development",
    debug: bool = False,
) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        environment: 'production' selects JSON output
        debug: If True, use DEBUG level regardless of log_level
    """
    level = logging.DEBUG if debug else getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.addFilter(CallContextFilter())
    handler.setFormatter(JsonFormatter() if environment == "production" else DevFormatter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name."""
    return logging.getLogger(name)
