"""
Structured, multi-channel logging.

The Flask application logger ("oem_api") is the root of the tree. Audit,
security, performance and request records go to child loggers so they can be
routed separately: console for humans, JSON files for machines.

Usage:
    from oem_api.observability.logger import audit_log, security_log

    audit_log("ORDER_CREATED", user_id, order_id=order.id)
    security_log("RATE_LIMIT_EXCEEDED", ip="203.0.113.9", policy="payment")
"""

from __future__ import annotations

import logging
import os
from logging.handlers import TimedRotatingFileHandler
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from ..time_utils import to_utc_z, utcnow


APP_LOGGER = "oem_api"
AUDIT_LOGGER = "oem_api.audit"
SECURITY_LOGGER = "oem_api.security"
PERFORMANCE_LOGGER = "oem_api.performance"
REQUEST_LOGGER = "oem_api.request"

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})

CONSOLE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
JSON_FIELDS = ("asctime", "levelname", "name", "message")
FIELD_RENAME_MAP = {"levelname": "level", "name": "logger"}

# (filename, level, days kept, channels routed into the file; None = all)
FILE_SINKS = (
    ("error.log", logging.ERROR, 14, None),
    ("combined.log", logging.DEBUG, 30, None),
    ("audit.log", logging.INFO, 90, (AUDIT_LOGGER, SECURITY_LOGGER)),
)


class ChannelFilter(logging.Filter):
    """Pass only records emitted on one of the given logger channels."""

    def __init__(self, channels: tuple[str, ...]):
        super().__init__()
        self.channels = channels

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name in self.channels


def create_json_formatter() -> JsonFormatter:
    format_string = " ".join(f"%({field})s" for field in JSON_FIELDS)
    return JsonFormatter(format_string, rename_fields=FIELD_RENAME_MAP)


def configure_logging(level: str = "INFO", log_dir: str | None = None) -> logging.Logger:
    """
    Configure the application logger tree.

    Safe to call repeatedly (each app instance in the test-suite calls it);
    existing handlers on the application logger are replaced.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_dir: Directory for rotating JSON files; None disables file sinks.

    Raises:
        ValueError: If the level is not recognised.
    """
    level_upper = level.upper()
    if level_upper not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}. Valid: {', '.join(sorted(VALID_LOG_LEVELS))}")

    logger = logging.getLogger(APP_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level_upper)

    console = logging.StreamHandler()
    console.setLevel(level_upper)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        for filename, file_level, days, channels in FILE_SINKS:
            handler = TimedRotatingFileHandler(
                os.path.join(log_dir, filename),
                when="midnight",
                backupCount=days,
                encoding="utf-8",
                delay=True,
            )
            handler.setLevel(file_level)
            handler.setFormatter(create_json_formatter())
            if channels:
                handler.addFilter(ChannelFilter(channels))
            logger.addHandler(handler)

    return logger


def audit_log(action: str, user_id: str | None = None, /, **details: Any) -> None:
    """Who did what. Written to the audit channel."""
    logging.getLogger(AUDIT_LOGGER).info(
        "AUDIT %s", action,
        extra={
            "event": action,
            "user_id": user_id or "system",
            "details": details,
            "logged_at": to_utc_z(utcnow()),
        },
    )


def security_log(event: str, **details: Any) -> None:
    """Authentication outcomes, rejected requests, rate-limit hits."""
    logging.getLogger(SECURITY_LOGGER).warning(
        "SECURITY %s", event,
        extra={"event": event, "details": details, "logged_at": to_utc_z(utcnow())},
    )


def performance_log(operation: str, duration_ms: float, **details: Any) -> None:
    logging.getLogger(PERFORMANCE_LOGGER).info(
        "PERFORMANCE %s %.1fms", operation, duration_ms,
        extra={"event": "PERFORMANCE", "operation": operation, "duration_ms": round(duration_ms, 2), "details": details},
    )


def request_log(method: str, path: str, status_code: int, duration_ms: float, ip: str | None, user_id: str) -> None:
    logging.getLogger(REQUEST_LOGGER).info(
        "%s %s %s %.1fms", method, path, status_code, duration_ms,
        extra={
            "event": "REQUEST",
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            "ip": ip,
            "user_id": user_id,
        },
    )
