"""Structured logging configuration for the notification gateway.

Provides JSON logging for production environments with contextual fields.
Can be enabled via WEAPP_LOG_FORMAT=json environment variable.
Both formats mask secrets before the record is written.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any

from weapp_notify.security import SecurityFormatter, mask_secrets


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_secrets(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        if record.threadName != "MainThread":
            log_entry["thread"] = record.threadName

        return json.dumps(log_entry)


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Default: INFO.
        json_format: Use JSON format. Default: True if WEAPP_LOG_FORMAT=json.
    """
    level = level or os.environ.get("WEAPP_LOG_LEVEL", "INFO")
    json_format = json_format or os.environ.get("WEAPP_LOG_FORMAT", "") == "json"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(SecurityFormatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(console_handler)

    # Set third-party loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# Auto-configure on import if enabled
if os.environ.get("WEAPP_LOG_FORMAT") or os.environ.get("WEAPP_LOG_LEVEL"):
    configure_logging()
