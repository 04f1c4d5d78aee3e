"""
Structured logging for ledgersync.

Log calls pass context through ``extra``; the JSON formatter emits those
fields alongside the message so each skip, create, import, retry and
failure is machine readable.
"""

import json
import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

PACKAGE_LOGGER = "ledgersync"

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def __init__(self, service_name: str = PACKAGE_LOGGER):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info) if record.exc_info[0] else None,
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human readable formatter that appends ``extra`` fields as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extra_fields = [
            f"{key}={value}" for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        ]
        if extra_fields:
            line = f"{line} [{' '.join(extra_fields)}]"
        return line


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    show_logs: bool = True,
) -> logging.Logger:
    """
    Configure logging for the package.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON format (for log aggregation)
        show_logs: When False the package logger is silenced entirely

    Returns:
        Configured package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(KeyValueFormatter())
    package_logger.addHandler(handler)
    package_logger.propagate = False

    set_logs_enabled(show_logs)
    return package_logger


def set_logs_enabled(show_logs: bool) -> None:
    """Turn package logging on or off without touching handlers."""
    logging.getLogger(PACKAGE_LOGGER).disabled = not show_logs
