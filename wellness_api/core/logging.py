"""Wellness API logging configuration.

Two output modes share one stdout handler: readable lines for development
and one JSON object per line for log shippers in production. Request
metadata passed with ``extra=`` (method, path, status, duration_ms, ...)
ends up as top-level JSON keys.
"""

import json
import logging
import sys
from typing import Literal

SERVICE_NAME = "wellness-api"

DEV_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEV_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers capped at WARNING
QUIET_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "multipart")

# Attributes every LogRecord has; anything else was passed via ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object tagged with service and environment."""

    def __init__(self, service: str = SERVICE_NAME, environment: str = "development"):
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S")
        self.service = service
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service,
            "environment": self.environment,
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    format_type: Literal["structured", "dev"] = "dev",
    environment: str = "development",
) -> None:
    """
    Configure application logging.

    Replaces the root logger's handlers, so calling it again switches
    format cleanly.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: 'structured' for JSON lines, 'dev' for readable output
        environment: Deployment environment recorded in structured logs
    """
    handler = logging.StreamHandler(sys.stdout)
    if format_type == "structured":
        handler.setFormatter(JSONFormatter(environment=environment))
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt=DEV_DATEFMT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger("logging").debug(f"Logging configured: level={level}, format={format_type}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``wellness_api`` namespace."""
    return logging.getLogger(f"wellness_api.{name}")
