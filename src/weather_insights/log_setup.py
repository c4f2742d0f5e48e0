"""JSON console logging for the collector and insight command-line tools."""

from __future__ import annotations

import json
import logging
import threading
from datetime import UTC, datetime
from typing import Any

from .redaction import sanitize_for_logging, sanitize_text

# Optional ``extra=`` keys copied into the JSON event when present.
CONTEXT_FIELDS = ("city", "location_id", "session_id", "status")


class JsonConsoleFormatter(logging.Formatter):
    """One JSON object per record, with secrets redacted."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        if record.threadName and record.threadName != threading.main_thread().name:
            event["thread"] = record.threadName
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                event[field] = sanitize_for_logging(value)
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def setup_logger(name: str = "weather_insights", level: int | str = logging.INFO) -> logging.Logger:
    """Return the package logger with a single JSON stream handler.

    Component loggers (``weather_insights.collector`` and so on) propagate
    into it. Calling this again only updates the level.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonConsoleFormatter())
        logger.addHandler(handler)
    return logger
