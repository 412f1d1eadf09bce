"""
Logging setup.

Workflow and provider calls log with ``extra=`` context (project and
artifact ids, provider, model, outcome, latency). The JSON formatter lifts
those fields to top-level keys; the text formatter appends them as
``key=value`` pairs after the message.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List

CONTEXT_FIELDS = (
    "project_id",
    "artifact_id",
    "artifact_type",
    "provider",
    "model",
    "is_update",
    "streaming",
    "outcome",
    "latency_ms",
)

_NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }
        log_data.update(_context(record))
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        pairs: List[str] = [f"{key}={value}" for key, value in _context(record).items()]
        return f"{line} [{' '.join(pairs)}]" if pairs else line


def configure_logging(level: str = "INFO", format_type: str = "text") -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name; unknown names fall back to INFO
        format_type: "json" or "text"
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if format_type.lower() == "json" else TextFormatter())
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
