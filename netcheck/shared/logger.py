"""Structured JSON logging for netcheck components."""

import json
import logging
from datetime import datetime, timezone

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record):
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "component": record.name.replace("netcheck.", ""),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if hasattr(record, "fields"):
            entry["data"] = record.fields
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def parse_level(name: str | None, default: int = logging.INFO) -> int:
    """Map a LOG_LEVEL style name ("debug", "info", ...) to a logging level."""
    if not name:
        return default
    return LEVELS.get(name.strip().lower(), default)


def get_logger(
    component: str,
    log_file: str | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Return a named logger that emits structured JSON.

    Args:
        component: Short name for the component (e.g. "scheduler").
        log_file: Optional path; writes JSON lines to this file instead of stderr.
        level: Logging level, defaults to INFO.

    Returns:
        A ``logging.Logger`` instance named ``netcheck.<component>``.
    """
    logger = logging.getLogger(f"netcheck.{component}")
    logger.setLevel(level)

    if not logger.handlers:
        if log_file:
            handler = logging.FileHandler(log_file)
        else:
            handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    return logger
