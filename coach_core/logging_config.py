from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

CONTEXT_PREFIX = "ctx_"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``ctx_*`` extras are grouped under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        context = {
            k[len(CONTEXT_PREFIX):]: v for k, v in record.__dict__.items() if k.startswith(CONTEXT_PREFIX)
        }
        if context:
            log_entry["context"] = context
        return json.dumps(log_entry, default=str)


def ctx(**fields: Any) -> dict[str, Any]:
    """Build a logging ``extra`` dict: ``logger.info("event", extra=ctx(key=k))``."""
    return {f"{CONTEXT_PREFIX}{name}": value for name, value in fields.items()}


def setup_logging(level: str = "INFO") -> None:
    """Attach the JSON handler to the ``coach_core`` logger tree once."""
    package_logger = logging.getLogger("coach_core")
    if any(isinstance(h.formatter, JSONFormatter) for h in package_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    package_logger.addHandler(handler)
    package_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Get a named logger for a module."""
    return logging.getLogger(name)
