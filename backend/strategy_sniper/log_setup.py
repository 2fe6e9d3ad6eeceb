"""Structured (JSON) logging with a per-launch correlation id."""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

_LAUNCH_ID: ContextVar[str] = ContextVar("launch_id", default="-")

_STANDARD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()) | {"message", "asctime"}


class _LaunchFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.launch_id = _LAUNCH_ID.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "launch_id": getattr(record, "launch_id", "-"),
        }
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and key != "launch_id" and not key.startswith("_")
        }
        if extras:
            payload["extra"] = extras
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", structured: bool = True) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_LaunchFilter())
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(launch_id)s] %(name)s: %(message)s"
        ))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def set_launch_id(launch_id: str) -> None:
    """Tag every log line of the current task. Tasks get a copy of the context."""
    _LAUNCH_ID.set(launch_id)


def current_launch_id() -> str:
    return _LAUNCH_ID.get()
