"""
Logging setup for the card table server.

Production emits one JSON object per line; everything else gets a short
coloured line. Both carry the connection context (session, room, player)
taken from contextvars or from `extra=` on the call.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)
room_id_var: ContextVar[Optional[str]] = ContextVar("room_id", default=None)

_CONTEXT_FIELDS = ("session_id", "room_id", "player_id")


def _context_values(record: logging.LogRecord) -> dict:
    values = {"session_id": session_id_var.get(), "room_id": room_id_var.get()}
    for name in _CONTEXT_FIELDS:
        value = getattr(record, name, None)
        if value:
            values[name] = value
    return {k: v for k, v in values.items() if v}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_values(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Compact coloured lines for local runs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    SHORT = {"session_id": "sess", "room_id": "room", "player_id": "player"}

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        level = f"{color}{record.levelname:8}{self.RESET if color else ''}"
        context = _context_values(record)
        if "session_id" in context:
            context["session_id"] = context["session_id"][:8]
        tags = ", ".join(f"{self.SHORT[k]}={v}" for k, v in context.items())

        line = f"{datetime.now():%H:%M:%S} {level} {record.name}"
        if tags:
            line += f" [{tags}]"
        line += f" - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", environment: str = "development") -> None:
    """Install a single stdout handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if environment == "production" else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class ContextLogger(logging.LoggerAdapter):
    """LoggerAdapter that merges bound context into every record's `extra`."""

    def __init__(self, logger: logging.Logger, extra: Optional[dict] = None):
        super().__init__(logger, extra or {})

    def with_context(self, **kwargs) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **kwargs})

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> ContextLogger:
    return ContextLogger(logging.getLogger(name))
