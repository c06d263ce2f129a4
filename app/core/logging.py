from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from app.config import get_settings
from app.core.context import get_conversation_id, get_request_id

# third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("uvicorn.access", "web3", "httpx", "anthropic", "openai")


def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ContextFilter(logging.Filter):
    """Stamps request and conversation ids from contextvars onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.conversation_id = get_conversation_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": utc_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "conversation_id": getattr(record, "conversation_id", "-"),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{utc_iso()} {record.levelname:<7} "
            f"request_id={getattr(record, 'request_id', '-')} "
            f"conversation_id={getattr(record, 'conversation_id', '-')} "
            f"{record.name}: {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging() -> None:
    """Single stdout handler on the root logger; LOG_JSON switches the format."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if settings.log_json else TextFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
