"""Structured logging helpers and request context utilities."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Final

REQUEST_ID_CTX: Final[ContextVar[str | None]] = ContextVar("request_id", default=None)
USER_ID_CTX: Final[ContextVar[str | None]] = ContextVar("user_id", default=None)


@dataclass(slots=True)
class RequestContext:
    """Facts learned while a request is handled, shared with the middleware that logs it."""

    request_id: str
    user_id: str | None = None


REQUEST_CONTEXT_CTX: Final[ContextVar[RequestContext | None]] = ContextVar(
    "request_context", default=None
)

_LOGGING_CONFIGURED: bool = False

_RESERVED_ATTRS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)


class JsonLogFormatter(logging.Formatter):
    """Render each record as one JSON line with request/user correlation ids."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = REQUEST_ID_CTX.get()
        if request_id:
            entry["request_id"] = request_id
        user_id = USER_ID_CTX.get()
        if user_id:
            entry["user_id"] = user_id

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_") or value is None:
                continue
            entry.setdefault(key, _normalize(value))

        if record.exc_info:
            # keep single-line output
            entry["exc_info"] = self.formatException(record.exc_info).replace("\n", " | ")
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info).replace("\n", " | ")

        return json.dumps(entry, ensure_ascii=False, separators=(",", ":"))


def _normalize(value: object) -> object:
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, dict)):
        try:
            json.dumps(value)
        except TypeError:
            return str(value)
        return value
    return str(value)


def configure_logging(level_name: str) -> None:
    """Configure root logging once with the JSON formatter."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_resolve_level(level_name))

    for noisy in ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    _LOGGING_CONFIGURED = True


def _resolve_level(level_name: str) -> int:
    level_value = logging.getLevelName(level_name.strip().upper())
    if isinstance(level_value, int):
        return level_value
    return logging.INFO


def bind_request_id(request_id: str) -> Token[str | None]:
    """Bind a request_id to the current context."""
    return REQUEST_ID_CTX.set(request_id)


def get_request_id() -> str | None:
    return REQUEST_ID_CTX.get()


def reset_request_id(token: Token[str | None]) -> None:
    REQUEST_ID_CTX.reset(token)


def bind_request_context(context: RequestContext) -> Token[RequestContext | None]:
    return REQUEST_CONTEXT_CTX.set(context)


def reset_request_context(token: Token[RequestContext | None]) -> None:
    REQUEST_CONTEXT_CTX.reset(token)


def bind_user_id(user_id: str) -> Token[str | None]:
    """
    Attach the authenticated caller to log lines emitted in this context.

    The caller is also recorded on the enclosing request context, which is a
    shared object, so the access log written outside the endpoint task sees it.
    """
    context = REQUEST_CONTEXT_CTX.get()
    if context is not None:
        context.user_id = user_id
    return USER_ID_CTX.set(user_id)


__all__ = [
    "JsonLogFormatter",
    "RequestContext",
    "bind_request_context",
    "bind_request_id",
    "bind_user_id",
    "configure_logging",
    "get_request_id",
    "reset_request_context",
    "reset_request_id",
]
