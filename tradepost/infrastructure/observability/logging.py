"""Logging for tradepost.

Modules log through ``get_logger(__name__)``. Services wrap a unit of work in
:func:`log_context` so every line it emits carries the listing, bidder or buy
order it concerns. Formatting is plain text with a trailing ``[key=value]``
block, or one JSON object per line when ``TRADEPOST_LOG_JSON`` is set.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")

_fields: ContextVar[dict[str, Any]] = ContextVar("tradepost_log_fields", default={})
_configured = False


def current_log_context() -> dict[str, Any]:
    return dict(_fields.get())


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every record logged inside the block.

    Nested blocks add to the outer fields; each block restores what it found.
    """
    token = _fields.set({**_fields.get(), **fields})
    try:
        yield
    finally:
        _fields.reset(token)


class ContextualFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = _fields.get()
        if fields:
            text += " [" + " ".join(f"{key}={value}" for key, value in fields.items()) + "]"
        return text


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": self.formatTime(record),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
            **_fields.get(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def _handler(use_json: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if use_json else ContextualFormatter(TEXT_FORMAT))
    return handler


def configure_logging(
    level: int | str | None = None,
    third_party_level: int = logging.WARNING,
    use_json: bool | None = None,
) -> None:
    """Install the process-wide handler; later calls are no-ops.

    Called by the CLI group and the API lifespan. ``level`` and ``use_json``
    default to ``TRADEPOST_LOG_LEVEL`` and ``TRADEPOST_LOG_JSON``.
    """
    global _configured
    if _configured:
        return
    _configured = True

    root = logging.getLogger()
    root.setLevel(level or os.environ.get("TRADEPOST_LOG_LEVEL", "INFO").upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(_handler(_env_flag("TRADEPOST_LOG_JSON") if use_json is None else use_json))

    package_logger = logging.getLogger("tradepost")
    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """A module logger that still prints when nothing configured logging.

    Until :func:`configure_logging` runs (library use, scripts), a text
    handler on the ``tradepost`` logger keeps INFO records visible.
    """
    package_logger = logging.getLogger("tradepost")
    if not _configured and not package_logger.handlers and not logging.getLogger().handlers:
        package_logger.addHandler(_handler(use_json=False))
        package_logger.setLevel(logging.INFO)
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context: Any,
) -> None:
    """Log ``exc`` with its traceback and the given extra fields."""
    with log_context(**context):
        logger.error("%s: %s", message, exc, exc_info=exc)
