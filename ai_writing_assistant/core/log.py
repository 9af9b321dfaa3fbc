"""
Logging setup.

Every record carries the trace id of the request or job being handled.
Format: time [level] [trace_id] module.function:line - message

Usage:
    from ai_writing_assistant.core.log import get_logger
    logger = get_logger(__name__)
    logger.info("event=title.generated | user_id=%s", user_id)
"""

import logging
import logging.handlers
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

import colorlog


_trace_id_var: ContextVar[str] = ContextVar("trace_id", default="-")

_FMT = "%(asctime)s [%(levelname)-5s] [%(trace_id)s] %(name)s.%(funcName)s:%(lineno)d - %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"
_HANDLER_MARKER = "_is_assistant_handler"

_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def set_trace_id(tid: Optional[str] = None) -> str:
    """Set the trace id for the current context and return it."""
    tid = str(tid or "").strip()[:16] or _new_trace_id()
    _trace_id_var.set(tid)
    return tid


def get_trace_id() -> str:
    return _trace_id_var.get()


@contextmanager
def trace_ctx(trace_id: Optional[str] = None) -> Generator[str, None, None]:
    """Scope a trace id to a block, restoring the previous one on exit."""
    token = _trace_id_var.set(str(trace_id or "").strip()[:16] or _new_trace_id())
    try:
        yield _trace_id_var.get()
    finally:
        _trace_id_var.reset(token)


class _TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_var.get()
        return True


_trace_filter = _TraceIdFilter()


def setup_logging(level: str = "INFO", log_file: str = "") -> None:
    """Attach console (and optional rotating file) handlers to the root logger.

    Idempotent: a second call only updates the level.
    """
    resolved = _LEVEL_MAP.get(str(level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(resolved)

    existing = [h for h in root.handlers if getattr(h, _HANDLER_MARKER, False)]
    if existing:
        for handler in existing:
            handler.setLevel(resolved)
        return

    console = colorlog.StreamHandler(stream=sys.stdout)
    console.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s" + _FMT,
            datefmt=_DATE_FMT,
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    console.setLevel(resolved)
    console.addFilter(_trace_filter)
    setattr(console, _HANDLER_MARKER, True)
    root.addHandler(console)

    if log_file:
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setLevel(resolved)
        file_handler.setFormatter(logging.Formatter(_FMT, datefmt=_DATE_FMT))
        file_handler.addFilter(_trace_filter)
        setattr(file_handler, _HANDLER_MARKER, True)
        root.addHandler(file_handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
