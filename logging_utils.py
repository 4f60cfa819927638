"""Tagged logging for ringweave.

Every module reports through log_event() with its component tag, e.g.
``[INFO][Export] GIF written | frames=61 path=out.gif``.
"""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

_logger = logging.getLogger("ringweave")
if not _logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(levelname)s][%(tag)s] %(message)s")
    handler.setFormatter(formatter)
    _logger.addHandler(handler)
    _logger.setLevel(logging.INFO)


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "App")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_logger_adapter = _TagAdapter(_logger, {})


def _level_value(level: str) -> int:
    level_name = (level or "INFO").upper()
    if level_name == "WARN":
        level_name = "WARNING"
    return getattr(logging, level_name, logging.INFO)


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    if fields:
        extras = " ".join(f"{k}={v}" for k, v in fields.items())
        message = f"{message} | {extras}"
    _logger_adapter.log(_level_value(level), message, tag=tag)


@contextmanager
def timed(tag: str, message: str, **fields: Any) -> Iterator[None]:
    """Log `message` at DEBUG with the elapsed milliseconds once the block exits."""
    t0 = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        log_event("DEBUG", tag, message, elapsed_ms=f"{elapsed_ms:.1f}", **fields)


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))


def get_log_level() -> str:
    """Return current global log level name."""
    return logging.getLevelName(_logger.level)
