"""Tagged console logging for Fourier Drawings.

Every message carries a level and a subsystem tag, e.g.
``[INFO][Session] Mode changed | old=DRAW new=ANIMATE``.
"""
from __future__ import annotations

import logging
from typing import Any

LOGGER_NAME = "fourierdraw"

_logger = logging.getLogger(LOGGER_NAME)
if not _logger.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("[%(levelname)s][%(tag)s] %(message)s"))
    _logger.addHandler(_handler)
    _logger.setLevel(logging.INFO)
    _logger.propagate = False


class _TagAdapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: dict[str, Any]):
        tag = kwargs.pop("tag", "App")
        kwargs.setdefault("extra", {})["tag"] = tag
        return msg, kwargs


_adapter = _TagAdapter(_logger, {})


def _level_value(level: str | None) -> int:
    value = getattr(logging, (level or "INFO").upper(), None)
    return value if isinstance(value, int) else logging.INFO


def format_fields(message: str, fields: dict[str, Any]) -> str:
    """Append ``key=value`` pairs to a message."""
    if not fields:
        return message
    extras = " ".join(f"{k}={v}" for k, v in fields.items())
    return f"{message} | {extras}"


def log_event(level: str, tag: str, message: str, **fields: Any) -> None:
    """Log a message with level+tag, appending key=value fields when provided."""
    _adapter.log(_level_value(level), format_fields(message, fields), tag=tag)


def set_log_level(level: str) -> None:
    """Set global log level (DEBUG/INFO/WARNING/ERROR)."""
    _logger.setLevel(_level_value(level))
