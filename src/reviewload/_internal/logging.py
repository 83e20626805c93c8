"""Logging setup for reviewload.

All loggers live under the ``reviewload`` namespace and share one stderr
handler installed by :func:`setup_logging`.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime

_ROOT = "reviewload"
_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attributes passed through ``extra=`` that the JSON formatter keeps.
_EXTRA_FIELDS = ("run_id",)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, run_id."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _make_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(_TEXT_FORMAT, datefmt=_TEXT_DATEFMT)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
) -> logging.Logger:
    """Configure the ``reviewload`` logger and return it.

    Safe to call repeatedly: the first call installs a stderr handler, later
    calls only change its level and format.  The logger does not propagate
    to the root logger.

    Args:
        level: Threshold level, e.g. ``logging.DEBUG``.
        json_format: Emit one JSON object per line instead of text.
    """
    logger = logging.getLogger(_ROOT)
    logger.setLevel(level)
    logger.propagate = False

    if not logger.handlers:
        logger.addHandler(logging.StreamHandler(sys.stderr))

    for handler in logger.handlers:
        handler.setLevel(level)
        handler.setFormatter(_make_formatter(json_format))
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``reviewload.<name>``, e.g. ``get_logger("engine.session")``."""
    return logging.getLogger(f"{_ROOT}.{name}")
