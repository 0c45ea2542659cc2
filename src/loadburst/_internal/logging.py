"""Logging setup for loadburst.

All loggers live under the ``loadburst`` namespace. The CLI configures
that namespace once; library code only ever calls ``get_logger``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TextIO

_ROOT_NAME = "loadburst"
_TEXT_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# LogRecord attributes that are never copied into the JSON ``extra`` block.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One-line JSON log formatter.

    Emits objects with keys ``timestamp``, ``level``, ``logger`` and
    ``message``. Anything passed through ``extra=`` lands under ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = extra
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(
    level: int = logging.INFO,
    *,
    json_format: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure and return the ``loadburst`` root logger.

    Repeated calls only adjust the level; handlers are never duplicated.

    Args:
        level: Logging level (e.g., ``logging.DEBUG``).
        json_format: Emit one-line JSON records instead of plain text.
        stream: Destination stream. Defaults to ``sys.stderr``.

    Returns:
        The configured ``loadburst`` logger.
    """
    logger = logging.getLogger(_ROOT_NAME)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)

    # Keep records out of the root logger so nothing is printed twice.
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child logger, e.g. ``get_logger("engine.runner")``."""
    return logging.getLogger(f"{_ROOT_NAME}.{name}")
