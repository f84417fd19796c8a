"""Process-wide logging on loguru.

Both run modes write one line per writer insert or reader lookup, so the
console format leads with the level and module and keeps the rest short.
``PUBSTREAM_LOG_JSON=true`` switches the sink to loguru's JSON records for
log shippers.  Records from stdlib loggers (SQLAlchemy, Alembic, aiosqlite)
are routed into the same sink.
"""

from __future__ import annotations

import inspect
import logging
import sys
from typing import TextIO

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> "
    "<level>{level: <7}</level> "
    "<cyan>{name}</cyan> | <level>{message}</level>"
)

# Per-statement chatter from these is never useful at INFO.
_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "alembic.runtime.migration")


class _StdlibBridge(logging.Handler):
    """Forward stdlib ``logging`` records to loguru, keeping the caller's location."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, json: bool = False, sink: TextIO | None = None) -> None:
    """Replace loguru's default handler with the pubstream sink.

    Call once per process, before the writer or reader starts.
    """
    level = level.upper()
    target = sink or sys.stderr

    logger.remove()
    if json:
        logger.add(target, level=level, serialize=True)
    else:
        logger.add(target, level=level, format=CONSOLE_FORMAT)

    logging.basicConfig(handlers=[_StdlibBridge()], level=0, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging configured (level={}, json={})", level, json)
