"""Central logging configuration utilities for tarpeek.

Library code only ever asks for loggers; the CLI (or the embedding
application) decides how records are rendered by calling `configure_logging`.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

_LEVEL_MAP = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "VERBOSE": logging.DEBUG,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def level_from_name(name: str, default: int = logging.INFO) -> int:
    """Translate a level name (case-insensitive) into a logging level."""
    return _LEVEL_MAP.get(name.upper(), default)


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure root logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `TARPEEK_LOG_LEVEL`
    3. Fallback to `WARNING`
    """
    if level is None:
        level = os.environ.get("TARPEEK_LOG_LEVEL", "WARNING")

    if isinstance(level, str):
        level = level_from_name(level, logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=force,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a project logger."""
    return logging.getLogger(name or "tarpeek")


class ScanLog(logging.LoggerAdapter):
    """Per-call view of a logger with its own verbosity threshold.

    The ``debug`` option of a single call lowers this threshold without
    touching the level of any shared logger, so concurrent calls keep
    independent verbosity. Messages are prefixed with the archive path,
    which is also attached to each record as ``archive_path``.
    """

    def __init__(self, logger: logging.Logger, threshold: int = logging.WARNING,
                 archive_path: Optional[str] = None) -> None:
        super().__init__(logger, {"archive_path": archive_path})
        self.threshold = threshold
        self.archive_path = archive_path

    def process(self, msg, kwargs):
        if self.archive_path:
            msg = "[%s] %s" % (self.archive_path.replace("%", "%%"), msg)
        kwargs.setdefault("extra", self.extra)
        return msg, kwargs

    def isEnabledFor(self, level: int) -> bool:
        return level >= self.threshold

    def log(self, level, msg, *args, **kwargs):
        if not self.isEnabledFor(level):
            return
        msg, kwargs = self.process(msg, kwargs)
        # Logger._log skips the logger's own level check; stacklevel 2 points
        # the record at the code that called debug()/info()/warning().
        kwargs.setdefault("stacklevel", 2)
        self.logger._log(level, msg, args, **kwargs)


__all__ = ["configure_logging", "get_logger", "level_from_name", "ScanLog"]
