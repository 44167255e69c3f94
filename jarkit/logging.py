"""Logging setup shared by the jarkit CLI and library modules."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

_LOGGER_NAME = "jarkit"
CONSOLE_FORMAT = "[jarkit] %(levelname)s %(message)s"
# Classpath loads run on worker threads; the file log keeps them apart.
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s]: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the jarkit hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def reset_handlers(logger: Optional[logging.Logger] = None) -> None:
    """Detach and close every handler on the jarkit logger."""
    target = logger or logging.getLogger(_LOGGER_NAME)
    for handler in list(target.handlers):
        target.removeHandler(handler)
        handler.close()


def configure_logging(
    *,
    verbose: bool = False,
    log_file: Path | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Send jarkit logs to ``stream`` (stderr by default) and optionally to ``log_file``.

    Console output is INFO, or DEBUG with ``verbose``. The file sink always
    records DEBUG so a run can be diagnosed after the fact.
    """
    console_level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.propagate = False
    reset_handlers(logger)

    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(console)

    level = console_level
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        sink = logging.FileHandler(log_file, encoding="utf-8")
        sink.setLevel(logging.DEBUG)
        sink.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(sink)
        level = logging.DEBUG

    logger.setLevel(level)
    return logger


__all__ = ["configure_logging", "get_logger", "reset_handlers"]
