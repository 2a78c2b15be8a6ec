"""Logging configuration for the API process."""

from __future__ import annotations

import logging
import sys


class _LibraryNoiseFilter(logging.Filter):
    """
    Keep taskhub logs at the configured level, but only let
    third-party loggers (sqlalchemy, uvicorn access, ...) through at WARNING+.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name.startswith("taskhub"):
            return True
        if record.name.startswith("uvicorn.error"):
            return True
        return record.levelno >= logging.WARNING


def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Configure the root logger with a single stderr handler.

    Safe to call more than once: previously installed handlers are replaced.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.addFilter(_LibraryNoiseFilter())
    root.addHandler(handler)

    logging.captureWarnings(True)
