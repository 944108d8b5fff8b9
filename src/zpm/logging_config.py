"""Logging configuration for :mod:`zpm`."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

LOGGER_NAME = "zpm"
TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARK = "_zpm_handler"


class JsonFormatter(logging.Formatter):
    """Structured JSON log lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _level_for(verbosity: int) -> int:
    name = os.environ.get("ZPM_LOG_LEVEL", "WARNING")
    level = getattr(logging, name.upper(), logging.WARNING)
    if verbosity >= 2:
        return min(level, logging.DEBUG)
    if verbosity == 1:
        return min(level, logging.INFO)
    return level


def setup_logging(verbosity: int = 0) -> logging.Logger:
    """Configure the ``zpm`` logger from ``ZPM_LOG_*`` and the verbosity.

    Safe to call multiple times; only handlers installed by a previous call are
    replaced, so handlers attached by test harnesses stay in place.
    """

    level = _level_for(verbosity)

    if os.environ.get("ZPM_LOG_FORMAT", "text") == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    for h in logger.handlers[:]:
        if getattr(h, _HANDLER_MARK, False):
            logger.removeHandler(h)
            h.close()

    log_file = os.environ.get("ZPM_LOG_FILE")
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    setattr(handler, _HANDLER_MARK, True)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    return logger


__all__ = ["JsonFormatter", "LOGGER_NAME", "setup_logging"]
