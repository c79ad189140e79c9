"""
Logging for the portal: one "portal" logger tree, written to a rotating
portal.log under settings.log_dir and echoed to stdout. Every record carries
the id of the HTTP request it was emitted under.
"""
from __future__ import annotations

import copy
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from portal.config import settings

ROOT_LOGGER = "portal"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s request_id=%(request_id)s %(filename)s:%(lineno)d %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.request_id = REQUEST_ID.get()
        return True


class LevelColorFormatter(logging.Formatter):
    """Colors the level name on interactive terminals. Disabled by NO_COLOR."""

    _RESET = "\x1b[0m"
    _COLORS = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }

    def __init__(self, *args, stream=None, **kwargs):
        super().__init__(*args, **kwargs)
        isatty = getattr(stream, "isatty", None)
        self.enabled = not os.getenv("NO_COLOR") and callable(isatty) and bool(isatty())

    def format(self, record: logging.LogRecord) -> str:
        if not self.enabled or record.levelno not in self._COLORS:
            return super().format(record)
        colored = copy.copy(record)
        colored.levelname = f"{self._COLORS[record.levelno]}{record.levelname}{self._RESET}"
        return super().format(colored)


def configure_logging(*, log_dir: str | Path | None = None, level: str | None = None) -> logging.Logger:
    """Attach the file and console handlers to the "portal" logger. Safe to call repeatedly."""
    logger = logging.getLogger(ROOT_LOGGER)
    if getattr(logger, "_configured", False):
        return logger

    numeric_level = logging.getLevelNamesMapping().get((level or settings.log_level).upper(), logging.INFO)
    logger.setLevel(numeric_level)
    logger.propagate = False

    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    request_filter = RequestIdFilter()

    file_handler = RotatingFileHandler(
        filename=str(directory / "portal.log"),
        maxBytes=10 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(LevelColorFormatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT, stream=sys.stdout))

    for handler in (file_handler, console_handler):
        handler.setLevel(numeric_level)
        handler.addFilter(request_filter)
        logger.addHandler(handler)

    logger._configured = True  # type: ignore[attr-defined]
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child of the "portal" logger, e.g. get_logger(__name__)."""
    configure_logging()
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def set_request_id(request_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex
    REQUEST_ID.set(rid)
    return rid


def clear_request_id() -> None:
    REQUEST_ID.set("-")


class log_request:
    """
    Times a unit of work and logs its outcome:
      with log_request(logger, f"sync_progress user_id={user_id}"):
          ...
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self.start = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        duration_ms = int((time.perf_counter() - self.start) * 1000)
        if exc is None:
            self.logger.info("%s ok duration_ms=%s", self.name, duration_ms)
        else:
            self.logger.exception("%s failed duration_ms=%s", self.name, duration_ms)
        return False
