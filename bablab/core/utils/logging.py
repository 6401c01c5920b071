"""Logging utilities for BabLab."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
RUN_LOG_NAME = "run.log"
_PACKAGE_LOGGER = "bablab"
_QUIET_LOGGERS: tuple[str, ...] = ("matplotlib", "httpx", "httpcore", "urllib3")


def _parse_level(level: str | int) -> int:
    """Parse a logging level name or number into a numeric level."""
    if isinstance(level, int):
        return level
    resolved_level = getattr(logging, level.upper(), None)
    if not isinstance(resolved_level, int):
        raise ValueError(f"Invalid logging level: {level}")
    return resolved_level


def configure_logging(level: str = "INFO") -> None:
    """
    Configure process-wide console logging and quiet chatty third-party loggers.

    Args:
        level: Logging level (for example ``INFO`` or ``DEBUG``).
    """
    logging.basicConfig(
        level=_parse_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class _ThreadFilter(logging.Filter):
    """Accept only records emitted from one thread."""

    def __init__(self, thread_id: int) -> None:
        super().__init__()
        self.thread_id = thread_id

    def filter(self, record: logging.LogRecord) -> bool:
        return record.thread == self.thread_id


@contextmanager
def capture_run_log(run_dir: Path, level: str | int = "INFO") -> Iterator[Path]:
    """
    Mirror ``bablab`` log records from the calling thread into ``run_dir/run.log``.

    Concurrent runs in other threads (for example API requests) do not leak
    into each other's files. The package logger level is lowered for the
    duration of the block when needed and restored afterwards.

    Args:
        run_dir: Run artifact directory.
        level: Minimum level written to the file.

    Yields:
        Path of the run log file.
    """
    numeric_level = _parse_level(level)
    run_dir.mkdir(parents=True, exist_ok=True)
    log_path = run_dir / RUN_LOG_NAME

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    handler.addFilter(_ThreadFilter(threading.get_ident()))

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    previous_level = package_logger.level
    if package_logger.getEffectiveLevel() > numeric_level:
        package_logger.setLevel(numeric_level)
    package_logger.addHandler(handler)
    try:
        yield log_path
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)
