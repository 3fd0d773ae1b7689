"""Loguru setup shared by the ``delta-coverage`` CLI and the checks service.

Console records go to stderr because stdout carries the ``--dry-run`` payload.
"""

from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from loguru import logger as _logger

LOG_DIR_ENV = "DELTA_LOG_DIR"
LOG_LEVEL_ENV = "DELTA_LOG_LEVEL"
LOG_TO_FILE_ENV = "DELTA_LOG_TO_FILE"
DEFAULT_LOG_DIR = Path.cwd() / "logs"
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_TRUE_VALUES = {"1", "true", "yes", "on"}

_configured = False


def _file_log_dir(explicit: str | Path | None) -> Path | None:
    """Where the rotated log file goes, or ``None`` when only stderr is wanted."""

    if explicit is not None:
        return Path(explicit).expanduser().resolve()
    if (os.getenv(LOG_TO_FILE_ENV) or "").strip().lower() not in _TRUE_VALUES:
        return None
    env_dir = os.getenv(LOG_DIR_ENV)
    return Path(env_dir).expanduser().resolve() if env_dir else DEFAULT_LOG_DIR


def configure_logger(*, log_dir: str | Path | None = None, level: str | None = None, force: bool = False) -> None:
    """Install the stderr sink, plus a daily file under ``log_dir`` if asked.

    Runs once per process; ``force`` drops existing sinks and starts over.
    """

    global _configured
    if _configured and not force:
        return

    _logger.remove()
    _logger.add(
        sys.stderr,
        level=level or os.getenv(LOG_LEVEL_ENV, "INFO"),
        format=LOG_FORMAT,
        colorize=sys.stderr.isatty(),
    )

    target_dir = _file_log_dir(log_dir)
    if target_dir is not None:
        target_dir.mkdir(parents=True, exist_ok=True)
        _logger.add(
            target_dir / "delta-coverage-{time:YYYY-MM-DD}.log",
            rotation="50 MB",
            retention="10 days",
            level="DEBUG",
            format=LOG_FORMAT,
            enqueue=True,
            backtrace=True,
            diagnose=True,
        )

    _configured = True


def get_logger(*, log_dir: str | Path | None = None, level: str | None = None):
    configure_logger(log_dir=log_dir, level=level)
    return _logger


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Bind ``repository``, ``sha`` and similar fields; ``None`` values are dropped."""
    return logger_instance.bind(**{key: value for key, value in context.items() if value is not None})


@contextmanager
def log_timing(logger_instance, operation: str, **context: str | int | None) -> Iterator[Any]:
    """Time one pipeline step such as ``compute_delta`` or ``publish_check_run``.

    Yields the context-bound logger. Failures are logged with their duration
    and re-raised unchanged.
    """

    step_logger = log_with_context(logger_instance, **context)
    started = time.perf_counter()
    step_logger.debug(f"{operation} started")
    try:
        yield step_logger
    except Exception as exc:
        step_logger.error(f"{operation} failed after {time.perf_counter() - started:.3f}s: {exc}")
        raise
    step_logger.debug(f"{operation} finished in {time.perf_counter() - started:.3f}s")


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    log_with_context(logger_instance, **context).success(message)


def log_failure(logger_instance, message: str, error: Exception | None = None, **context: str | int | None) -> None:
    ctx_logger = log_with_context(logger_instance, **context)
    ctx_logger.error(f"{message}: {error}" if error is not None else message)
