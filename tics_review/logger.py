from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger as _logger

_CONFIGURED = False
_CONSOLE_SINK_ID: int | None = None
DEFAULT_LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_DIR_ENV = "APP_LOG_DIR"
HEADER_LEVEL = "HEADER"
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Action input values accepted for LOGLEVEL.
LOG_LEVELS = {
    "default": "INFO",
    "debug": "DEBUG",
    "none": "ERROR",
}


def _resolve_log_dir(explicit: str | Path | None) -> Path:
    """Determine the directory to store log files."""

    if explicit is not None:
        return Path(explicit).expanduser().resolve()
    env_value = os.getenv(LOG_DIR_ENV)
    if env_value:
        return Path(env_value).expanduser().resolve()
    return DEFAULT_LOG_DIR


def _register_header_level() -> None:
    try:
        _logger.level(HEADER_LEVEL)
    except ValueError:
        _logger.level(HEADER_LEVEL, no=22, color="<bold><magenta>")


def resolve_level(value: str | None) -> str:
    """Map an action LOGLEVEL input onto a loguru level name."""

    if not value:
        return "INFO"
    return LOG_LEVELS.get(value.strip().lower(), value.strip().upper())


def configure_logger(*, log_dir: str | Path | None = None, level: str | None = None) -> None:
    """Configure the Loguru logger exactly once per process."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    _register_header_level()
    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_level = resolve_level(level or os.getenv("APP_LOG_LEVEL"))

    _logger.remove()
    _add_console_sink(log_level)
    _logger.add(
        target_dir / "{time:YYYY-MM-DD}.log",
        rotation="50 MB",
        retention="10 days",
        level="DEBUG",
        format=LOG_FORMAT,
        enqueue=True,
        backtrace=True,
        diagnose=False,
    )

    _CONFIGURED = True


def _add_console_sink(level: str) -> None:
    global _CONSOLE_SINK_ID
    _CONSOLE_SINK_ID = _logger.add(
        sys.stdout,
        level=level,
        format=LOG_FORMAT,
        colorize=sys.stdout.isatty(),
    )


def get_logger(*, log_dir: str | Path | None = None, level: str | None = None):
    """Return the configured logger, configuring it on first access."""

    configure_logger(log_dir=log_dir, level=level)
    return _logger


def set_console_level(level: str | None) -> None:
    """Re-point the stdout sink at a new level once settings are known."""

    configure_logger()
    if _CONSOLE_SINK_ID is not None:
        _logger.remove(_CONSOLE_SINK_ID)
    _add_console_sink(resolve_level(level))


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Add context fields to log messages.

    Usage:
        logger = log_with_context(get_logger(), repository="owner/repo", pull_number=7)
        logger.info("Posting review")
    """
    return logger_instance.bind(**{k: v for k, v in context.items() if v is not None})


def log_header(logger_instance, message: str) -> None:
    """Log a section header, the equivalent of a console group title."""
    logger_instance.log(HEADER_LEVEL, message)


def log_timing(logger_instance, operation: str, **context: str | int | None):
    """Context manager to log operation timing.

    Usage:
        with log_timing(logger, "purge_review_comments", repository="owner/repo"):
            # operation code
    """
    @contextmanager
    def _timing():
        start_time = time.time()
        ctx_logger = log_with_context(logger_instance, **context)
        ctx_logger.debug(f"Starting {operation}")
        try:
            yield ctx_logger
            duration = time.time() - start_time
            ctx_logger.debug(f"Completed {operation} in {duration:.3f}s")
        except Exception as exc:
            duration = time.time() - start_time
            ctx_logger.error(f"Failed {operation} after {duration:.3f}s: {exc}")
            raise
    return _timing()


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    """Log a success message with context."""
    log_with_context(logger_instance, **context).info(f"=== SUCCESS: {message} ===")


def log_failure(logger_instance, message: str, error: Exception | None = None, **context: str | int | None) -> None:
    """Log a failure message with context and optional error."""
    ctx_logger = log_with_context(logger_instance, **context)
    if error:
        ctx_logger.error(f"=== FAILURE: {message} | Error: {error} ===")
    else:
        ctx_logger.error(f"=== FAILURE: {message} ===")
