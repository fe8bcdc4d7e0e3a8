"""Logging configuration utilities for uvcounter.

The library is silent by default (a NullHandler sits on the ``uvcounter``
logger). The helpers here attach real handlers when an application wants to
see tier promotions and load fallbacks.

Example usage:
    import uvcounter

    # Simple console logging
    uvcounter.enable_console_logging(level="DEBUG")

    # Rotating file logging
    uvcounter.enable_file_logging("logs/uvcounter.log", max_bytes=10_000_000)

    # JSON logging for log aggregation
    uvcounter.enable_json_logging()

    # Configure from environment variables
    uvcounter.configure_from_env()

Environment variables:
    UVC_LOGGING: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    UVC_LOG_FILE: Path to log file (enables rotating file logging)
    UVC_LOG_JSON: Set to "1" for JSON output
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Literal

__all__ = [
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_file_logging",
    "enable_json_logging",
    "enable_timed_file_logging",
    "set_level",
    "set_module_level",
]

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

LOGGER_NAME = "uvcounter"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class JsonFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Example output:
        {"timestamp": "2026-01-15T10:30:00.123456+00:00", "level": "INFO",
         "logger": "uvcounter.counter", "message": "ExactTier converted to Bitmap, size: 512 --> 512"}
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra"):
            payload["extra"] = record.extra
        return json.dumps(payload)


def _get_level(level: str | int) -> int:
    """Convert a level name or int to a logging level constant."""
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    """Get the uvcounter root logger."""
    return logging.getLogger(LOGGER_NAME)


def _clear_handlers() -> None:
    """Remove and close every handler except NullHandler."""
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
            handler.close()


def _install(handler: logging.Handler, level: LogLevel | int, formatter: logging.Formatter) -> None:
    logger = _get_logger()
    logger.setLevel(_get_level(level))
    handler.setLevel(_get_level(level))
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _prepare_path(path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def enable_console_logging(
    level: LogLevel | int = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Log to stderr.

    Args:
        level: Log level name or int.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created StreamHandler.
    """
    handler = logging.StreamHandler()
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> RotatingFileHandler:
    """Log to a size-rotated file.

    Args:
        path: Log file path. Parent directories are created.
        level: Log level name or int.
        max_bytes: Size at which the file rolls over. Default 10 MB.
        backup_count: Rolled-over files to keep. Default 5.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created RotatingFileHandler.
    """
    handler = RotatingFileHandler(_prepare_path(path), maxBytes=max_bytes, backupCount=backup_count)
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_timed_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    when: str = "midnight",
    interval: int = 1,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> TimedRotatingFileHandler:
    """Log to a file rotated on a schedule (daily at midnight by default).

    Args:
        path: Log file path. Parent directories are created.
        level: Log level name or int.
        when: Rotation unit ('S', 'M', 'H', 'D', 'midnight', 'W0'-'W6').
        interval: Units between rotations.
        backup_count: Rolled-over files to keep, e.g. 30 for a month of
            daily logs.
        format: Log message format string.
        date_format: Date format string for %(asctime)s.

    Returns:
        The created TimedRotatingFileHandler.
    """
    handler = TimedRotatingFileHandler(
        _prepare_path(path),
        when=when,
        interval=interval,
        backupCount=backup_count,
    )
    _install(handler, level, logging.Formatter(format, date_format))
    return handler


def enable_json_logging(level: LogLevel | int = "INFO") -> logging.StreamHandler:
    """Log JSON lines to stderr."""
    handler = logging.StreamHandler()
    _install(handler, level, JsonFormatter())
    return handler


def enable_json_file_logging(
    path: str | Path,
    level: LogLevel | int = "INFO",
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> RotatingFileHandler:
    """Log JSON lines to a size-rotated file."""
    handler = RotatingFileHandler(_prepare_path(path), maxBytes=max_bytes, backupCount=backup_count)
    _install(handler, level, JsonFormatter())
    return handler


def configure_from_env() -> None:
    """Configure logging from ``UVC_LOGGING``, ``UVC_LOG_FILE`` and ``UVC_LOG_JSON``.

    Does nothing when neither a level nor a file is set.
    """
    level = os.environ.get("UVC_LOGGING", "").upper()
    log_file = os.environ.get("UVC_LOG_FILE", "")
    use_json = os.environ.get("UVC_LOG_JSON", "") == "1"

    if not level and not log_file:
        return

    level = level or "INFO"

    if use_json:
        if log_file:
            enable_json_file_logging(log_file, level=level)
        else:
            enable_json_logging(level=level)
    elif log_file:
        enable_file_logging(log_file, level=level)
    else:
        enable_console_logging(level=level)


def set_level(level: LogLevel | int) -> None:
    """Set the level of the uvcounter logger."""
    _get_logger().setLevel(_get_level(level))


def set_module_level(module: str, level: LogLevel | int) -> None:
    """Set the level for one submodule, e.g. ``set_module_level("counter", "DEBUG")``.

    Args:
        module: Module name relative to uvcounter.
        level: Log level name or int.
    """
    logging.getLogger(f"{LOGGER_NAME}.{module}").setLevel(_get_level(level))


def disable_logging() -> None:
    """Remove all handlers and silence the uvcounter logger."""
    logger = _get_logger()
    _clear_handlers()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.CRITICAL + 1)
