"""Structured logging configuration for the now playing watcher.

Console logging is always human-readable. When a log file is requested, records
are also written to it as JSON with 10MB rotation and 5 backups.

Every record logged through log_with_context carries an ``event_type`` field
(``poll_timeout``, ``export_artwork_failed``, ...). Records logged with a
NowPlayingException attached also carry its ``error_code`` and ``details``.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

from now_playing import __version__
from now_playing.exceptions import NowPlayingException

# Attributes of LogRecord itself; extra fields must not overwrite them
_RESERVED_FIELDS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter that tags lines with their event type."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        event_type = getattr(record, "event_type", None)
        if event_type is None:
            return line
        first, sep, rest = line.partition("\n")
        return f"{first} [{event_type}]{sep}{rest}"


def setup_logging(log_level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Configure console logging and optional JSON file logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of the JSON log file, or None to log to console only

    Returns:
        Configured root logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))

    # Remove any existing handlers
    root_logger.handlers.clear()

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        json_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        json_formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(filename)s %(lineno)d",
            timestamp=True,
            static_fields={"app": "now_playing", "version": __version__},
        )
        json_handler.setFormatter(json_formatter)
        json_handler.setLevel(logging.DEBUG)  # Capture all levels to file
        root_logger.addHandler(json_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        ConsoleFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    console_handler.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(console_handler)

    # Per-tick requests are logged by the client event hooks in lifespan
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with structured logging support.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance configured for structured logging
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    exc_info: Any = None,
    **extra_fields: Any,
) -> None:
    """Log a message with additional structured context fields.

    When ``exc_info`` is a NowPlayingException, its error code and details are
    added to the record unless the caller already passed fields of the same
    name. Detail keys that clash with LogRecord attributes are dropped.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        exc_info: Exception (or True) to attach traceback information
        **extra_fields: Additional fields to include in JSON log (e.g., source_url, event_type)
    """
    if isinstance(exc_info, NowPlayingException):
        extra_fields.setdefault("error_code", exc_info.code.value)
        for key, value in exc_info.details.items():
            if key not in _RESERVED_FIELDS:
                extra_fields.setdefault(key, value)

    log_method = getattr(logger, level.lower())
    log_method(message, exc_info=exc_info, extra=extra_fields)
