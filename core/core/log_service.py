"""Application logging service.

The terminal belongs to the UI, so log records are written to a rotating
file. The service is created once by the entry point, handed to whatever
needs it, and shut down on exit.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

import structlog

from .models import LogLevel

if TYPE_CHECKING:
    from pathlib import Path

LEVEL_MAP: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}

MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


class LogService:
    """Owns the process-wide structlog and stdlib logging configuration.

    Lifecycle:
        ``start()`` configures logging exactly once; repeated calls are
        ignored. ``shutdown()`` flushes and detaches the file handler and
        may be called safely even if the service never started.

    Example:
        service = LogService(path, LogLevel.DEBUG)
        service.start()
        try:
            run_app(log_service=service)
        finally:
            service.shutdown()
    """

    def __init__(self, log_file: Path, level: LogLevel = LogLevel.INFO) -> None:
        self._log_file = log_file
        self._level = level
        self._handler: logging.Handler | None = None

    @property
    def log_file(self) -> Path:
        """Path of the log file."""
        return self._log_file

    @property
    def level(self) -> LogLevel:
        return self._level

    @property
    def started(self) -> bool:
        """Whether the service is currently configured."""
        return self._handler is not None

    def start(self) -> None:
        """Configure structlog and standard logging to write to the log file."""
        if self._handler is not None:
            return

        self._log_file.parent.mkdir(parents=True, exist_ok=True)
        level = LEVEL_MAP.get(self._level, logging.INFO)

        handler = RotatingFileHandler(
            self._log_file,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)

        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(level),
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._handler = handler
        structlog.get_logger(__name__).info(
            "logging_started", log_file=str(self._log_file), level=self._level.value
        )

    def shutdown(self) -> None:
        """Flush and detach the file handler."""
        if self._handler is None:
            return

        structlog.get_logger(__name__).info("logging_stopped")
        root = logging.getLogger()
        root.removeHandler(self._handler)
        self._handler.flush()
        self._handler.close()
        self._handler = None
