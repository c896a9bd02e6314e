"""Tests for the logging service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest
import structlog

from core.log_service import LogService
from core.models import LogLevel

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore structlog defaults after each test."""
    yield
    structlog.reset_defaults()


class TestLogService:
    """Tests for LogService lifecycle."""

    def test_start_writes_to_file(self, tmp_path: Path) -> None:
        """Test records end up in the log file, creating its directory."""
        log_file = tmp_path / "state" / "mvnconsole.log"
        service = LogService(log_file, LogLevel.DEBUG)

        service.start()
        try:
            assert service.started
            structlog.get_logger("test").info("build_started", module="web")
        finally:
            service.shutdown()

        content = log_file.read_text()
        assert "logging_started" in content
        assert "build_started" in content
        assert "module=web" in content

    def test_level_filters_records(self, tmp_path: Path) -> None:
        """Test records below the configured level are dropped."""
        log_file = tmp_path / "mvnconsole.log"
        service = LogService(log_file, LogLevel.WARNING)

        service.start()
        try:
            structlog.get_logger("test").info("quiet_event")
            structlog.get_logger("test").warning("loud_event")
        finally:
            service.shutdown()

        content = log_file.read_text()
        assert "quiet_event" not in content
        assert "loud_event" in content

    def test_start_is_idempotent(self, tmp_path: Path) -> None:
        """Test a second start adds no second handler."""
        service = LogService(tmp_path / "mvnconsole.log")
        before = len(logging.getLogger().handlers)

        service.start()
        service.start()
        try:
            assert len(logging.getLogger().handlers) == before + 1
        finally:
            service.shutdown()

        assert len(logging.getLogger().handlers) == before
        assert not service.started

    def test_shutdown_without_start(self, tmp_path: Path) -> None:
        """Test shutdown is safe when the service never started."""
        service = LogService(tmp_path / "mvnconsole.log")
        service.shutdown()
        assert service.log_file == tmp_path / "mvnconsole.log"
        assert service.level is LogLevel.INFO
