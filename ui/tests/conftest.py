"""Test fixtures and utilities for UI tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from core.process import ProcessHandle, ProcessSupervisor
from core.streaming import EventChannel, OutputEvent

if TYPE_CHECKING:
    from pathlib import Path

    from core.command import CommandSpec

FAKE_PID = 424242


class FakeSupervisor(ProcessSupervisor):
    """Supervisor that records commands instead of spawning them.

    Each started command gets a fresh, open channel; tests push events
    into ``channel`` to simulate the process. ``start_delay`` keeps the
    start pending for a while, and ``supervised`` attaches a long-lived
    task standing in for the reader tasks.
    """

    def __init__(
        self, pid: int | None = FAKE_PID, *, start_delay: float = 0.0, supervised: bool = False
    ) -> None:
        super().__init__()
        self.pid = pid
        self.start_delay = start_delay
        self.supervised = supervised
        self.specs: list[CommandSpec] = []
        self.executables: list[str | None] = []
        self.channel = EventChannel()
        self.task: asyncio.Task[None] | None = None

    async def start(self, spec: CommandSpec, executable: str | None = None) -> ProcessHandle:
        self.specs.append(spec)
        self.executables.append(executable)
        self.channel = EventChannel()
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        self.task = asyncio.create_task(self._hold()) if self.supervised else None
        return ProcessHandle(pid=self.pid, channel=self.channel, task=self.task)

    async def _hold(self) -> None:
        await asyncio.Event().wait()

    def emit(self, *events: OutputEvent, close: bool = False) -> None:
        for event in events:
            self.channel.send(event)
        if close:
            self.channel.close()


@pytest.fixture
def fake_supervisor() -> FakeSupervisor:
    return FakeSupervisor()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """A two-module Maven project on disk."""
    (tmp_path / "pom.xml").write_text(
        "<project>\n"
        "  <modules>\n"
        "    <module>api</module>\n"
        "    <module>web</module>\n"
        "  </modules>\n"
        "</project>\n"
    )
    for module in ("api", "web"):
        (tmp_path / module).mkdir()
        (tmp_path / module / "pom.xml").write_text("<project/>")
    return tmp_path
