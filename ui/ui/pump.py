"""Per-tick draining of process events into module output.

The UI calls ``UpdatePump.poll`` once per frame. Each call receives at
most ``max_updates_per_poll`` events without blocking; whatever is left
stays queued for the next tick.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from core.streaming import Completed, Error, EventChannel, OutputLine, Started

if TYPE_CHECKING:
    import asyncio

    from ui.output import ModuleOutput, Viewport

logger = structlog.get_logger(__name__)

DEFAULT_MAX_UPDATES_PER_POLL = 100

SUCCESS_LINE = "✓ Command completed successfully"
DISCONNECTED_MESSAGE = "Build process ended without reporting a result"


@dataclass
class ActiveRun:
    """A command whose events are still being received.

    Attributes:
        module: Module the output belongs to.
        channel: Event channel of the process.
        pid: Process id once ``Started`` was received.
        started_at: Monotonic start time.
        task: Supervising task feeding the channel, if any.
    """

    module: str
    channel: EventChannel
    pid: int | None = None
    started_at: float = field(default_factory=time.monotonic)
    task: asyncio.Task[None] | None = None


@dataclass(frozen=True)
class Notification:
    """Completion notice for the operator."""

    success: bool
    title: str
    message: str


@dataclass
class PumpResult:
    """What a single poll did."""

    processed: int = 0
    output_lines: int = 0
    finished: bool = False
    notification: Notification | None = None


class UpdatePump:
    """Applies process events to a ``ModuleOutput``."""

    def __init__(self, max_updates_per_poll: int = DEFAULT_MAX_UPDATES_PER_POLL) -> None:
        self.max_updates_per_poll = max(max_updates_per_poll, 1)

    def poll(self, run: ActiveRun, output: ModuleOutput, viewport: Viewport) -> PumpResult:
        """Drain a bounded batch of events.

        A terminal event or a disconnected channel sets ``finished``; the
        caller then drops the run, which clears its running state.
        """
        result = PumpResult()
        was_at_bottom = output.is_at_bottom(viewport)
        log = logger.bind(module=run.module, pid=run.pid)

        while result.processed < self.max_updates_per_poll:
            event = run.channel.try_receive()
            if event is None:
                break
            result.processed += 1

            if isinstance(event, Started):
                run.pid = event.pid
                log = log.bind(pid=event.pid)
                log.info("command_started")
            elif isinstance(event, OutputLine):
                output.append(event.text)
                result.output_lines += 1
            elif isinstance(event, Completed):
                log.info("command_completed")
                output.append("")
                output.append(SUCCESS_LINE)
                result.finished = True
                result.notification = Notification(
                    True, "Build Complete", "Maven command completed successfully ✓"
                )
                break
            elif isinstance(event, Error):
                log.error("command_failed", message=event.message)
                output.append("")
                output.append(f"✗ {event.message}")
                result.finished = True
                result.notification = Notification(
                    False, "Build Failed", f"Maven command failed: {event.message}"
                )
                break

        if not result.finished and run.channel.disconnected:
            log.warning("command_channel_disconnected")
            output.append("")
            output.append(f"✗ {DISCONNECTED_MESSAGE}")
            result.finished = True
            result.notification = Notification(False, "Build Failed", DISCONNECTED_MESSAGE)

        still_running = not result.finished
        if result.processed and (was_at_bottom or still_running):
            output.scroll_to_end(viewport)
        elif result.processed:
            output.clamp_scroll(viewport)

        return result
