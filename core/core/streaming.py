"""Streaming event types and the event channel for live process output.

This module defines the events a supervised Maven process produces and
the channel that carries them from the reader tasks to the UI.

Event Types:
    - Started: The child process was spawned (carries its pid)
    - OutputLine: One line of stdout/stderr output
    - Completed: The process exited with status zero
    - Error: Spawn failure, non-zero exit, or signal death

Ordering contract:
    Started -> OutputLine* -> (Completed | Error). A spawn failure skips
    Started and produces a single Error. Nothing follows a terminal event.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = structlog.get_logger(__name__)

# Prefix added to every line read from the child's stderr
STDERR_PREFIX = "[ERR] "


@dataclass(frozen=True, slots=True)
class Started:
    """The child process was spawned."""

    pid: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC), compare=False)


@dataclass(frozen=True, slots=True)
class OutputLine:
    """One decoded output line, without its line terminator."""

    text: str


@dataclass(frozen=True, slots=True)
class Completed:
    """The process exited successfully."""


@dataclass(frozen=True, slots=True)
class Error:
    """The invocation failed.

    Attributes:
        message: Human-readable reason (exit code, signal, or spawn error).
    """

    message: str


OutputEvent = Started | OutputLine | Completed | Error


def is_terminal(event: OutputEvent) -> bool:
    """Whether the event ends an event stream."""
    return isinstance(event, Completed | Error)


class ChannelClosedError(Exception):
    """Raised when sending on a channel that has been closed."""


class EventChannel:
    """Unbounded multi-producer, single-consumer channel of output events.

    Producers (reader tasks and the supervisor) call ``send``; the channel
    is closed once every producer is done. The UI is the only consumer and
    never blocks: it polls with ``try_receive`` once per tick. Async code
    (tests, the CLI) may instead iterate with ``async for``.

    A channel reports ``disconnected`` only after it was closed *and*
    every queued event was received, so consumers always drain fully.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[OutputEvent | None] = asyncio.Queue()
        self._closed = False
        self._drained = False
        self._sent = 0
        self._log = logger.bind(component="event_channel")

    @property
    def closed(self) -> bool:
        """Whether producers are finished."""
        return self._closed

    @property
    def disconnected(self) -> bool:
        """Whether the channel is closed and fully drained."""
        return self._drained

    @property
    def sent_count(self) -> int:
        """Number of events sent so far."""
        return self._sent

    def qsize(self) -> int:
        """Number of events waiting to be received."""
        size = self._queue.qsize()
        if self._closed and not self._drained:
            size -= 1
        return max(size, 0)

    def send(self, event: OutputEvent) -> None:
        """Queue an event for the consumer.

        Raises:
            ChannelClosedError: If the channel was already closed.
        """
        if self._closed:
            raise ChannelClosedError(f"Cannot send {type(event).__name__} on a closed channel")
        self._queue.put_nowait(event)
        self._sent += 1

    def close(self) -> None:
        """Signal that no more events will be sent. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        self._log.debug("channel_closed", sent=self._sent)

    def try_receive(self) -> OutputEvent | None:
        """Receive the next event without blocking.

        Returns:
            The next event, or None if nothing is queued right now or the
            channel is disconnected (check ``disconnected`` to tell apart).
        """
        if self._drained:
            return None
        try:
            item = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None
        if item is None:
            self._drained = True
            return None
        return item

    async def receive(self) -> OutputEvent | None:
        """Wait for the next event; None once the channel is disconnected."""
        if self._drained:
            return None
        item = await self._queue.get()
        if item is None:
            self._drained = True
        return item

    def __aiter__(self) -> AsyncIterator[OutputEvent]:
        return self

    async def __anext__(self) -> OutputEvent:
        event = await self.receive()
        if event is None:
            raise StopAsyncIteration
        return event
