"""Process supervision for Maven invocations.

A supervised process runs in its own process group so that the whole
tree (Maven plus any application server it forks) can be signalled at
once. Its stdout and stderr are read concurrently by two reader tasks
that push ``OutputLine`` events into an ``EventChannel``; a supervising
task joins both readers, waits for the exit status and sends exactly
one terminal event before closing the channel.
"""

from __future__ import annotations

import asyncio
import os
import signal
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from .command import get_maven_command
from .streaming import STDERR_PREFIX, Completed, Error, EventChannel, OutputLine, Started

if TYPE_CHECKING:
    from pathlib import Path

    from .command import CommandSpec

logger = structlog.get_logger(__name__)

# Maven can print very long classpath lines; the asyncio default is 64 KiB
STREAM_LIMIT = 16 * 1024 * 1024

# Pause between SIGTERM and SIGKILL when killing a process group
KILL_GRACE_SECONDS = 0.1


class ProcessError(Exception):
    """Base class for process supervision errors."""


class SpawnError(ProcessError):
    """The executable could not be started."""


class KillError(ProcessError):
    """The process (group) could not be signalled."""


class CommandTimeoutError(ProcessError):
    """A captured command did not finish in time."""


@dataclass
class ProcessHandle:
    """A spawned (or failed-to-spawn) invocation.

    Attributes:
        pid: Process id, or None if spawning failed.
        started_at: Monotonic timestamp of the spawn attempt.
        channel: Event channel carrying the invocation's events.
        task: Supervising task, or None if spawning failed.
    """

    pid: int | None
    channel: EventChannel
    started_at: float = field(default_factory=time.monotonic)
    task: asyncio.Task[None] | None = None

    @property
    def spawned(self) -> bool:
        return self.pid is not None

    @property
    def elapsed(self) -> float:
        """Seconds since the spawn attempt."""
        return time.monotonic() - self.started_at


def describe_exit(returncode: int) -> str:
    """Describe a non-zero exit status for the operator."""
    if returncode < 0:
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = f"signal {-returncode}"
        return f"Build failed (terminated by signal {name})"
    return f"Build failed with exit code {returncode}"


def build_child_env(overlay: dict[str, str]) -> dict[str, str] | None:
    """Merge an environment overlay into the current environment.

    Returns None when there is nothing to overlay so the child simply
    inherits the parent environment.
    """
    if not overlay:
        return None
    env = dict(os.environ)
    env.update(overlay)
    return env


async def _read_stream(
    stream: asyncio.StreamReader | None,
    channel: EventChannel,
    prefix: str,
    log: structlog.stdlib.BoundLogger,
) -> None:
    """Forward every line of a pipe to the channel until EOF."""
    if stream is None:
        return

    while True:
        try:
            raw = await stream.readline()
        except (ValueError, OSError) as e:
            log.warning("stream_read_error", prefix=prefix, error=str(e))
            break
        if not raw:
            break

        text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        channel.send(OutputLine(f"{prefix}{text}"))


class ProcessSupervisor:
    """Spawns Maven invocations and reports their lifecycle as events.

    The supervisor itself keeps no per-process state; everything a caller
    needs is in the returned ``ProcessHandle``.
    """

    def __init__(self, stream_limit: int = STREAM_LIMIT) -> None:
        self._stream_limit = stream_limit

    async def start(self, spec: CommandSpec, executable: str | None = None) -> ProcessHandle:
        """Spawn a synthesized Maven command in the project root.

        Args:
            spec: The command to run.
            executable: Maven executable; resolved from the project root if omitted.

        Returns:
            Handle whose channel yields ``Started``, output and a terminal event.
        """
        executable = executable or get_maven_command(spec.project_root)
        return await self.spawn([executable, *spec.args], spec.project_root, spec.env)

    async def spawn(
        self,
        argv: list[str],
        cwd: Path | None = None,
        env_overlay: dict[str, str] | None = None,
    ) -> ProcessHandle:
        """Spawn an arbitrary command under supervision.

        A spawn failure does not raise: the returned handle has no pid and
        its channel holds a single ``Error`` event.
        """
        channel = EventChannel()
        log = logger.bind(command=" ".join(argv))

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=build_child_env(env_overlay or {}),
                limit=self._stream_limit,
                start_new_session=os.name == "posix",
            )
        except OSError as e:
            log.warning("process_spawn_failed", error=str(e))
            channel.send(Error(f"Failed to start: {e}"))
            channel.close()
            return ProcessHandle(pid=None, channel=channel)

        log = log.bind(pid=process.pid)
        log.info("process_started")
        channel.send(Started(process.pid))

        task = asyncio.create_task(
            self._supervise(process, channel, log), name=f"supervise-{process.pid}"
        )
        return ProcessHandle(pid=process.pid, channel=channel, task=task)

    async def _supervise(
        self,
        process: asyncio.subprocess.Process,
        channel: EventChannel,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        try:
            async with asyncio.TaskGroup() as tg:
                tg.create_task(_read_stream(process.stdout, channel, "", log))
                tg.create_task(_read_stream(process.stderr, channel, STDERR_PREFIX, log))

            returncode = await process.wait()
            if returncode == 0:
                log.info("process_completed")
                channel.send(Completed())
            else:
                log.info("process_failed", returncode=returncode)
                channel.send(Error(describe_exit(returncode)))
        except Exception as e:
            log.exception("process_supervision_failed")
            channel.send(Error(f"Process supervision failed: {e}"))
        finally:
            channel.close()


async def kill_process_group(pid: int, grace: float = KILL_GRACE_SECONDS) -> None:
    """Terminate a process and every process in its group.

    Sends SIGTERM to the group, waits ``grace`` seconds and then SIGKILLs
    whatever is left. Falls back to signalling the single pid when the
    group cannot be signalled.

    Raises:
        KillError: If neither the group nor the process could be signalled.
    """
    log = logger.bind(pid=pid)

    if os.name != "posix":
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            raise KillError(f"Failed to kill process {pid}: {e}") from e
        log.info("process_killed")
        return

    try:
        os.killpg(pid, signal.SIGTERM)
    except OSError as group_error:
        log.warning("process_group_kill_failed", error=str(group_error))
        try:
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            raise KillError(f"Failed to kill process {pid}: {e}") from e
        log.info("process_killed")
        return

    log.info("process_group_terminated")
    await asyncio.sleep(grace)
    try:
        os.killpg(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
    except OSError as e:
        log.debug("process_group_sigkill_failed", error=str(e))


async def _reap_captured(process: asyncio.subprocess.Process) -> None:
    """SIGKILL a captured command's process group and wait for the child."""
    if process.returncode is None:
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.debug("capture_group_kill_failed", pid=process.pid, error=str(e))
            process.kill()
    await process.wait()


async def run_maven_capture(
    argv: list[str],
    cwd: Path | None,
    timeout: float,
    env_overlay: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run a command to completion and capture its output.

    Used for short helper invocations (effective POM, profile listing)
    whose output is parsed rather than shown.

    Args:
        argv: Executable and arguments.
        cwd: Working directory.
        timeout: Timeout in seconds.
        env_overlay: Extra environment variables.

    Returns:
        Tuple of (return_code, stdout, stderr).

    Raises:
        SpawnError: If the executable cannot be started.
        CommandTimeoutError: If the command exceeds the timeout.
    """
    log = logger.bind(command=" ".join(argv))
    log.debug("running_command")

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=build_child_env(env_overlay or {}),
            start_new_session=os.name == "posix",
        )
    except OSError as e:
        raise SpawnError(f"Failed to start {argv[0]}: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError as e:
        log.warning("command_timeout", timeout=timeout)
        await _reap_captured(process)
        raise CommandTimeoutError(f"Command timed out after {timeout}s") from e
    except asyncio.CancelledError:
        log.info("command_cancelled")
        await _reap_captured(process)
        raise

    return_code = process.returncode or 0
    stdout_str = stdout.decode("utf-8", errors="replace")
    stderr_str = stderr.decode("utf-8", errors="replace")

    log.debug(
        "command_completed",
        return_code=return_code,
        stdout_len=len(stdout_str),
        stderr_len=len(stderr_str),
    )
    return return_code, stdout_str, stderr_str
