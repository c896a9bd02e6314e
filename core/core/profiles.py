"""Maven profile discovery.

Profiles are listed with ``help:all-profiles`` (POM-declared profiles),
completed with the profiles of the configured settings file, and marked
auto-activated from ``help:active-profiles``. Discovery runs as a
background task that the UI polls once per frame through ``ProfileLoader``.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import structlog

from .command import build_command_spec, get_maven_command
from .models import MavenProfile
from .process import ProcessError, run_maven_capture

logger = structlog.get_logger(__name__)

ALL_PROFILES_GOAL = "help:all-profiles"
ACTIVE_PROFILES_GOAL = "help:active-profiles"
PROFILE_ID_MARKER = "Profile Id:"

PROFILE_LOAD_TIMEOUT_SECONDS = 30.0


class ProfileLoadError(Exception):
    """Raised when profiles cannot be listed."""


def parse_all_profiles(text: str) -> list[str]:
    """Extract profile ids from ``help:all-profiles`` output.

    Lines look like ``Profile Id: dev (Active: false , Source: pom)``; the
    same profile is listed once per module, so the result is deduplicated.
    """
    names: set[str] = set()
    for line in text.splitlines():
        if PROFILE_ID_MARKER not in line:
            continue
        rest = line.split(PROFILE_ID_MARKER, 1)[1].strip()
        if not rest:
            continue
        name = rest.split()[0].split("(")[0].strip()
        if name:
            names.add(name)
    return sorted(names)


def parse_active_profiles(text: str) -> list[str]:
    """Extract profile ids from ``help:active-profiles`` output (`` - dev (source: ...)``)."""
    names: set[str] = set()
    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed.startswith("- "):
            continue
        parts = trimmed[2:].split()
        if parts:
            names.add(parts[0])
    return sorted(names)


def extract_profiles_from_settings_xml(text: str) -> list[str]:
    """Extract ``<id>`` values of the profiles declared in a settings file."""
    profiles: list[str] = []
    in_profiles = False
    in_profile = False

    for line in text.splitlines():
        trimmed = line.strip()
        if trimmed.startswith("<profiles>"):
            in_profiles = True
            continue
        if trimmed.startswith("</profiles>"):
            in_profiles = False
            continue
        if not in_profiles:
            continue

        if trimmed.startswith("<profile>"):
            in_profile = True
        elif trimmed.startswith("</profile>"):
            in_profile = False
        elif in_profile and trimmed.startswith("<id>") and "</id>" in trimmed:
            profile_id = trimmed[len("<id>") : trimmed.index("</id>")].strip()
            if profile_id:
                profiles.append(profile_id)

    return profiles


def read_settings_profiles(settings_path: str | None) -> list[str]:
    """Read profile ids from a settings file; unreadable files yield none."""
    if not settings_path:
        return []
    try:
        content = Path(settings_path).expanduser().read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("settings_profiles_unreadable", path=settings_path, error=str(e))
        return []
    return extract_profiles_from_settings_xml(content)


async def _run_help_goal(
    project_root: Path, goal: str, settings_path: str | None, timeout: float
) -> str:
    spec = build_command_spec(project_root, None, [goal], settings_path=settings_path)
    argv = [get_maven_command(project_root), *spec.args]
    try:
        return_code, stdout, stderr = await run_maven_capture(argv, project_root, timeout)
    except ProcessError as e:
        raise ProfileLoadError(str(e)) from e
    if return_code != 0:
        raise ProfileLoadError(f"{goal} exited with code {return_code}: {stderr.strip()}")
    return stdout


async def discover_profiles(
    project_root: Path,
    settings_path: str | None = None,
    timeout: float = PROFILE_LOAD_TIMEOUT_SECONDS,
) -> list[MavenProfile]:
    """List every profile of a project with its auto-activation state.

    Raises:
        ProfileLoadError: If the profiles cannot be listed.
    """
    log = logger.bind(project_root=str(project_root))

    output = await _run_help_goal(project_root, ALL_PROFILES_GOAL, settings_path, timeout)
    names = set(parse_all_profiles(output))
    names.update(read_settings_profiles(settings_path))

    try:
        active_output = await _run_help_goal(
            project_root, ACTIVE_PROFILES_GOAL, settings_path, timeout
        )
        active = set(parse_active_profiles(active_output))
    except ProfileLoadError as e:
        log.warning("active_profiles_unavailable", error=str(e))
        active = set()

    profiles = [MavenProfile(name, auto_activated=name in active) for name in sorted(names)]
    log.info("profiles_discovered", count=len(profiles), auto_activated=len(active & names))
    return profiles


class LoadingState(str, Enum):
    """State of a background profile load."""

    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


@dataclass(frozen=True)
class LoadingStatus:
    """Snapshot returned by ``ProfileLoader.poll``."""

    state: LoadingState
    profiles: list[MavenProfile] = field(default_factory=list)
    message: str | None = None


class ProfileLoader:
    """Loads profiles in the background with a wall-clock timeout.

    ``start()`` schedules the discovery task; ``poll()`` never blocks and is
    called once per UI tick until it reports LOADED or ERROR. Once the
    timeout elapses the task is cancelled and the load reported as failed.
    """

    def __init__(
        self,
        project_root: Path,
        settings_path: str | None = None,
        timeout: float = PROFILE_LOAD_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.project_root = project_root
        self.settings_path = settings_path
        self.timeout = timeout
        self._clock = clock
        self._task: asyncio.Task[list[MavenProfile]] | None = None
        self._started_at = 0.0
        self._result: LoadingStatus | None = None

    @property
    def started(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Schedule profile discovery. Must be called from a running event loop."""
        if self._task is not None:
            return
        self._started_at = self._clock()
        self._task = asyncio.create_task(
            discover_profiles(self.project_root, self.settings_path, self.timeout),
            name="profile-loader",
        )
        logger.debug("profile_loading_started", project_root=str(self.project_root))

    def poll(self) -> LoadingStatus:
        """Report the current state of the load without blocking."""
        if self._result is not None:
            return self._result
        if self._task is None:
            return LoadingStatus(LoadingState.LOADING)

        if self._task.done():
            self._result = self._finish(self._task)
            return self._result

        if self._clock() - self._started_at > self.timeout:
            self._task.cancel()
            message = f"Timeout: Profile loading took too long (>{self.timeout:g}s)"
            logger.warning("profile_loading_timeout", timeout=self.timeout)
            self._result = LoadingStatus(LoadingState.ERROR, message=message)
            return self._result

        return LoadingStatus(LoadingState.LOADING)

    def cancel(self) -> None:
        """Abandon a load that is still running."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _finish(self, task: asyncio.Task[list[MavenProfile]]) -> LoadingStatus:
        if task.cancelled():
            return LoadingStatus(LoadingState.ERROR, message="Profile loading was cancelled")
        error = task.exception()
        if error is not None:
            logger.warning("profile_loading_failed", error=str(error))
            return LoadingStatus(LoadingState.ERROR, message=str(error))
        return LoadingStatus(LoadingState.LOADED, profiles=task.result())
