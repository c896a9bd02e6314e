"""Per-project state and operations behind one console tab.

A ``ProjectTab`` owns everything a project needs while it is open: its
profiles and flags, one ``ModuleOutput`` per module, the search state,
and at most one running command. Every method runs on the UI's event
loop; process output only reaches the tab through ``poll``.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from core.command import CommandSpec, build_command_spec, get_maven_command
from core.launch import (
    LaunchStrategy,
    build_launch_goals,
    build_launcher_jvm_args,
    decide_launch_strategy,
    probe_capabilities,
)
from core.models import BuildFlag, ConsoleConfig, MavenProfile, default_build_flags
from core.process import KillError, ProcessHandle, ProcessSupervisor, kill_process_group
from core.profiles import LoadingState, LoadingStatus, ProfileLoader
from core.project import discover_modules
from core.streaming import EventChannel
from ui.output import ModuleOutput, OutputBuffer, Viewport
from ui.pump import ActiveRun, PumpResult, UpdatePump
from ui.search import SearchEngine, SearchMatch, SearchState

if TYPE_CHECKING:
    from pathlib import Path

logger = structlog.get_logger(__name__)

ALREADY_RUNNING_LINE = "⚠ A command is already running. Kill it (k) before starting another."


class ProjectTab:
    """State and operations of one open Maven project.

    Args:
        project_root: Root directory of the project.
        modules: Module list; discovered from the root POM if omitted.
        config: Application configuration.
        supervisor: Process supervisor used to start commands.
        executable: Maven executable; resolved from the project if omitted.
    """

    def __init__(
        self,
        project_root: Path,
        modules: list[str] | None = None,
        config: ConsoleConfig | None = None,
        *,
        supervisor: ProcessSupervisor | None = None,
        executable: str | None = None,
    ) -> None:
        self.project_root = project_root
        self.config = config or ConsoleConfig()
        self.modules = modules or discover_modules(project_root)
        self.selected_module = self.modules[0]

        self.profiles: list[MavenProfile] = []
        self.flags: list[BuildFlag] = default_build_flags(self.config.custom_flags)
        self.outputs = OutputBuffer(self.config.output.max_lines)
        self.viewport = Viewport()
        self.search = SearchEngine()
        self.pump = UpdatePump(self.config.output.max_updates_per_poll)
        self.supervisor = supervisor or ProcessSupervisor()
        self.executable = executable

        self.profile_status: LoadingStatus | None = None
        self._profile_loader: ProfileLoader | None = None
        self._run: ActiveRun | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._log = logger.bind(project=str(project_root))

    # =========================================================================
    # State
    # =========================================================================

    @property
    def output(self) -> ModuleOutput:
        """Output of the selected module."""
        return self.outputs.output_for(self.selected_module)

    @property
    def is_running(self) -> bool:
        return self._run is not None

    @property
    def running_pid(self) -> int | None:
        return self._run.pid if self._run else None

    @property
    def running_module(self) -> str | None:
        return self._run.module if self._run else None

    @property
    def maven_executable(self) -> str:
        return self.executable or get_maven_command(self.project_root)

    def select_module(self, module: str) -> None:
        """Switch the displayed module.

        Raises:
            ValueError: If the module is not part of the project.
        """
        if module not in self.modules:
            raise ValueError(f"Unknown module: {module}")
        self.selected_module = module
        self._refresh_search()
        self.output.clamp_scroll(self.viewport)

    def set_profiles(self, profiles: list[MavenProfile]) -> None:
        self.profiles = list(profiles)

    def toggle_profile(self, index: int) -> MavenProfile:
        profile = self.profiles[index]
        profile.toggle()
        self._log.debug("profile_toggled", profile=profile.name, state=profile.state.value)
        return profile

    def toggle_flag(self, index: int) -> BuildFlag:
        flag = self.flags[index]
        flag.toggle()
        self._log.debug("flag_toggled", flag=flag.flag, enabled=flag.enabled)
        return flag

    def profile_args(self) -> list[str]:
        """Profile tokens for ``-P``: explicit states only."""
        return [arg for arg in (p.to_maven_arg() for p in self.profiles) if arg is not None]

    def active_profile_names(self) -> list[str]:
        return [p.name for p in self.profiles if p.is_active()]

    def enabled_flags(self) -> list[str]:
        return [f.flag for f in self.flags if f.enabled]

    def last_command_context(self) -> tuple[str, list[str], list[str]] | None:
        """Goal, profiles and flags of the selected module's last command."""
        output = self.outputs.get(self.selected_module)
        if output is None or output.command is None:
            return None
        return output.command, list(output.profiles), list(output.flags)

    # =========================================================================
    # Profiles
    # =========================================================================

    def start_profile_loading(self) -> None:
        """Discover profiles in the background; ``poll_profiles`` picks up the result."""
        if self._profile_loader is not None:
            return
        self._profile_loader = ProfileLoader(self.project_root, self.config.maven_settings)
        self._profile_loader.start()
        self.profile_status = LoadingStatus(LoadingState.LOADING)

    def poll_profiles(self) -> LoadingStatus | None:
        """Check the background profile load without blocking."""
        if self._profile_loader is None:
            return self.profile_status

        status = self._profile_loader.poll()
        if status.state is LoadingState.LOADED:
            self.set_profiles(status.profiles)
            self._profile_loader = None
        elif status.state is LoadingState.ERROR:
            self._log.warning("profile_loading_error", message=status.message)
            self._profile_loader = None
        self.profile_status = status
        return status

    # =========================================================================
    # Commands
    # =========================================================================

    def build_spec(self, goals: list[str], module: str | None = None) -> CommandSpec:
        """Synthesize the command for ``module`` (the selected one by default)."""
        return build_command_spec(
            self.project_root,
            module or self.selected_module,
            goals,
            profiles=self.profile_args(),
            flags=self.enabled_flags(),
            settings_path=self.config.maven_settings,
            use_file_flag=self.config.use_file_flag,
            logging_overrides=self.config.logging.overrides(),
            log_format=self.config.logging.log_format,
        )

    async def run_goals(self, goals: list[str], module: str | None = None) -> bool:
        """Start a Maven command for ``module`` (the selected one by default).

        The run slot is taken before the spawn is awaited, so a second start
        arriving meanwhile is rejected as well.

        Returns:
            False if another command is running or starting, or if the
            command was killed before its process came up.
        """
        module = module or self.selected_module
        output = self.outputs.output_for(module)
        if self._run is not None:
            output.append(ALREADY_RUNNING_LINE)
            self._log.warning("command_rejected_already_running", goals=goals)
            return False

        spec = self.build_spec(goals, module)
        executable = self.maven_executable
        run = ActiveRun(module=module, channel=EventChannel())
        self._run = run

        output.clear()
        output.set_command(" ".join(goals), self.profile_args(), self.enabled_flags())
        output.append(f"$ {spec.display(executable)}")
        if module == self.selected_module:
            self._refresh_search()

        try:
            handle = await self.supervisor.start(spec, executable)
        except BaseException:
            if self._run is run:
                self._run = None
            raise

        if handle.task is not None:
            self._tasks.add(handle.task)
            handle.task.add_done_callback(self._tasks.discard)

        if self._run is not run:
            self._log.info("command_killed_while_starting", module=module, pid=handle.pid)
            await self._discard_handle(handle)
            return False

        run.channel = handle.channel
        run.pid = handle.pid
        run.task = handle.task
        self._log.info("command_launched", module=module, pid=handle.pid)
        return True

    async def run_application(self) -> bool:
        """Probe the selected module and launch it with the matching strategy.

        The module is fixed when the probe starts; changing the selection
        while the effective POM is computed does not redirect the launch.
        """
        module = self.selected_module
        if self._run is not None:
            self.outputs.output_for(module).append(ALREADY_RUNNING_LINE)
            return False

        probe = await probe_capabilities(
            self.project_root,
            module,
            self.config.maven_settings,
            use_file_flag=self.config.use_file_flag,
        )
        strategy = decide_launch_strategy(probe, self.config.launch_mode)
        if strategy is LaunchStrategy.EXTERNAL_IDE:
            self.outputs.output_for(module).append(
                f"✗ Launch strategy {strategy.value} is not supported"
            )
            return False

        goals = build_launch_goals(
            strategy,
            probe.main_class,
            self.active_profile_names(),
            build_launcher_jvm_args(self.config.logging),
            probe.packaging,
        )
        self._log.info("application_launch", strategy=strategy.value, module=module)
        return await self.run_goals(goals, module)

    async def kill(self) -> bool:
        """Kill the running command's process group.

        The event channel is detached first, so events still queued at kill
        time are discarded rather than shown after the kill notice.

        Returns:
            False if nothing was running.
        """
        run = self._run
        if run is None:
            return False
        self._run = None
        output = self.outputs.output_for(run.module)

        if run.pid is None:
            output.append("⚠ Command stopped before the process started")
        else:
            try:
                await kill_process_group(run.pid)
            except KillError as e:
                self._log.error("kill_failed", pid=run.pid, error=str(e))
                output.append(f"✗ Failed to kill process: {e}")
                # Nobody reads the detached channel any more
                if run.task is not None:
                    run.task.cancel()
            else:
                output.append(f"⚠ Process {run.pid} killed by user")

        output.scroll_to_end(self.viewport)
        self._refresh_search()
        return True

    async def _discard_handle(self, handle: ProcessHandle) -> None:
        """Stop a process whose run was killed while it was being spawned."""
        if handle.pid is None:
            return
        try:
            await kill_process_group(handle.pid)
        except KillError as e:
            self._log.error("kill_failed", pid=handle.pid, error=str(e))
            if handle.task is not None:
                handle.task.cancel()

    def poll(self) -> PumpResult | None:
        """Apply queued process events; called once per UI tick."""
        run = self._run
        if run is None:
            return None

        output = self.outputs.output_for(run.module)
        result = self.pump.poll(run, output, self.viewport)
        if result.finished:
            self._run = None
        if not self.config.notifications_enabled:
            result.notification = None
        if result.processed and run.module == self.selected_module:
            self._refresh_search()
        return result

    async def shutdown(self) -> None:
        """Kill a running command and abandon background work."""
        if self._run is not None:
            await self.kill()
        if self._profile_loader is not None:
            self._profile_loader.cancel()
            self._profile_loader = None

    # =========================================================================
    # Search
    # =========================================================================

    def apply_search(self, query: str) -> SearchState:
        """Search the selected module's output and jump to the first match.

        Raises:
            SearchError: If the query does not compile; the previous search stays.
        """
        state = self.search.apply(query, self.output.lines)
        self._center_on_match()
        return state

    def next_match(self) -> SearchMatch | None:
        match = self.search.next()
        self._center_on_match()
        return match

    def previous_match(self) -> SearchMatch | None:
        match = self.search.previous()
        self._center_on_match()
        return match

    def clear_search(self) -> None:
        self.search.clear()

    def _refresh_search(self) -> None:
        self.search.refresh(self.output.lines)

    def _center_on_match(self) -> None:
        output = self.output
        offset = self.search.scroll_offset_for_current(
            output.metrics(self.viewport.width), self.viewport.height
        )
        if offset is not None:
            output.scroll_offset = offset

    # =========================================================================
    # Viewport
    # =========================================================================

    def set_viewport(self, width: int, height: int) -> None:
        """Resize the viewport; wrap metrics are recomputed for the new width."""
        self.viewport = Viewport(width, height)
        self.output.clamp_scroll(self.viewport)

    def scroll_lines(self, rows: int) -> None:
        self.output.scroll_by(rows, self.viewport)

    def scroll_pages(self, pages: int) -> None:
        self.output.scroll_by(pages * max(self.viewport.height - 1, 1), self.viewport)

    def scroll_to_start(self) -> None:
        self.output.scroll_to(0, self.viewport)

    def scroll_to_end(self) -> None:
        self.output.scroll_to_end(self.viewport)
