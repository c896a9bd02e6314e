"""Terminal console application for a Maven project.

The app shows the project's modules, profiles and flags next to the
output viewport. It never reads process pipes itself: a fixed-rate timer
ticks the project tab, which drains a bounded batch of process events
and the background profile load on every frame.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

import structlog
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.containers import Horizontal, Vertical
from textual.widgets import Footer, Header, Input, OptionList, Static

from core.profiles import LoadingState
from ui.output_view import OutputView
from ui.search import SearchError

if TYPE_CHECKING:
    from core.log_service import LogService
    from core.models import BuildFlag, MavenProfile
    from ui.project_tab import ProjectTab

logger = structlog.get_logger(__name__)

TICK_INTERVAL = 1 / 30

GOAL_ACTIONS: dict[str, list[str]] = {
    "build": ["clean", "install"],
    "compile": ["compile"],
    "test": ["test"],
    "package": ["package"],
}


def profile_label(profile: MavenProfile) -> str:
    """List label of a profile: explicit states first, then auto-activation."""
    arg = profile.to_maven_arg()
    if arg is None:
        marker = "[*]" if profile.auto_activated else "[ ]"
    elif arg.startswith("!"):
        marker = "[-]"
    else:
        marker = "[+]"
    suffix = " (auto)" if profile.auto_activated else ""
    return f"{marker} {profile.name}{suffix}"


def flag_label(flag: BuildFlag) -> str:
    marker = "[x]" if flag.enabled else "[ ]"
    return f"{marker} {flag.name} ({flag.flag})"


class ConsoleApp(App[None]):
    """Interactive Maven console for one project."""

    TITLE = "mvnconsole"

    CSS = """
    #sidebar {
        width: 40;
        min-width: 24;
    }

    #sidebar OptionList {
        height: 1fr;
        border: round $primary-background;
    }

    #sidebar OptionList:focus {
        border: round $accent;
    }

    #main {
        width: 1fr;
    }

    #search {
        dock: bottom;
        display: none;
    }

    #search.visible {
        display: block;
    }

    #status {
        dock: bottom;
        height: 1;
        background: $primary-background;
        color: $text;
        padding: 0 1;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("b", "build", "Build", show=True),
        Binding("c", "compile", "Compile", show=True),
        Binding("t", "test", "Test", show=True),
        Binding("p", "package", "Package", show=True),
        Binding("r", "run_application", "Run", show=True),
        Binding("k", "kill", "Kill", show=True),
        Binding("slash", "start_search", "Search", show=True),
        Binding("n", "next_match", "Next", show=False),
        Binding("N", "previous_match", "Previous", show=False),
        Binding("g", "scroll_top", "Top", show=False),
        Binding("G", "scroll_bottom", "Bottom", show=False),
        Binding("pageup", "page_up", "Page Up", show=False),
        Binding("pagedown", "page_down", "Page Down", show=False),
        Binding("space", "toggle", "Toggle", show=True),
        Binding("escape", "cancel_search", "Cancel", show=False),
        Binding("q", "quit", "Quit", show=True),
    ]

    ENABLE_COMMAND_PALETTE: ClassVar[bool] = False

    def __init__(
        self,
        tab: ProjectTab,
        log_service: LogService | None = None,
        *,
        load_profiles: bool = True,
        **kwargs: Any,
    ) -> None:
        """Initialize the console.

        Args:
            tab: The project to display.
            log_service: Started logging service, shown in the subtitle.
            load_profiles: Whether to discover profiles on mount.
            **kwargs: Additional arguments for App.
        """
        super().__init__(**kwargs)
        self.tab = tab
        self.log_service = log_service
        self.load_profiles = load_profiles
        self._last_profile_state: LoadingState | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            with Vertical(id="sidebar"):
                modules = OptionList(*self.tab.modules, id="modules")
                modules.border_title = "Modules"
                yield modules
                profiles = OptionList(id="profiles")
                profiles.border_title = "Profiles"
                yield profiles
                flags = OptionList(*[flag_label(f) for f in self.tab.flags], id="flags")
                flags.border_title = "Flags"
                yield flags
            with Vertical(id="main"):
                yield OutputView(self.tab, id="output")
        yield Input(placeholder="Search (regex)", id="search")
        yield Static("", id="status")
        yield Footer()

    async def on_mount(self) -> None:
        self.sub_title = str(self.tab.project_root)
        if self.log_service is not None:
            self.sub_title = f"{self.tab.project_root}  (log: {self.log_service.log_file})"

        self.query_one("#modules", OptionList).highlighted = 0
        if self.load_profiles:
            self.tab.start_profile_loading()
        self.set_interval(TICK_INTERVAL, self._tick)
        self._update_status()
        logger.info("app_mounted", project=str(self.tab.project_root))

    async def on_unmount(self) -> None:
        await self.tab.shutdown()

    @property
    def output_view(self) -> OutputView:
        return self.query_one("#output", OutputView)

    # =========================================================================
    # Tick
    # =========================================================================

    def _tick(self) -> None:
        result = self.tab.poll()
        if result is not None and result.processed:
            self.output_view.refresh_output()
        if result is not None and result.notification is not None:
            note = result.notification
            self.notify(
                note.message,
                title=note.title,
                severity="information" if note.success else "error",
            )

        status = self.tab.poll_profiles()
        if status is not None and status.state is not self._last_profile_state:
            self._last_profile_state = status.state
            if status.state is LoadingState.LOADED:
                self._rebuild_profiles()
            elif status.state is LoadingState.ERROR:
                self.notify(status.message or "Profile loading failed", severity="warning")

        self._update_status()

    def _update_status(self) -> None:
        parts = [f"module: {self.tab.selected_module}"]
        if self.tab.is_running:
            parts.append(f"running (pid {self.tab.running_pid})")
        status = self.tab.profile_status
        if status is not None and status.state is LoadingState.LOADING:
            parts.append("loading profiles…")
        search = self.tab.search.status()
        if search:
            parts.append(search)
        self.query_one("#status", Static).update(" | ".join(parts))

    def _rebuild_profiles(self) -> None:
        option_list = self.query_one("#profiles", OptionList)
        highlighted = option_list.highlighted
        option_list.clear_options()
        option_list.add_options([profile_label(p) for p in self.tab.profiles])
        if highlighted is not None and highlighted < len(self.tab.profiles):
            option_list.highlighted = highlighted

    def _rebuild_flags(self) -> None:
        option_list = self.query_one("#flags", OptionList)
        highlighted = option_list.highlighted
        option_list.clear_options()
        option_list.add_options([flag_label(f) for f in self.tab.flags])
        if highlighted is not None:
            option_list.highlighted = highlighted

    @on(OptionList.OptionHighlighted, "#modules")
    def _module_highlighted(self, event: OptionList.OptionHighlighted) -> None:
        module = self.tab.modules[event.option_index]
        if module != self.tab.selected_module:
            self.tab.select_module(module)
            self.output_view.refresh_output()
            self._update_status()

    # =========================================================================
    # Commands
    # =========================================================================

    async def _run_goals(self, goals: list[str]) -> None:
        if not await self.tab.run_goals(goals):
            self.notify("A command is already running", severity="warning")
        self.output_view.refresh_output()
        self._update_status()

    async def action_build(self) -> None:
        await self._run_goals(GOAL_ACTIONS["build"])

    async def action_compile(self) -> None:
        await self._run_goals(GOAL_ACTIONS["compile"])

    async def action_test(self) -> None:
        await self._run_goals(GOAL_ACTIONS["test"])

    async def action_package(self) -> None:
        await self._run_goals(GOAL_ACTIONS["package"])

    def action_run_application(self) -> None:
        """Probe and launch in a worker so the UI keeps ticking meanwhile."""
        if self.tab.is_running:
            self.notify("A command is already running", severity="warning")
            return
        self.notify(f"Detecting how to run {self.tab.selected_module}…")
        self.run_worker(self._launch_application(), exclusive=True, group="launch")

    async def _launch_application(self) -> None:
        started = await self.tab.run_application()
        if not started:
            self.notify("Application was not started", severity="warning")
        self.output_view.refresh_output()
        self._update_status()

    async def action_kill(self) -> None:
        pid = self.tab.running_pid
        if not await self.tab.kill():
            self.notify("No command is running", severity="warning")
            return
        self.notify(f"Process {pid} killed", severity="warning")
        self.output_view.refresh_output()
        self._update_status()

    def action_toggle(self) -> None:
        focused = self.focused
        if not isinstance(focused, OptionList) or focused.highlighted is None:
            return
        if focused.id == "profiles" and self.tab.profiles:
            self.tab.toggle_profile(focused.highlighted)
            self._rebuild_profiles()
        elif focused.id == "flags":
            self.tab.toggle_flag(focused.highlighted)
            self._rebuild_flags()

    # =========================================================================
    # Search and scrolling
    # =========================================================================

    def action_start_search(self) -> None:
        search = self.query_one("#search", Input)
        search.add_class("visible")
        search.focus()

    def action_cancel_search(self) -> None:
        search = self.query_one("#search", Input)
        if search.has_class("visible"):
            search.remove_class("visible")
            self.output_view.focus()
        else:
            self.tab.clear_search()
        self.output_view.refresh_output()
        self._update_status()

    @on(Input.Submitted, "#search")
    def _search_submitted(self, event: Input.Submitted) -> None:
        try:
            self.tab.apply_search(event.value)
        except SearchError as e:
            self.notify(str(e), severity="error")
            return
        event.input.remove_class("visible")
        self.output_view.focus()
        self.output_view.refresh_output()
        self._update_status()

    def action_next_match(self) -> None:
        self.tab.next_match()
        self.output_view.refresh_output()
        self._update_status()

    def action_previous_match(self) -> None:
        self.tab.previous_match()
        self.output_view.refresh_output()
        self._update_status()

    def action_scroll_top(self) -> None:
        self.tab.scroll_to_start()
        self.output_view.refresh()

    def action_scroll_bottom(self) -> None:
        self.tab.scroll_to_end()
        self.output_view.refresh()

    def action_page_up(self) -> None:
        self.tab.scroll_pages(-1)
        self.output_view.refresh()

    def action_page_down(self) -> None:
        self.tab.scroll_pages(1)
        self.output_view.refresh()


def run_console(tab: ProjectTab, log_service: LogService | None = None) -> None:
    """Run the console until the operator quits."""
    ConsoleApp(tab, log_service).run()
