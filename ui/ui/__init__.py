"""mvnconsole UI package.

Textual terminal UI for driving Maven builds of a project.

Module Overview:
    output: Bounded per-module output buffers and line-wrap metrics
    search: Regex search over output with row mapping and centering
    pump: Per-tick draining of process events into module output
    project_tab: Per-project state (profiles, flags, outputs, running command)
    output_view: Textual widget rendering wrapped output with search highlights
    app: The Textual console application
"""

from ui.app import ConsoleApp, run_console
from ui.output import (
    ModuleOutput,
    OutputBuffer,
    OutputMetrics,
    Viewport,
    clean_log_line,
    column_for_index,
    visual_rows,
)
from ui.output_view import OutputView
from ui.project_tab import ProjectTab
from ui.pump import ActiveRun, Notification, PumpResult, UpdatePump
from ui.search import (
    SearchEngine,
    SearchError,
    SearchMatch,
    SearchState,
    center_offset,
    collect_matches,
    compile_pattern,
)

__all__ = [
    "ActiveRun",
    "ConsoleApp",
    "ModuleOutput",
    "Notification",
    "OutputBuffer",
    "OutputMetrics",
    "OutputView",
    "ProjectTab",
    "PumpResult",
    "SearchEngine",
    "SearchError",
    "SearchMatch",
    "SearchState",
    "UpdatePump",
    "Viewport",
    "center_offset",
    "clean_log_line",
    "collect_matches",
    "column_for_index",
    "compile_pattern",
    "run_console",
    "visual_rows",
]
