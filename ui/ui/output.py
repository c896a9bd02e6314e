"""Bounded per-module output buffers and line-wrap metrics.

Each module of a project tab owns a ``ModuleOutput``: the lines of its
last command, the operator's scroll position and the metadata of the
command that produced them. ``OutputMetrics`` maps logical lines to
visual rows for a given viewport width, accounting for wide characters.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field

import structlog
from rich.cells import cell_len

logger = structlog.get_logger(__name__)

DEFAULT_MAX_LINES = 10_000

# CSI sequences (colors, cursor movement) and OSC sequences (titles, links)
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")


def clean_log_line(line: str) -> str:
    """Strip ANSI escapes, carriage returns and trailing whitespace."""
    return ANSI_ESCAPE_RE.sub("", line).replace("\r", "").rstrip()


def visual_rows(text: str, width: int) -> int:
    """Number of viewport rows a line occupies when wrapped at ``width`` cells."""
    width = max(width, 1)
    return max(1, math.ceil(cell_len(text) / width))


def column_for_index(text: str, index: int) -> int:
    """Display column of the character at ``index``."""
    return cell_len(text[:index])


@dataclass
class Viewport:
    """Size of the output area in terminal cells."""

    width: int = 80
    height: int = 24

    def __post_init__(self) -> None:
        self.width = max(self.width, 1)
        self.height = max(self.height, 1)


@dataclass
class OutputMetrics:
    """Wrap metrics of a list of lines at a fixed width.

    Attributes:
        width: Viewport width the metrics were computed for.
        display_lines: Cleaned text of every line.
        line_start_rows: Visual row at which each line starts.
        total_rows: Total number of visual rows.
    """

    width: int
    display_lines: list[str] = field(default_factory=list)
    line_start_rows: list[int] = field(default_factory=list)
    total_rows: int = 0

    @classmethod
    def compute(cls, lines: list[str], width: int) -> OutputMetrics:
        metrics = cls(width=max(width, 1))
        for line in lines:
            metrics.append(line)
        return metrics

    def append(self, line: str) -> None:
        """Extend the metrics by one raw line."""
        text = clean_log_line(line)
        self.display_lines.append(text)
        self.line_start_rows.append(self.total_rows)
        self.total_rows += visual_rows(text, self.width)

    def row_for_position(self, line_index: int, char_index: int) -> int:
        """Visual row of a character within a logical line."""
        text = self.display_lines[line_index]
        return self.line_start_rows[line_index] + column_for_index(text, char_index) // self.width


class ModuleOutput:
    """Output of the commands run for one module.

    Lines are capped at ``max_lines``; the oldest excess lines are removed
    in one slice deletion. Wrap metrics are cached per width, extended on
    append and dropped when lines are evicted.
    """

    def __init__(self, max_lines: int = DEFAULT_MAX_LINES) -> None:
        self.max_lines = max(max_lines, 1)
        self.lines: list[str] = []
        self.scroll_offset = 0
        self.command: str | None = None
        self.profiles: list[str] = []
        self.flags: list[str] = []
        self._metrics: OutputMetrics | None = None

    def __len__(self) -> int:
        return len(self.lines)

    def append(self, line: str) -> int:
        """Append a line and evict the oldest excess lines.

        Returns:
            Number of lines evicted.
        """
        self.lines.append(line)
        excess = len(self.lines) - self.max_lines
        if excess > 0:
            del self.lines[:excess]
            self._metrics = None
            logger.debug("output_trimmed", excess=excess, max_lines=self.max_lines)
            return excess
        if self._metrics is not None:
            self._metrics.append(line)
        return 0

    def extend(self, lines: list[str]) -> int:
        return sum(self.append(line) for line in lines)

    def clear(self) -> None:
        self.lines.clear()
        self.scroll_offset = 0
        self._metrics = None

    def set_command(self, command: str, profiles: list[str], flags: list[str]) -> None:
        """Record what produced the current output, replacing earlier metadata."""
        self.command = command
        self.profiles = list(profiles)
        self.flags = list(flags)

    def invalidate_metrics(self) -> None:
        self._metrics = None

    def metrics(self, width: int) -> OutputMetrics:
        """Wrap metrics for ``width``, recomputed only when stale."""
        width = max(width, 1)
        if self._metrics is None or self._metrics.width != width:
            self._metrics = OutputMetrics.compute(self.lines, width)
        return self._metrics

    def max_scroll(self, viewport: Viewport) -> int:
        return max(0, self.metrics(viewport.width).total_rows - viewport.height)

    def is_at_bottom(self, viewport: Viewport) -> bool:
        return self.scroll_offset >= self.max_scroll(viewport)

    def scroll_to(self, offset: int, viewport: Viewport) -> None:
        """Set the scroll offset, clamped to the scrollable range."""
        self.scroll_offset = min(max(0, offset), self.max_scroll(viewport))

    def scroll_by(self, rows: int, viewport: Viewport) -> None:
        self.scroll_to(self.scroll_offset + rows, viewport)

    def scroll_to_end(self, viewport: Viewport) -> None:
        self.scroll_offset = self.max_scroll(viewport)

    def clamp_scroll(self, viewport: Viewport) -> None:
        self.scroll_to(self.scroll_offset, viewport)


class OutputBuffer:
    """Module name to ``ModuleOutput`` map owned by one project tab."""

    def __init__(self, max_lines: int = DEFAULT_MAX_LINES) -> None:
        self.max_lines = max_lines
        self._outputs: dict[str, ModuleOutput] = {}

    def __contains__(self, module: str) -> bool:
        return module in self._outputs

    def get(self, module: str) -> ModuleOutput | None:
        return self._outputs.get(module)

    def output_for(self, module: str) -> ModuleOutput:
        """Return the output of a module, creating it on first use."""
        output = self._outputs.get(module)
        if output is None:
            output = ModuleOutput(self.max_lines)
            self._outputs[module] = output
        return output

    def modules(self) -> list[str]:
        return list(self._outputs)
