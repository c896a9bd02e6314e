"""Output viewport widget.

Renders the selected module's output of a ``ProjectTab`` as hard-wrapped
rows: each logical line is folded every ``width`` cells, which is the
same model ``OutputMetrics`` uses, so search rows and scroll offsets line
up with what is on screen. Search matches are highlighted and the
current match is emphasised.
"""

from __future__ import annotations

from bisect import bisect_right
from typing import TYPE_CHECKING

from rich.segment import Segment
from rich.style import Style
from rich.text import Text
from textual import events  # noqa: TC002 - Required at runtime for event handlers
from textual.strip import Strip
from textual.widget import Widget

if TYPE_CHECKING:
    from ui.project_tab import ProjectTab
    from ui.search import SearchMatch

MATCH_STYLE = Style(bgcolor="dark_goldenrod", color="black")
CURRENT_MATCH_STYLE = Style(bgcolor="yellow", color="black", bold=True)
STDERR_STYLE = Style(color="red")
SUCCESS_STYLE = Style(color="green", bold=True)
FAILURE_STYLE = Style(color="red", bold=True)
COMMAND_STYLE = Style(color="cyan", bold=True)

MOUSE_SCROLL_ROWS = 3


def line_style(text: str) -> Style | None:
    """Base style of a whole output line."""
    if text.startswith("[ERR] "):
        return STDERR_STYLE
    if text.startswith("✓"):
        return SUCCESS_STYLE
    if text.startswith(("✗", "⚠")):
        return FAILURE_STYLE
    if text.startswith("$ "):
        return COMMAND_STYLE
    return None


class OutputView(Widget):
    """Scrollable, search-aware view of a project tab's output.

    The tab owns the scroll offset; the widget only reads it. Call
    ``refresh_output()`` whenever the output or search state changes.
    """

    can_focus = True

    DEFAULT_CSS = """
    OutputView {
        background: $surface;
        color: $text;
        height: 1fr;
        width: 1fr;
    }

    OutputView:focus {
        background-tint: $foreground 3%;
    }
    """

    def __init__(
        self,
        tab: ProjectTab,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.tab = tab
        self._row_cache: dict[int, list[Strip]] = {}
        self._matches_by_line: dict[int, list[SearchMatch]] = {}

    def refresh_output(self) -> None:
        """Drop cached rows and repaint."""
        self._row_cache.clear()
        self._matches_by_line = {}
        state = self.tab.search.state
        if state is not None:
            for match in state.matches:
                self._matches_by_line.setdefault(match.line_index, []).append(match)
        self.refresh()

    def on_resize(self, event: events.Resize) -> None:
        self.tab.set_viewport(event.size.width, event.size.height)
        self.refresh_output()

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.tab.scroll_lines(-MOUSE_SCROLL_ROWS)
        self.refresh()
        event.stop()

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.tab.scroll_lines(MOUSE_SCROLL_ROWS)
        self.refresh()
        event.stop()

    def render_line(self, y: int) -> Strip:
        width = max(self.size.width, 1)
        output = self.tab.output
        metrics = output.metrics(self.tab.viewport.width)
        row = output.scroll_offset + y
        if row >= metrics.total_rows:
            return Strip.blank(width)

        line_index = bisect_right(metrics.line_start_rows, row) - 1
        rows = self._line_rows(line_index, metrics.display_lines[line_index], metrics.width)
        sub_row = row - metrics.line_start_rows[line_index]
        if sub_row >= len(rows):
            return Strip.blank(width)
        return rows[sub_row].extend_cell_length(width).crop(0, width)

    def _line_rows(self, line_index: int, text: str, width: int) -> list[Strip]:
        cached = self._row_cache.get(line_index)
        if cached is not None:
            return cached

        rendered = self._styled_text(line_index, text)
        segments = list(rendered.render(self.app.console))
        segments = [segment for segment in segments if segment.text != "\n"]
        strip = Strip(segments, rendered.cell_len)

        cell_length = strip.cell_length
        cuts = list(range(width, cell_length, width)) + [cell_length]
        rows = list(strip.divide(cuts)) if cell_length else [Strip([Segment("")], 0)]
        self._row_cache[line_index] = rows
        return rows

    def _styled_text(self, line_index: int, text: str) -> Text:
        rendered = Text(text, style=line_style(text) or "", no_wrap=True, end="")
        current = self.tab.search.current_match
        for match in self._matches_by_line.get(line_index, []):
            style = CURRENT_MATCH_STYLE if match == current else MATCH_STYLE
            rendered.stylize(style, match.start, match.end)
        return rendered
