"""Tests for module output buffers and wrap metrics."""

from __future__ import annotations

from ui.output import (
    ModuleOutput,
    OutputBuffer,
    OutputMetrics,
    Viewport,
    clean_log_line,
    column_for_index,
    visual_rows,
)


class TestCleanLogLine:
    """Tests for clean_log_line."""

    def test_strips_color_codes(self) -> None:
        """Test SGR sequences are removed."""
        assert clean_log_line("\x1b[1;31mERROR\x1b[0m build failed") == "ERROR build failed"

    def test_strips_osc_and_carriage_returns(self) -> None:
        """Test titles and CR characters are removed, trailing space trimmed."""
        assert clean_log_line("\x1b]0;mvn\x07Downloading\r   ") == "Downloading"

    def test_keeps_leading_whitespace(self) -> None:
        """Test indentation survives so columns stay aligned."""
        assert clean_log_line("    at com.example.Main") == "    at com.example.Main"


class TestWrapMetrics:
    """Tests for visual row computation."""

    def test_empty_line_occupies_one_row(self) -> None:
        """Test blank lines still take a row."""
        assert visual_rows("", 80) == 1

    def test_exact_fit(self) -> None:
        """Test a line exactly as wide as the viewport takes one row."""
        assert visual_rows("x" * 80, 80) == 1
        assert visual_rows("x" * 81, 80) == 2

    def test_wide_characters(self) -> None:
        """Test double-width characters count as two cells."""
        assert visual_rows("界" * 5, 4) == 3
        assert column_for_index("ab界cd", 3) == 4

    def test_compute_line_start_rows(self) -> None:
        """Test each line starts after the rows of the previous ones."""
        metrics = OutputMetrics.compute(["short", "x" * 25, "", "\x1b[32mok\x1b[0m"], 10)

        assert metrics.line_start_rows == [0, 1, 4, 5]
        assert metrics.total_rows == 6
        assert metrics.display_lines[3] == "ok"

    def test_row_for_position(self) -> None:
        """Test a character on a wrapped row maps to that row."""
        metrics = OutputMetrics.compute(["abc", "ab界cd" + "y" * 10], 4)

        assert metrics.row_for_position(1, 0) == 1
        assert metrics.row_for_position(1, 3) == 2
        assert metrics.row_for_position(1, 8) == 3


class TestModuleOutput:
    """Tests for ModuleOutput."""

    def test_eviction_keeps_newest_lines(self) -> None:
        """Test the buffer never exceeds its cap and drops the oldest lines."""
        output = ModuleOutput(max_lines=10_000)

        evicted = output.extend([f"line {i}" for i in range(1, 12_006)])

        assert evicted == 2_005
        assert len(output) == 10_000
        assert output.lines[0] == "line 2006"
        assert output.lines[-1] == "line 12005"

    def test_metrics_extended_incrementally(self) -> None:
        """Test cached metrics follow appends without a full recompute."""
        output = ModuleOutput(max_lines=100)
        output.extend(["a", "b"])
        metrics = output.metrics(80)

        output.append("c" * 100)

        assert output.metrics(80) is metrics
        assert metrics.total_rows == 4

    def test_eviction_invalidates_metrics(self) -> None:
        """Test evicting lines recomputes metrics from the remaining lines."""
        output = ModuleOutput(max_lines=2)
        output.extend(["a", "b"])
        stale = output.metrics(80)

        output.append("c")

        fresh = output.metrics(80)
        assert fresh is not stale
        assert fresh.display_lines == ["b", "c"]

    def test_width_change_recomputes(self) -> None:
        """Test metrics are recomputed for a different width."""
        output = ModuleOutput()
        output.append("x" * 20)

        assert output.metrics(80).total_rows == 1
        assert output.metrics(10).total_rows == 2

    def test_scroll_is_clamped(self) -> None:
        """Test scrolling stays within the scrollable range."""
        output = ModuleOutput()
        output.extend([str(i) for i in range(30)])
        viewport = Viewport(80, 10)

        output.scroll_to(100, viewport)
        assert output.scroll_offset == 20
        assert output.is_at_bottom(viewport)

        output.scroll_by(-50, viewport)
        assert output.scroll_offset == 0
        assert not output.is_at_bottom(viewport)

    def test_short_output_is_at_bottom(self) -> None:
        """Test output shorter than the viewport cannot scroll."""
        output = ModuleOutput()
        output.extend(["a", "b"])
        viewport = Viewport(80, 24)

        output.scroll_to_end(viewport)

        assert output.max_scroll(viewport) == 0
        assert output.scroll_offset == 0

    def test_clear_and_command_metadata(self) -> None:
        """Test clearing resets lines and scroll while metadata is replaced."""
        output = ModuleOutput()
        output.set_command("clean install", ["dev"], ["-o"])
        output.extend(["a"] * 50)
        output.scroll_offset = 10

        output.clear()
        output.set_command("test", [], [])

        assert output.lines == []
        assert output.scroll_offset == 0
        assert (output.command, output.profiles, output.flags) == ("test", [], [])


class TestOutputBuffer:
    """Tests for OutputBuffer."""

    def test_outputs_created_on_demand(self) -> None:
        """Test each module gets its own output with the shared cap."""
        buffer = OutputBuffer(max_lines=5)

        assert "web" not in buffer
        assert buffer.get("web") is None

        web = buffer.output_for("web")
        assert buffer.output_for("web") is web
        assert web.max_lines == 5
        assert buffer.output_for("api") is not web
        assert buffer.modules() == ["web", "api"]

    def test_viewport_minimum_size(self) -> None:
        """Test a collapsed viewport is clamped to one cell."""
        viewport = Viewport(0, -3)
        assert (viewport.width, viewport.height) == (1, 1)
