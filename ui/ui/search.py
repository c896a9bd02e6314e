"""Incremental regex search over streamed output.

Matches are collected over the cleaned text of every buffer line and
recomputed from scratch whenever the buffer changes. Positions are
character indices into the cleaned text; ``OutputMetrics`` converts them
to visual rows so the viewport can be centered on the current match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from ui.output import clean_log_line

if TYPE_CHECKING:
    from ui.output import OutputMetrics

logger = structlog.get_logger(__name__)


class SearchError(Exception):
    """Raised when a search pattern does not compile."""


@dataclass(frozen=True)
class SearchMatch:
    """A match span within one cleaned output line."""

    line_index: int
    start: int
    end: int


@dataclass
class SearchState:
    """Active query, its matches in line-then-position order, and the cursor."""

    query: str
    pattern: re.Pattern[str]
    matches: list[SearchMatch] = field(default_factory=list)
    current: int = 0

    @property
    def current_match(self) -> SearchMatch | None:
        if not self.matches:
            return None
        return self.matches[self.current]

    def clamp(self) -> None:
        if not self.matches:
            self.current = 0
        elif self.current >= len(self.matches):
            self.current = len(self.matches) - 1


def compile_pattern(query: str) -> re.Pattern[str]:
    """Compile a search query.

    Raises:
        SearchError: If the query is empty or not a valid regular expression.
    """
    if not query:
        raise SearchError("Empty search pattern")
    try:
        return re.compile(query)
    except re.error as e:
        raise SearchError(f"Invalid pattern: {e}") from e


def collect_matches(pattern: re.Pattern[str], lines: list[str]) -> list[SearchMatch]:
    """Find every non-empty match on every line."""
    matches: list[SearchMatch] = []
    for index, line in enumerate(lines):
        text = clean_log_line(line)
        for found in pattern.finditer(text):
            if found.end() > found.start():
                matches.append(SearchMatch(index, found.start(), found.end()))
    return matches


def center_offset(row: int, height: int, total_rows: int) -> int:
    """Scroll offset that puts ``row`` in the middle of the viewport."""
    return min(max(0, row - height // 2), max(0, total_rows - height))


class SearchEngine:
    """Search state for one project tab.

    A failed ``apply`` leaves the previous state untouched, so an operator
    typo never loses the current search.
    """

    def __init__(self) -> None:
        self.state: SearchState | None = None

    @property
    def active(self) -> bool:
        return self.state is not None

    @property
    def match_count(self) -> int:
        return len(self.state.matches) if self.state else 0

    @property
    def current_match(self) -> SearchMatch | None:
        return self.state.current_match if self.state else None

    def apply(self, query: str, lines: list[str]) -> SearchState:
        """Start a new search over ``lines``.

        Raises:
            SearchError: If the query does not compile.
        """
        pattern = compile_pattern(query)
        state = SearchState(query=query, pattern=pattern, matches=collect_matches(pattern, lines))
        self.state = state
        logger.debug("search_applied", query=query, matches=len(state.matches))
        return state

    def refresh(self, lines: list[str]) -> None:
        """Recompute matches after the buffer changed and clamp the cursor."""
        if self.state is None:
            return
        self.state.matches = collect_matches(self.state.pattern, lines)
        self.state.clamp()

    def clear(self) -> None:
        self.state = None

    def next(self) -> SearchMatch | None:
        """Move to the next match, wrapping to the first."""
        if not self.state or not self.state.matches:
            return None
        self.state.current = (self.state.current + 1) % len(self.state.matches)
        return self.state.current_match

    def previous(self) -> SearchMatch | None:
        """Move to the previous match, wrapping to the last."""
        if not self.state or not self.state.matches:
            return None
        self.state.current = (self.state.current - 1) % len(self.state.matches)
        return self.state.current_match

    def target_row(self, metrics: OutputMetrics) -> int | None:
        """Visual row of the current match."""
        match = self.current_match
        if match is None or match.line_index >= len(metrics.display_lines):
            return None
        return metrics.row_for_position(match.line_index, match.start)

    def scroll_offset_for_current(self, metrics: OutputMetrics, height: int) -> int | None:
        """Scroll offset centering the current match, or None without a match."""
        row = self.target_row(metrics)
        if row is None:
            return None
        return center_offset(row, height, metrics.total_rows)

    def status(self) -> str:
        """Short status text such as ``"3/12 matches"``."""
        if self.state is None:
            return ""
        if not self.state.matches:
            return f"/{self.state.query}: no matches"
        return f"/{self.state.query}: {self.state.current + 1}/{len(self.state.matches)} matches"
