"""Tests for project and module discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.project import (
    ProjectNotFoundError,
    discover_modules,
    find_project_root,
    parse_modules,
)

AGGREGATOR_POM = """\
<project>
  <modules>
    <module>common</module>
    <!-- <module>legacy</module> -->
    <module> services/payments </module>
    <module>web</module>
  </modules>
</project>
"""


class TestFindProjectRoot:
    """Tests for find_project_root."""

    def test_finds_pom_in_start(self, tmp_path: Path) -> None:
        """Test the start directory itself is checked first."""
        (tmp_path / "pom.xml").write_text("<project/>")
        assert find_project_root(tmp_path) == tmp_path.resolve()

    def test_finds_pom_in_parent(self, tmp_path: Path) -> None:
        """Test parents are searched upward."""
        (tmp_path / "pom.xml").write_text("<project/>")
        nested = tmp_path / "web" / "src" / "main"
        nested.mkdir(parents=True)

        assert find_project_root(nested) == tmp_path.resolve()

    def test_nearest_pom_wins(self, tmp_path: Path) -> None:
        """Test a module POM is found before the aggregator."""
        (tmp_path / "pom.xml").write_text("<project/>")
        module = tmp_path / "web"
        module.mkdir()
        (module / "pom.xml").write_text("<project/>")

        assert find_project_root(module) == module.resolve()

    def test_missing_pom_raises(self, tmp_path: Path) -> None:
        """Test a directory tree without a POM raises."""
        with pytest.raises(ProjectNotFoundError, match="No pom.xml"):
            find_project_root(tmp_path)


class TestModules:
    """Tests for module parsing and discovery."""

    def test_parse_modules_skips_comments(self) -> None:
        """Test commented-out modules are ignored and whitespace trimmed."""
        assert parse_modules(AGGREGATOR_POM) == ["common", "services/payments", "web"]

    def test_discover_modules(self, tmp_path: Path) -> None:
        """Test modules are read from the root POM."""
        (tmp_path / "pom.xml").write_text(AGGREGATOR_POM)
        assert discover_modules(tmp_path) == ["common", "services/payments", "web"]

    def test_single_module_project(self, tmp_path: Path) -> None:
        """Test a project without modules exposes only the root."""
        (tmp_path / "pom.xml").write_text("<project><artifactId>app</artifactId></project>")
        assert discover_modules(tmp_path) == ["."]

    def test_unreadable_pom(self, tmp_path: Path) -> None:
        """Test a missing POM degrades to the root module."""
        assert discover_modules(tmp_path) == ["."]
