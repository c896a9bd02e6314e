"""Tests for CLI main module."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import yaml
from typer.testing import CliRunner

from cli.main import app
from core.models import MavenProfile
from core.profiles import ProfileLoadError

if TYPE_CHECKING:
    from pathlib import Path

runner = CliRunner()


class TestMainApp:
    """Tests for the main CLI application."""

    def test_version(self) -> None:
        """Test --version flag."""
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "mvnconsole" in result.stdout
        assert "version" in result.stdout

    def test_help(self) -> None:
        """Test --help flag."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Maven" in result.stdout

    def test_no_args_shows_help(self) -> None:
        """Test that no arguments shows help.

        Note: Typer returns exit code 2 when showing help due to no_args_is_help=True.
        """
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "Usage" in result.stdout


class TestCommandCommand:
    """Tests for the command preview."""

    def test_root_module(self, maven_project: Path) -> None:
        """Test the default preview compiles the project root."""
        result = runner.invoke(app, ["command", str(maven_project)])

        assert result.exit_code == 0
        assert result.stdout.strip() == "mvn compile"

    def test_module_profiles_and_flags(self, maven_project: Path) -> None:
        """Test options are assembled in Maven argument order."""
        result = runner.invoke(
            app,
            [
                "command",
                str(maven_project),
                "-m",
                "payments",
                "-g",
                "clean",
                "-g",
                "install",
                "-P",
                "dev",
                "-P",
                "!slow",
                "-F",
                "-DskipTests",
            ],
        )

        assert result.exit_code == 0
        assert result.stdout.strip() == "mvn -P dev,!slow -pl payments -DskipTests clean install"

    def test_file_flag_mode(self, maven_project: Path) -> None:
        """Test --use-file-flag selects the module by its POM."""
        result = runner.invoke(
            app,
            ["command", str(maven_project), "-m", "payments", "-g", "exec:java", "--use-file-flag"],
        )

        assert result.exit_code == 0
        pom = maven_project.resolve() / "payments" / "pom.xml"
        assert result.stdout.strip() == f"mvn -f {pom} --also-make exec:java"

    def test_wrapper_is_used(self, maven_project: Path) -> None:
        """Test a project wrapper replaces the system mvn."""
        (maven_project / "mvnw").write_text("#!/bin/sh\n")

        result = runner.invoke(app, ["command", str(maven_project), "-g", "test"])

        assert result.stdout.strip() == "./mvnw test"

    def test_env_overlay_printed(self, maven_project: Path) -> None:
        """Test the bootstrap environment is printed before the command."""
        result = runner.invoke(
            app,
            [
                "command",
                str(maven_project),
                "-g",
                "-Dspring-boot.run.jvmArguments=-Dlog4j.configuration=file:///l.xml",
                "-g",
                "spring-boot:run",
            ],
        )

        assert result.exit_code == 0
        first, second = result.stdout.strip().splitlines()
        assert first.startswith("JAVA_TOOL_OPTIONS=")
        assert second.endswith("spring-boot:run")

    def test_project_config_applies(self, maven_project: Path) -> None:
        """Test a project config file contributes logging overrides."""
        (maven_project / ".mvnconsole.yaml").write_text(
            yaml.dump({"logging": {"packages": [{"name": "com.shop", "level": "DEBUG"}]}})
        )

        result = runner.invoke(app, ["command", str(maven_project), "-g", "test"])

        assert result.exit_code == 0
        assert result.stdout.strip() == (
            "mvn -Dlog4j.logger.com.shop=DEBUG -Dlogging.level.com.shop=DEBUG test"
        )

    def test_missing_project(self, tmp_path: Path) -> None:
        """Test a directory without a POM fails."""
        result = runner.invoke(app, ["command", str(tmp_path)])

        assert result.exit_code == 1
        assert "No pom.xml" in result.stdout


class TestModulesCommand:
    """Tests for the modules command."""

    def test_lists_modules(self, maven_project: Path) -> None:
        """Test modules are printed one per line."""
        result = runner.invoke(app, ["modules", str(maven_project)])

        assert result.exit_code == 0
        assert result.stdout.split() == ["common", "payments"]

    def test_found_from_subdirectory(self, maven_project: Path) -> None:
        """Test the project root is found from inside a module."""
        nested = maven_project / "payments" / "src"
        nested.mkdir(parents=True)

        result = runner.invoke(app, ["modules", str(nested)])

        assert result.exit_code == 0
        assert "common" in result.stdout


class TestProfilesCommand:
    """Tests for the profiles command."""

    def test_table(self, maven_project: Path) -> None:
        """Test discovered profiles are shown in a table."""
        found = [MavenProfile("ci", auto_activated=True), MavenProfile("dev")]
        with patch("core.discover_profiles", AsyncMock(return_value=found)):
            result = runner.invoke(app, ["profiles", str(maven_project)])

        assert result.exit_code == 0
        assert "ci" in result.stdout
        assert "dev" in result.stdout

    def test_failure(self, maven_project: Path) -> None:
        """Test a failing Maven run exits non-zero."""
        discover = AsyncMock(side_effect=ProfileLoadError("mvn not found"))
        with patch("core.discover_profiles", discover):
            result = runner.invoke(app, ["profiles", str(maven_project)])

        assert result.exit_code == 1
        assert "mvn not found" in result.stdout


class TestConfigCommands:
    """Tests for configuration commands."""

    def test_path(self, isolated_config_dirs: Path) -> None:
        """Test the path honours XDG_CONFIG_HOME."""
        result = runner.invoke(app, ["config", "path"])

        assert result.exit_code == 0
        assert result.stdout.strip() == str(isolated_config_dirs / "mvnconsole" / "config.yaml")

    def test_init_then_exists(self, isolated_config_dirs: Path) -> None:
        """Test init creates the file once and refuses to overwrite."""
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 0
        assert (isolated_config_dirs / "mvnconsole" / "config.yaml").exists()

        result = runner.invoke(app, ["config", "init"])
        assert "already exists" in result.stdout

    def test_show(self) -> None:
        """Test show prints the effective configuration."""
        result = runner.invoke(app, ["config", "show"])

        assert result.exit_code == 0
        assert "launch_mode: auto" in result.stdout
