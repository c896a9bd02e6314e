"""Tests for Maven command synthesis."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.command import (
    CommandSpec,
    build_command_spec,
    build_environment_overlay,
    extract_log4j_config_url,
    filter_framework_incompatible_flags,
    get_maven_command,
    is_exec_goal,
    is_framework_run_goal,
    parse_flag_parts,
)

ROOT = Path("/work/shop")


class TestGetMavenCommand:
    """Tests for executable resolution."""

    def test_posix_without_wrapper(self, tmp_path: Path) -> None:
        """Test the system mvn is used without a wrapper."""
        assert get_maven_command(tmp_path, platform="linux") == "mvn"

    def test_posix_with_wrapper(self, tmp_path: Path) -> None:
        """Test the project wrapper is preferred."""
        (tmp_path / "mvnw").write_text("#!/bin/sh\n")
        assert get_maven_command(tmp_path, platform="linux") == "./mvnw"

    def test_windows_without_wrapper(self, tmp_path: Path) -> None:
        """Test the Windows fallback has a .cmd suffix."""
        assert get_maven_command(tmp_path, platform="win32") == "mvn.cmd"

    def test_windows_wrapper_priority(self, tmp_path: Path) -> None:
        """Test mvnw.bat wins over mvnw.cmd and mvnw."""
        (tmp_path / "mvnw").write_text("")
        (tmp_path / "mvnw.cmd").write_text("")
        assert get_maven_command(tmp_path, platform="win32") == "mvnw.cmd"

        (tmp_path / "mvnw.bat").write_text("")
        assert get_maven_command(tmp_path, platform="win32") == "mvnw.bat"


class TestGoalDetection:
    """Tests for goal classification helpers."""

    @pytest.mark.parametrize(
        "goals",
        [
            ["spring-boot:run"],
            ["clean", "spring-boot:run"],
            ["org.springframework.boot:spring-boot-maven-plugin:3.2.0:run"],
        ],
    )
    def test_framework_run_goals(self, goals: list[str]) -> None:
        """Test framework run goals are recognized."""
        assert is_framework_run_goal(goals)

    def test_non_framework_goals(self) -> None:
        """Test other goals are not framework run goals."""
        assert not is_framework_run_goal(["clean", "install", "exec:java"])

    def test_exec_goal(self) -> None:
        """Test exec:java detection."""
        assert is_exec_goal(["-Dexec.mainClass=a.B", "exec:java"])
        assert is_exec_goal(["org.codehaus.mojo:exec-maven-plugin:3.1.0:java"])
        assert not is_exec_goal(["exec:exec"])


class TestFlagParsing:
    """Tests for flag splitting and filtering."""

    def test_single_token(self) -> None:
        """Test a plain flag yields itself."""
        assert parse_flag_parts("-DskipTests") == ["-DskipTests"]

    def test_whitespace_split(self) -> None:
        """Test flags with values split on whitespace."""
        assert parse_flag_parts("-T 4") == ["-T", "4"]

    def test_alias_after_comma_dropped(self) -> None:
        """Test copy-pasted aliases after a comma are dropped."""
        assert parse_flag_parts("-U, --update-snapshots") == ["-U"]

    def test_filter_drops_dependency_build_flags(self) -> None:
        """Test every also-make variant is removed, case-insensitively."""
        flags = ["--also-make", "-DskipTests", "--ALSO-MAKE-dependents", "-am, --also-make"]
        assert filter_framework_incompatible_flags(flags) == ["-DskipTests"]


class TestBuildCommandSpec:
    """Tests for build_command_spec argument ordering and rules."""

    def test_minimal_root_command(self) -> None:
        """Test a root-module command is just the goals."""
        spec = build_command_spec(ROOT, ".", ["clean", "install"])

        assert spec.args == ("clean", "install")
        assert spec.env == {}

    def test_none_module_means_root(self) -> None:
        """Test a missing module adds no selector."""
        assert build_command_spec(ROOT, None, ["compile"]).args == ("compile",)

    def test_full_ordering(self) -> None:
        """Test settings, profiles, module, flags, logging and goals order."""
        spec = build_command_spec(
            ROOT,
            "payments",
            ["clean", "install"],
            profiles=["dev", "!slow"],
            flags=["-DskipTests", "-T 4"],
            settings_path="/etc/m2/settings.xml",
            logging_overrides=[("com.example", "DEBUG")],
        )

        assert spec.args == (
            "--settings",
            "/etc/m2/settings.xml",
            "-P",
            "dev,!slow",
            "-pl",
            "payments",
            "-DskipTests",
            "-T",
            "4",
            "-Dlog4j.logger.com.example=DEBUG",
            "-Dlogging.level.com.example=DEBUG",
            "clean",
            "install",
        )

    def test_file_flag_with_exec_adds_also_make(self) -> None:
        """Test -f mode with exec:java adds --also-make exactly once."""
        spec = build_command_spec(
            ROOT, "payments", ["exec:java"], profiles=["dev"], use_file_flag=True
        )

        assert spec.args == (
            "-P",
            "dev",
            "-f",
            str(ROOT / "payments" / "pom.xml"),
            "--also-make",
            "exec:java",
        )

    def test_file_flag_with_existing_also_make(self) -> None:
        """Test --also-make is not duplicated when already enabled."""
        spec = build_command_spec(
            ROOT, "payments", ["exec:java"], flags=["--also-make"], use_file_flag=True
        )

        assert spec.args.count("--also-make") == 1

    def test_file_flag_without_exec(self) -> None:
        """Test -f mode for ordinary goals adds no extra flag."""
        spec = build_command_spec(ROOT, "payments", ["package"], use_file_flag=True)

        assert "--also-make" not in spec.args
        assert spec.args[:2] == ("-f", str(ROOT / "payments" / "pom.xml"))

    def test_file_flag_root_module(self) -> None:
        """Test the root module never gets a selector, even in -f mode."""
        spec = build_command_spec(ROOT, ".", ["exec:java"], use_file_flag=True)
        assert spec.args == ("exec:java",)

    @pytest.mark.parametrize("use_file_flag", [True, False])
    def test_framework_run_never_has_dependency_build(self, use_file_flag: bool) -> None:
        """Test spring-boot:run drops every dependency-build flag."""
        spec = build_command_spec(
            ROOT,
            "web",
            ["spring-boot:run"],
            flags=["--also-make", "--also-make-dependents", "-o"],
            use_file_flag=use_file_flag,
        )

        assert not any("also-make" in arg for arg in spec.args)
        assert "-o" in spec.args

    def test_logging_skipped_with_run_jvm_arguments(self) -> None:
        """Test logging overrides are not doubled when jvmArguments are present."""
        goals = [
            "-Dspring-boot.run.jvmArguments=-Dlogging.level.com.example=DEBUG",
            "spring-boot:run",
        ]
        spec = build_command_spec(
            ROOT,
            ".",
            goals,
            logging_overrides=[("com.example", "DEBUG")],
            log_format="%d %m%n",
        )

        assert spec.args == tuple(goals)

    def test_log_format_precedes_package_levels(self) -> None:
        """Test the format override is emitted before the package levels."""
        spec = build_command_spec(
            ROOT,
            ".",
            ["test"],
            logging_overrides=[("org.hibernate", "WARN")],
            log_format="[%p] %m%n",
        )

        assert spec.args == (
            "-Dlog4j.conversionPattern=[%p] %m%n",
            "-Dlogging.pattern.console=[%p] %m%n",
            "-Dlog4j.logger.org.hibernate=WARN",
            "-Dlogging.level.org.hibernate=WARN",
            "test",
        )

    def test_display(self) -> None:
        """Test the display string joins executable and arguments."""
        spec = build_command_spec(ROOT, "api", ["compile"])
        assert spec.display("mvn") == "mvn -pl api compile"

    def test_spec_is_immutable(self) -> None:
        """Test CommandSpec cannot be mutated after construction."""
        spec = build_command_spec(ROOT, "api", ["compile"])
        assert isinstance(spec, CommandSpec)
        with pytest.raises(AttributeError):
            spec.module = "other"  # type: ignore[misc]


class TestEnvironmentOverlay:
    """Tests for the bootstrap environment overlay."""

    def test_no_overlay_without_config_url(self) -> None:
        """Test plain goals need no environment."""
        assert build_environment_overlay(["spring-boot:run"]) == {}

    def test_overlay_from_exec_jvm_arguments(self) -> None:
        """Test the log4j URL is lifted into JAVA_TOOL_OPTIONS."""
        goals = [
            "-Drun.jvmArguments=-Xmx512m -Dlog4j.configuration=file:///tmp/log4j.properties",
            "exec:java",
        ]

        assert extract_log4j_config_url(goals) == "file:///tmp/log4j.properties"
        assert build_environment_overlay(goals) == {
            "JAVA_TOOL_OPTIONS": (
                "-Dlog4j.ignoreTCL=true -Dlog4j.defaultInitOverride=true "
                "-Dlog4j.configuration=file:///tmp/log4j.properties"
            )
        }

    def test_overlay_attached_to_spec(self) -> None:
        """Test build_command_spec computes the overlay."""
        spec = build_command_spec(
            ROOT,
            "web",
            [
                "-Dspring-boot.run.jvmArguments=-Dlog4j.configuration=file:///c/l.xml",
                "spring-boot:run",
            ],
        )

        assert "file:///c/l.xml" in spec.env["JAVA_TOOL_OPTIONS"]

    def test_config_outside_jvm_arguments_ignored(self) -> None:
        """Test a bare system property is not treated as bootstrap config."""
        assert build_environment_overlay(["-Dlog4j.configuration=file:///x", "test"]) == {}
