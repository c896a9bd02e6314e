"""Core data models for mvnconsole.

This module defines Pydantic models for configuration and the plain
dataclasses describing the per-tab build state (profiles and flags).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path  # noqa: TC003 - needed at runtime by Pydantic

from pydantic import BaseModel, Field


class LogLevel(str, Enum):
    """Log level for the application log file."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LaunchMode(str, Enum):
    """User override for how runnable modules are launched."""

    AUTO = "auto"
    FORCE_RUN = "force-run"
    FORCE_EXEC = "force-exec"


class PackageLogLevel(BaseModel):
    """Logging level override for a single Java package."""

    name: str = Field(..., description="Java package or logger name")
    level: str = Field(..., description="Level understood by the logging framework")


class LoggingConfig(BaseModel):
    """Logging overrides injected into Maven invocations."""

    packages: list[PackageLogLevel] = Field(
        default_factory=list, description="Per-package logging level overrides"
    )
    log_format: str | None = Field(default=None, description="Console log pattern override")
    log4j_config: Path | None = Field(
        default=None, description="Log4j configuration file used when launching applications"
    )

    def overrides(self) -> list[tuple[str, str]]:
        """Return the overrides as (package, level) pairs."""
        return [(pkg.name, pkg.level) for pkg in self.packages]


class OutputConfig(BaseModel):
    """Limits for the live output buffer."""

    max_lines: int = Field(default=10_000, ge=1, description="Lines kept per module output")
    max_updates_per_poll: int = Field(
        default=100, ge=1, description="Events drained from the process channel per UI tick"
    )


class CustomFlag(BaseModel):
    """A user-defined build flag appended to the built-in flag list."""

    name: str = Field(..., description="Label shown in the flags list")
    flag: str = Field(..., description="Raw flag text passed to Maven")
    enabled: bool = Field(default=False, description="Whether the flag starts enabled")


class ConsoleConfig(BaseModel):
    """Complete application configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Application log level")
    log_file: Path | None = Field(default=None, description="Path to the application log file")
    maven_settings: str | None = Field(default=None, description="Maven settings.xml path")
    launch_mode: LaunchMode = Field(default=LaunchMode.AUTO, description="Launch strategy override")
    use_file_flag: bool = Field(
        default=False, description="Select modules with -f <module>/pom.xml instead of -pl"
    )
    notifications_enabled: bool = Field(
        default=True, description="Notify when a command completes or fails"
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    custom_flags: list[CustomFlag] = Field(default_factory=list)


class ProfileState(str, Enum):
    """Activation state of a Maven profile."""

    DEFAULT = "default"
    EXPLICITLY_ENABLED = "enabled"
    EXPLICITLY_DISABLED = "disabled"


@dataclass
class MavenProfile:
    """A Maven profile with tri-state activation.

    Profiles in the DEFAULT state follow Maven's own activation rules, so
    they are active exactly when Maven auto-activates them. Explicit states
    are passed to Maven as ``name`` or ``!name``.
    """

    name: str
    auto_activated: bool = False
    state: ProfileState = ProfileState.DEFAULT

    def is_active(self) -> bool:
        """Whether the profile will be active when Maven runs."""
        if self.state is ProfileState.EXPLICITLY_ENABLED:
            return True
        if self.state is ProfileState.EXPLICITLY_DISABLED:
            return False
        return self.auto_activated

    def to_maven_arg(self) -> str | None:
        """Return the -P token for this profile, or None in the DEFAULT state."""
        if self.state is ProfileState.EXPLICITLY_ENABLED:
            return self.name
        if self.state is ProfileState.EXPLICITLY_DISABLED:
            return f"!{self.name}"
        return None

    def toggle(self) -> None:
        """Cycle DEFAULT -> (DISABLED if auto-activated else ENABLED) -> DEFAULT."""
        if self.state is ProfileState.DEFAULT:
            self.state = (
                ProfileState.EXPLICITLY_DISABLED
                if self.auto_activated
                else ProfileState.EXPLICITLY_ENABLED
            )
        else:
            self.state = ProfileState.DEFAULT


@dataclass
class BuildFlag:
    """A toggleable Maven command-line flag."""

    name: str
    flag: str
    enabled: bool = False

    def toggle(self) -> None:
        self.enabled = not self.enabled


def default_build_flags(custom_flags: list[CustomFlag] | None = None) -> list[BuildFlag]:
    """Create the built-in flag list followed by any configured custom flags."""
    flags = [
        BuildFlag("Work offline", "-o"),
        BuildFlag("Force update snapshots", "-U"),
        BuildFlag("Debug output", "-X"),
        BuildFlag("Skip tests", "-DskipTests"),
        BuildFlag("Build with 4 threads", "-T 4"),
        BuildFlag("Build dependencies", "--also-make"),
        BuildFlag("Build dependents", "--also-make-dependents"),
    ]
    for custom in custom_flags or []:
        flags.append(BuildFlag(custom.name, custom.flag, custom.enabled))
    return flags
