"""mvnconsole Core Library.

Core library driving Maven as a supervised subprocess: command synthesis,
launch strategy detection, process supervision and profile discovery.

This package has no terminal UI dependencies; the ``ui`` and ``cli``
subprojects build on it.

Module Overview:
    command: Maven argument vector and environment overlay synthesis
    config: YAML configuration under the XDG base directories
    launch: Launch strategy resolution from the effective POM
    log_service: File logging service with an explicit start/shutdown lifecycle
    models: Pydantic configuration models, profiles and build flags
    process: Process-group supervision, kill and output capture
    profiles: Profile discovery and the background ProfileLoader
    project: Project root and module discovery
    streaming: Output events and the event channel
"""

from importlib.metadata import version as get_package_version

from core.command import CommandSpec, build_command_spec, get_maven_command
from core.config import (
    ConfigError,
    ConfigManager,
    YamlConfigLoader,
    get_config_dir,
    get_default_config_path,
    get_default_log_path,
)
from core.launch import (
    CapabilityProbe,
    LaunchStrategy,
    ProbeError,
    build_launch_goals,
    build_launcher_jvm_args,
    decide_launch_strategy,
    parse_effective_pom,
    probe_capabilities,
)
from core.log_service import LogService
from core.models import (
    BuildFlag,
    ConsoleConfig,
    CustomFlag,
    LaunchMode,
    LoggingConfig,
    LogLevel,
    MavenProfile,
    OutputConfig,
    PackageLogLevel,
    ProfileState,
    default_build_flags,
)
from core.process import (
    CommandTimeoutError,
    KillError,
    ProcessError,
    ProcessHandle,
    ProcessSupervisor,
    SpawnError,
    kill_process_group,
    run_maven_capture,
)
from core.profiles import (
    LoadingState,
    LoadingStatus,
    ProfileLoader,
    ProfileLoadError,
    discover_profiles,
)
from core.project import ProjectNotFoundError, discover_modules, find_project_root
from core.streaming import (
    ChannelClosedError,
    Completed,
    Error,
    EventChannel,
    OutputEvent,
    OutputLine,
    Started,
    is_terminal,
)

__version__ = get_package_version("mvnconsole")

__all__ = [
    "BuildFlag",
    "CapabilityProbe",
    "ChannelClosedError",
    "CommandSpec",
    "CommandTimeoutError",
    "Completed",
    "ConfigError",
    "ConfigManager",
    "ConsoleConfig",
    "CustomFlag",
    "Error",
    "EventChannel",
    "KillError",
    "LaunchMode",
    "LaunchStrategy",
    "LoadingState",
    "LoadingStatus",
    "LogLevel",
    "LogService",
    "LoggingConfig",
    "MavenProfile",
    "OutputConfig",
    "OutputEvent",
    "OutputLine",
    "PackageLogLevel",
    "ProbeError",
    "ProcessError",
    "ProcessHandle",
    "ProcessSupervisor",
    "ProfileLoadError",
    "ProfileLoader",
    "ProfileState",
    "ProjectNotFoundError",
    "SpawnError",
    "Started",
    "YamlConfigLoader",
    "build_command_spec",
    "build_launch_goals",
    "build_launcher_jvm_args",
    "decide_launch_strategy",
    "default_build_flags",
    "discover_modules",
    "discover_profiles",
    "find_project_root",
    "get_config_dir",
    "get_default_config_path",
    "get_default_log_path",
    "get_maven_command",
    "is_terminal",
    "kill_process_group",
    "parse_effective_pom",
    "probe_capabilities",
    "run_maven_capture",
]
