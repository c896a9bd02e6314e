"""Launch strategy resolution for runnable modules.

A module can be launched either through the Spring Boot Maven plugin
(``spring-boot:run``) or through the exec plugin (``exec:java``). Which
one works depends on the module's packaging and plugins, which are
probed from the effective POM.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from .command import build_command_spec, get_maven_command
from .models import LaunchMode
from .process import ProcessError, run_maven_capture

if TYPE_CHECKING:
    from pathlib import Path

    from .models import LoggingConfig

logger = structlog.get_logger(__name__)

EFFECTIVE_POM_GOAL = "help:effective-pom"
PROBE_TIMEOUT_SECONDS = 60.0

FRAMEWORK_PACKAGINGS = frozenset({"jar", "war"})

MAIN_CLASS_PROPERTIES = (
    "spring-boot.run.mainClass",
    "spring-boot.main-class",
    "start-class",
)


class ProbeError(Exception):
    """Raised when the effective POM cannot be obtained."""


class LaunchStrategy(str, Enum):
    """How a runnable module is started."""

    FRAMEWORK_RUN = "framework-run"
    GENERIC_EXEC = "generic-exec"
    # Reserved: launching through an external IDE is not supported
    EXTERNAL_IDE = "external-ide"


@dataclass(frozen=True)
class CapabilityProbe:
    """What the effective POM says about a module.

    All fields are best-effort; an empty probe means nothing is known.
    """

    has_framework_plugin: bool = False
    has_exec_plugin: bool = False
    main_class: str | None = None
    packaging: str | None = None

    @property
    def can_use_framework_run(self) -> bool:
        """The framework plugin is present and the packaging can be run by it."""
        return self.has_framework_plugin and (
            self.packaging is None or self.packaging in FRAMEWORK_PACKAGINGS
        )

    @property
    def should_prefer_framework_run(self) -> bool:
        """War modules miss servlet classes on the exec classpath."""
        return self.packaging == "war" and self.has_framework_plugin

    @property
    def can_use_exec(self) -> bool:
        return self.has_exec_plugin or self.main_class is not None


def decide_launch_strategy(probe: CapabilityProbe, mode: LaunchMode) -> LaunchStrategy:
    """Choose the launch strategy for a module.

    Args:
        probe: Capabilities detected for the module.
        mode: User override; AUTO lets the probe decide.

    Returns:
        The strategy to launch with.
    """
    if mode is LaunchMode.FORCE_RUN:
        return LaunchStrategy.FRAMEWORK_RUN
    if mode is LaunchMode.FORCE_EXEC:
        return LaunchStrategy.GENERIC_EXEC

    if probe.should_prefer_framework_run:
        logger.debug("launch_strategy_war_framework", packaging=probe.packaging)
        return LaunchStrategy.FRAMEWORK_RUN
    if probe.can_use_framework_run:
        return LaunchStrategy.FRAMEWORK_RUN
    if probe.can_use_exec:
        return LaunchStrategy.GENERIC_EXEC

    logger.warning(
        "launch_strategy_fallback",
        strategy=LaunchStrategy.FRAMEWORK_RUN.value,
        packaging=probe.packaging,
    )
    return LaunchStrategy.FRAMEWORK_RUN


def _tag_value(line: str, tag: str) -> str | None:
    """Return the text of ``<tag>value</tag>`` if the line holds exactly that element."""
    start = f"<{tag}>"
    end = f"</{tag}>"
    if line.startswith(start) and line.endswith(end):
        return line[len(start) : -len(end)].strip()
    return None


def parse_effective_pom(text: str) -> CapabilityProbe:
    """Scan effective POM text for packaging, plugins and the main class.

    This is a line-based text scan, not an XML parse: Maven's output may
    contain log lines around the XML, and only a handful of markers matter.
    """
    packaging: str | None = None
    has_framework_plugin = False
    has_exec_plugin = False
    main_class: str | None = None

    in_plugins = False
    in_plugin = False
    in_configuration = False

    for raw in text.splitlines():
        line = raw.strip()

        if line == "<plugins>":
            in_plugins = True
        elif line == "</plugins>":
            in_plugins = False
        elif in_plugins and line == "<plugin>":
            in_plugin = True
        elif line == "</plugin>":
            in_plugin = False
            in_configuration = False
        elif in_plugin and line == "<configuration>":
            in_configuration = True
        elif line == "</configuration>":
            in_configuration = False

        value = _tag_value(line, "packaging")
        if value:
            packaging = value

        if in_plugin:
            artifact = _tag_value(line, "artifactId")
            if artifact == "spring-boot-maven-plugin":
                has_framework_plugin = True
            elif artifact == "exec-maven-plugin":
                has_exec_plugin = True

        if in_configuration:
            value = _tag_value(line, "mainClass") or _tag_value(line, "main-class")
            if value:
                main_class = value

        if main_class is None:
            for prop in MAIN_CLASS_PROPERTIES:
                value = _tag_value(line, prop)
                if value:
                    main_class = value
                    break

    return CapabilityProbe(
        has_framework_plugin=has_framework_plugin,
        has_exec_plugin=has_exec_plugin,
        main_class=main_class,
        packaging=packaging,
    )


async def fetch_effective_pom(
    project_root: Path,
    module: str | None,
    settings_path: str | None = None,
    *,
    use_file_flag: bool = False,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> str:
    """Run ``help:effective-pom`` for a module and return its stdout.

    Raises:
        ProbeError: If Maven cannot be run, times out or exits non-zero.
    """
    spec = build_command_spec(
        project_root,
        module,
        [EFFECTIVE_POM_GOAL],
        settings_path=settings_path,
        use_file_flag=use_file_flag,
    )
    argv = [get_maven_command(project_root), *spec.args]
    try:
        return_code, stdout, stderr = await run_maven_capture(argv, project_root, timeout)
    except ProcessError as e:
        raise ProbeError(str(e)) from e

    if return_code != 0:
        raise ProbeError(f"{EFFECTIVE_POM_GOAL} exited with code {return_code}: {stderr.strip()}")
    return stdout


async def probe_capabilities(
    project_root: Path,
    module: str | None,
    settings_path: str | None = None,
    *,
    use_file_flag: bool = False,
    timeout: float = PROBE_TIMEOUT_SECONDS,
) -> CapabilityProbe:
    """Detect the launch capabilities of a module.

    Never raises: a failed probe yields an empty ``CapabilityProbe`` so the
    resolver falls back to the framework run strategy.
    """
    log = logger.bind(module=module)
    try:
        text = await fetch_effective_pom(
            project_root, module, settings_path, use_file_flag=use_file_flag, timeout=timeout
        )
    except ProbeError as e:
        log.warning("capability_probe_failed", error=str(e))
        return CapabilityProbe()

    probe = parse_effective_pom(text)
    log.info(
        "capability_probe_completed",
        packaging=probe.packaging,
        framework_plugin=probe.has_framework_plugin,
        exec_plugin=probe.has_exec_plugin,
        main_class=probe.main_class,
    )
    return probe


def build_launcher_jvm_args(logging_config: LoggingConfig) -> list[str]:
    """Derive the JVM arguments of a launched application from logging settings."""
    args: list[str] = []
    for package, level in logging_config.overrides():
        args.append(f"-Dlogging.level.{package}={level}")
        args.append(f"-Dlog4j.logger.{package}={level}")

    if logging_config.log4j_config is not None:
        config_url = logging_config.log4j_config.expanduser().resolve().as_uri()
        args.extend(
            [
                "-Dlog4j.ignoreTCL=true",
                "-Dlog4j.defaultInitOverride=true",
                "-Dlog4j.configuratorClass=org.apache.log4j.PropertyConfigurator",
                f"-Dlog4j.configuration={config_url}",
            ]
        )
    return args


def build_launch_goals(
    strategy: LaunchStrategy,
    main_class: str | None,
    profiles: list[str],
    jvm_args: list[str],
    packaging: str | None = None,
) -> list[str]:
    """Synthesize the goal tokens that launch an application.

    Arguments are handed to the child as an argv list, so JVM arguments
    joined into one property value need no shell quoting.

    Args:
        strategy: Resolved launch strategy.
        main_class: Main class for the exec plugin, if known.
        profiles: Active profile names passed to the application.
        jvm_args: JVM arguments for the application.
        packaging: Module packaging, if known.

    Returns:
        Goal tokens; empty for the reserved external IDE strategy.
    """
    goals: list[str] = []

    if strategy is LaunchStrategy.FRAMEWORK_RUN:
        if profiles:
            goals.append(f"-Dspring-boot.run.profiles={','.join(profiles)}")
        if jvm_args:
            goals.append(f"-Dspring-boot.run.jvmArguments={' '.join(jvm_args)}")
        goals.append("spring-boot:run")
    elif strategy is LaunchStrategy.GENERIC_EXEC:
        if main_class:
            goals.append(f"-Dexec.mainClass={main_class}")
        if packaging == "war":
            goals.append("-Dexec.classpathScope=compile")
        goals.append("-Dexec.cleanupDaemonThreads=false")
        goals.extend(jvm_args)
        goals.append("exec:java")
    else:
        logger.warning("launch_strategy_unsupported", strategy=strategy.value)

    return goals
