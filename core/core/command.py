"""Maven command synthesis.

Turns a module selection, resolved profile tokens, enabled flags, the
settings file, logging overrides and the goal tokens into an ordered
argument vector plus an environment overlay for the child process.

Argument order:
    1. ``--settings <path>``
    2. ``-P a,!b``
    3. ``-pl <module>`` or ``-f <root>/<module>/pom.xml`` (+ ``--also-make``
       for ``exec:java``)
    4. flags, minus dependency-build flags when running ``spring-boot:run``
    5. each flag split into tokens (aliases after a comma are dropped)
    6. logging system properties, unless the goals carry run JVM arguments
    7. goal tokens
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

# Module id meaning "the project root", which needs no -pl/-f selector
ROOT_MODULE = "."

FRAMEWORK_RUN_GOAL = "spring-boot:run"
FRAMEWORK_PLUGIN_ARTIFACT = "spring-boot-maven-plugin"
EXEC_GOAL = "exec:java"
EXEC_PLUGIN_ARTIFACT = "exec-maven-plugin"

# Substring identifying --also-make and --also-make-dependents
DEPENDENCY_BUILD_MARKER = "also-make"
DEPENDENCY_BUILD_FLAG = "--also-make"

RUN_JVM_ARGUMENT_PREFIXES = ("-Dspring-boot.run.jvmArguments=", "-Drun.jvmArguments=")
LOG4J_CONFIGURATION_PREFIX = "-Dlog4j.configuration="
BOOTSTRAP_ENV_VAR = "JAVA_TOOL_OPTIONS"


def get_maven_command(project_root: Path, platform: str | None = None) -> str:
    """Determine the Maven executable for a project.

    Prefers the Maven wrapper in the project root over a system install.

    Args:
        project_root: Root directory of the Maven project.
        platform: ``sys.platform`` style identifier; defaults to the current one.

    Returns:
        Executable name or relative wrapper path.
    """
    platform = platform or sys.platform
    if platform == "win32":
        for wrapper in ("mvnw.bat", "mvnw.cmd", "mvnw"):
            if (project_root / wrapper).exists():
                return wrapper
        return "mvn.cmd"

    if (project_root / "mvnw").exists():
        return "./mvnw"
    return "mvn"


def is_framework_run_goal(goals: list[str] | tuple[str, ...]) -> bool:
    """Check whether the goals run the Spring Boot plugin's ``run`` goal."""
    return any(
        FRAMEWORK_RUN_GOAL in goal or (FRAMEWORK_PLUGIN_ARTIFACT in goal and ":run" in goal)
        for goal in goals
    )


def is_exec_goal(goals: list[str] | tuple[str, ...]) -> bool:
    """Check whether the goals run the exec plugin's ``java`` goal."""
    return any(
        goal == EXEC_GOAL or (EXEC_PLUGIN_ARTIFACT in goal and goal.endswith(":java"))
        for goal in goals
    )


def has_run_jvm_arguments(goals: list[str] | tuple[str, ...]) -> bool:
    """Check whether a goal token already passes JVM arguments to a run plugin."""
    return any(goal.startswith(RUN_JVM_ARGUMENT_PREFIXES) for goal in goals)


def has_dependency_build_flag(flags: list[str] | tuple[str, ...]) -> bool:
    return any(DEPENDENCY_BUILD_MARKER in flag.lower() for flag in flags)


def filter_framework_incompatible_flags(flags: list[str] | tuple[str, ...]) -> list[str]:
    """Drop dependency-build flags.

    ``--also-make`` with ``spring-boot:run`` runs the plugin on every module
    of the reactor, including parent POMs that cannot be run.
    """
    return [flag for flag in flags if DEPENDENCY_BUILD_MARKER not in flag.lower()]


def parse_flag_parts(flag: str) -> list[str]:
    """Split a flag string into argument tokens.

    Only the text before the first comma is kept, so ``"-U, --update-snapshots"``
    yields ``["-U"]``; the rest is split on whitespace (``"-T 4"`` -> two tokens).
    """
    head = flag.split(",", 1)[0]
    return [part for part in head.split() if part]


def extract_log4j_config_url(goals: list[str] | tuple[str, ...]) -> str | None:
    """Find a ``-Dlog4j.configuration=<url>`` embedded in run JVM arguments.

    The value of ``-Drun.jvmArguments=...`` itself contains ``=`` signs, so
    only the first one separates the property name from its value.
    """
    for goal in goals:
        if not goal.startswith(RUN_JVM_ARGUMENT_PREFIXES):
            continue
        _, _, jvm_args = goal.partition("=")
        for part in jvm_args.split():
            if part.startswith(LOG4J_CONFIGURATION_PREFIX):
                return part[len(LOG4J_CONFIGURATION_PREFIX) :]
    return None


def build_environment_overlay(goals: list[str] | tuple[str, ...]) -> dict[str, str]:
    """Build environment variables the child process needs.

    Logging frameworks that configure themselves in static initializers run
    before argument-based configuration applies, so the log4j configuration
    is handed to the JVM through ``JAVA_TOOL_OPTIONS`` instead.
    """
    config_url = extract_log4j_config_url(goals)
    if config_url is None:
        return {}

    options = (
        "-Dlog4j.ignoreTCL=true -Dlog4j.defaultInitOverride=true "
        f"{LOG4J_CONFIGURATION_PREFIX}{config_url}"
    )
    logger.info("bootstrap_env_set", variable=BOOTSTRAP_ENV_VAR, config_url=config_url)
    return {BOOTSTRAP_ENV_VAR: options}


@dataclass(frozen=True)
class CommandSpec:
    """An immutable, fully synthesized Maven invocation.

    Attributes:
        project_root: Directory the command runs in.
        module: Selected module, or None / ``"."`` for the project root.
        goal_args: Goal tokens appended last.
        profile_args: Resolved profile tokens (``name`` / ``!name``).
        flags: Enabled raw flag strings as given by the user.
        settings_path: Optional Maven settings file.
        use_file_flag: Select the module with ``-f`` instead of ``-pl``.
        logging_overrides: (package, level) pairs.
        log_format: Optional console pattern for the logging frameworks.
        args: The final ordered argument vector.
        env: Environment overlay for the child process.
    """

    project_root: Path
    module: str | None
    goal_args: tuple[str, ...]
    profile_args: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()
    settings_path: str | None = None
    use_file_flag: bool = False
    logging_overrides: tuple[tuple[str, str], ...] = ()
    log_format: str | None = None
    args: tuple[str, ...] = field(default=(), compare=False)
    env: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def display(self, executable: str) -> str:
        """Render the command line for the operator."""
        return " ".join([executable, *self.args])


def _module_args(
    project_root: Path,
    module: str | None,
    goals: tuple[str, ...],
    flags: tuple[str, ...],
    use_file_flag: bool,
) -> list[str]:
    if module is None or module == ROOT_MODULE:
        return []

    if not use_file_flag:
        return ["-pl", module]

    module_pom = project_root / module / "pom.xml"
    args = ["-f", str(module_pom)]
    # With -f the reactor only sees this module, so sibling artifacts must be built too
    if (
        is_exec_goal(goals)
        and not is_framework_run_goal(goals)
        and not has_dependency_build_flag(flags)
    ):
        args.append(DEPENDENCY_BUILD_FLAG)
        logger.debug("auto_added_also_make", module=module)
    return args


def _logging_args(
    goals: tuple[str, ...],
    overrides: tuple[tuple[str, str], ...],
    log_format: str | None,
) -> list[str]:
    if not overrides and log_format is None:
        return []
    if has_run_jvm_arguments(goals):
        logger.debug("logging_args_skipped", reason="run_jvm_arguments_present")
        return []

    args: list[str] = []
    if log_format is not None:
        args.append(f"-Dlog4j.conversionPattern={log_format}")
        args.append(f"-Dlogging.pattern.console={log_format}")
    for package, level in overrides:
        args.append(f"-Dlog4j.logger.{package}={level}")
        args.append(f"-Dlogging.level.{package}={level}")
    return args


def build_command_spec(
    project_root: Path,
    module: str | None,
    goals: list[str] | tuple[str, ...],
    *,
    profiles: list[str] | tuple[str, ...] = (),
    flags: list[str] | tuple[str, ...] = (),
    settings_path: str | None = None,
    use_file_flag: bool = False,
    logging_overrides: list[tuple[str, str]] | tuple[tuple[str, str], ...] = (),
    log_format: str | None = None,
) -> CommandSpec:
    """Synthesize a Maven invocation.

    Args:
        project_root: Root directory of the Maven project.
        module: Module path relative to the root, or ``"."``/None for the root.
        goals: Goal tokens, e.g. ``["clean", "install"]``.
        profiles: Profile tokens already resolved to ``name`` / ``!name``.
        flags: Enabled flag strings.
        settings_path: Optional Maven settings file.
        use_file_flag: Use ``-f <module>/pom.xml`` instead of ``-pl <module>``.
        logging_overrides: (package, level) pairs.
        log_format: Optional console pattern override.

    Returns:
        The immutable CommandSpec with its argument vector and environment.
    """
    goal_args = tuple(goals)
    profile_args = tuple(profiles)
    flag_args = tuple(flags)
    overrides = tuple((str(pkg), str(level)) for pkg, level in logging_overrides)

    args: list[str] = []

    if settings_path:
        args.extend(["--settings", settings_path])

    if profile_args:
        args.extend(["-P", ",".join(profile_args)])

    args.extend(_module_args(project_root, module, goal_args, flag_args, use_file_flag))

    effective_flags: list[str] = list(flag_args)
    if is_framework_run_goal(goal_args):
        effective_flags = filter_framework_incompatible_flags(flag_args)
        if len(effective_flags) < len(flag_args):
            logger.warning(
                "flags_filtered_for_framework_run",
                dropped=[f for f in flag_args if f not in effective_flags],
            )

    for flag in effective_flags:
        args.extend(parse_flag_parts(flag))

    args.extend(_logging_args(goal_args, overrides, log_format))
    args.extend(goal_args)

    spec = CommandSpec(
        project_root=project_root,
        module=module,
        goal_args=goal_args,
        profile_args=profile_args,
        flags=flag_args,
        settings_path=settings_path,
        use_file_flag=use_file_flag,
        logging_overrides=overrides,
        log_format=log_format,
        args=tuple(args),
        env=build_environment_overlay(goal_args),
    )
    logger.debug("command_built", module=module, args=list(spec.args), env=list(spec.env))
    return spec
