"""Typer entry point for the mvnconsole command.

Besides the interactive console, a few commands expose project
discovery and command synthesis for scripting.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from . import __version__

if TYPE_CHECKING:
    from core import ConfigManager, ConsoleConfig

app = typer.Typer(
    name="mvnconsole",
    help="Terminal console for Maven projects - build, run and search output live.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Eager --version handler."""
    if value:
        console.print(f"[bold blue]mvnconsole[/bold blue] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """mvnconsole: Maven terminal console.

    Run goals against the modules of a Maven project, launch applications,
    follow and search the output, and kill runaway builds.
    """


def _get_config_manager(
    config_path: Path | None = None, project_root: Path | None = None
) -> ConfigManager:
    """Build a ConfigManager, optionally aware of a project file."""
    from core import ConfigManager

    return ConfigManager(config_path=config_path, project_root=project_root)


def _resolve_project(project: Path) -> Path:
    from core import ProjectNotFoundError, find_project_root

    try:
        return find_project_root(project)
    except ProjectNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


def _load_config(
    project_root: Path,
    config_path: Path | None,
    overrides: dict[str, Any],
) -> ConsoleConfig:
    from core import ConfigError

    try:
        return _get_config_manager(config_path, project_root).load(overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


ProjectArgument = Annotated[
    Path,
    typer.Argument(help="Project directory (searched upward for pom.xml)."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="User configuration file."),
]
SettingsOption = Annotated[
    str | None,
    typer.Option("--settings", "-s", help="Maven settings.xml passed as --settings."),
]
FileFlagOption = Annotated[
    bool | None,
    typer.Option(
        "--use-file-flag/--use-pl-flag",
        help="Select modules with -f <module>/pom.xml instead of -pl.",
    ),
]


@app.command()
def tui(
    project: ProjectArgument = Path("."),
    config_path: ConfigOption = None,
    settings: SettingsOption = None,
    use_file_flag: FileFlagOption = None,
    launch_mode: Annotated[
        str | None,
        typer.Option("--launch-mode", help="auto, force-run or force-exec."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", "-l", help="debug, info, warning or error."),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option("--log-file", help="Application log file."),
    ] = None,
) -> None:
    """Open the interactive console for a project."""
    from core import LogService, get_default_log_path
    from ui import ProjectTab, run_console

    project_root = _resolve_project(project)
    overrides: dict[str, Any] = {}
    if settings is not None:
        overrides["maven_settings"] = settings
    if use_file_flag is not None:
        overrides["use_file_flag"] = use_file_flag
    if launch_mode is not None:
        overrides["launch_mode"] = launch_mode
    if log_level is not None:
        overrides["log_level"] = log_level
    if log_file is not None:
        overrides["log_file"] = str(log_file)
    config = _load_config(project_root, config_path, overrides)

    log_service = LogService(config.log_file or get_default_log_path(), config.log_level)
    log_service.start()
    try:
        tab = ProjectTab(project_root, config=config)
        run_console(tab, log_service)
    finally:
        log_service.shutdown()


@app.command()
def command(
    project: ProjectArgument = Path("."),
    module: Annotated[
        str,
        typer.Option("--module", "-m", help="Module path, or '.' for the project root."),
    ] = ".",
    goals: Annotated[
        list[str] | None,
        typer.Option("--goal", "-g", help="Goal token. Can be specified multiple times."),
    ] = None,
    profiles: Annotated[
        list[str] | None,
        typer.Option("--profile", "-P", help="Profile to enable, or !name to disable."),
    ] = None,
    flags: Annotated[
        list[str] | None,
        typer.Option("--flag", "-F", help="Raw Maven flag, e.g. -DskipTests."),
    ] = None,
    config_path: ConfigOption = None,
    settings: SettingsOption = None,
    use_file_flag: FileFlagOption = None,
) -> None:
    """Print the Maven command that would be run, without running it."""
    from core import build_command_spec, get_maven_command

    project_root = _resolve_project(project)
    config = _load_config(project_root, config_path, {})

    spec = build_command_spec(
        project_root,
        module,
        goals or ["compile"],
        profiles=profiles or [],
        flags=flags or [],
        settings_path=settings if settings is not None else config.maven_settings,
        use_file_flag=use_file_flag if use_file_flag is not None else config.use_file_flag,
        logging_overrides=config.logging.overrides(),
        log_format=config.logging.log_format,
    )
    for name, value in spec.env.items():
        console.print(f"{name}={value}", markup=False, highlight=False, soft_wrap=True)
    console.print(
        spec.display(get_maven_command(project_root)),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


@app.command()
def modules(project: ProjectArgument = Path(".")) -> None:
    """List the modules of a project."""
    from core import discover_modules

    project_root = _resolve_project(project)
    for name in discover_modules(project_root):
        console.print(name, markup=False, highlight=False)


@app.command()
def profiles(
    project: ProjectArgument = Path("."),
    config_path: ConfigOption = None,
) -> None:
    """List the Maven profiles of a project (runs Maven)."""
    from core import ProfileLoadError, discover_profiles

    project_root = _resolve_project(project)
    config = _load_config(project_root, config_path, {})

    try:
        found = asyncio.run(discover_profiles(project_root, config.maven_settings))
    except ProfileLoadError as e:
        console.print(f"[red]Failed to load profiles: {e}[/red]")
        raise typer.Exit(1) from e

    if not found:
        console.print("[yellow]No profiles found.[/yellow]")
        return

    table = Table(title="Maven Profiles")
    table.add_column("Profile", style="cyan")
    table.add_column("Auto-activated")
    for profile in found:
        table.add_row(profile.name, "[green]yes[/green]" if profile.auto_activated else "no")
    console.print(table)


# =============================================================================
# Configuration Commands
# =============================================================================

config_app = typer.Typer(
    name="config",
    help="Inspect and create configuration files.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(
    project: Annotated[
        Path | None,
        typer.Option("--project", help="Include the project's .mvnconsole.yaml."),
    ] = None,
) -> None:
    """Show the effective configuration."""
    import yaml

    from core import ConfigError

    project_root = _resolve_project(project) if project is not None else None
    config_manager = _get_config_manager(project_root=project_root)

    try:
        config = config_manager.load()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[bold]Configuration File:[/bold] {config_manager.config_path}")
    if config_manager.project_config_path is not None:
        console.print(f"[bold]Project File:[/bold] {config_manager.project_config_path}")
    console.print()
    console.print(
        yaml.dump(config.model_dump(mode="json"), default_flow_style=False, sort_keys=False),
        markup=False,
    )


@config_app.command("init")
def config_init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration.",
        ),
    ] = False,
) -> None:
    """Write a user configuration file with every default."""
    config_manager = _get_config_manager()

    if config_manager.init_config(force=force):
        console.print(f"[green]Configuration initialized: {config_manager.config_path}[/green]")
    else:
        console.print(
            f"[yellow]Configuration already exists: {config_manager.config_path}[/yellow]"
        )
        console.print("Use --force to overwrite.")


@config_app.command("path")
def config_path() -> None:
    """Print where the user configuration file lives."""
    config_manager = _get_config_manager()
    console.print(str(config_manager.config_path), markup=False, soft_wrap=True)


if __name__ == "__main__":
    app()
