"""Configuration management for mvnconsole.

Settings live in YAML files under the XDG config directory. A user-wide
file is merged with an optional ``.mvnconsole.yaml`` kept in the project
root, so a team can share logging overrides next to its POM.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .models import ConsoleConfig

logger = structlog.get_logger(__name__)

APP_NAME = "mvnconsole"
PROJECT_CONFIG_NAME = ".mvnconsole.yaml"


class ConfigError(Exception):
    """Raised when a configuration file cannot be parsed or validated."""


def _xdg_base(variable: str, *fallback: str) -> Path:
    value = os.environ.get(variable)
    return Path(value) if value else Path.home().joinpath(*fallback)


def get_config_dir() -> Path:
    """Directory holding the user configuration ($XDG_CONFIG_HOME/mvnconsole)."""
    return _xdg_base("XDG_CONFIG_HOME", ".config") / APP_NAME


def get_state_dir() -> Path:
    """Directory holding log files ($XDG_STATE_HOME/mvnconsole)."""
    return _xdg_base("XDG_STATE_HOME", ".local", "state") / APP_NAME


def get_default_config_path() -> Path:
    """Get the default user configuration file path."""
    return get_config_dir() / "config.yaml"


def get_default_log_path() -> Path:
    """Get the default application log file path."""
    return get_state_dir() / f"{APP_NAME}.log"


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


class YamlConfigLoader:
    """Reads and writes plain mappings as YAML documents."""

    def load(self, path: str) -> dict[str, Any]:
        """Read a mapping from ``path``.

        An empty document yields an empty dict.

        Raises:
            FileNotFoundError: Nothing exists at ``path``.
            ConfigError: The document is not YAML or its top level is not a mapping.
        """
        source = Path(path)
        if not source.is_file():
            logger.debug("config_file_missing", path=path)
            raise FileNotFoundError(f"No configuration at {path}")

        try:
            document = yaml.safe_load(source.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ConfigError(f"Configuration in {path} must be a mapping")
        return document

    def save(self, config: dict[str, Any], path: str) -> None:
        """Write ``config`` to ``path``, creating parent directories."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            yaml.safe_dump(config, default_flow_style=False, sort_keys=False),
            encoding="utf-8",
        )
        logger.info("config_saved", path=path)


class ConfigManager:
    """Resolves the effective ConsoleConfig for one project.

    Sources are applied lowest to highest precedence: built-in defaults,
    the user file, the project file, then explicit overrides.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        project_root: Path | None = None,
    ) -> None:
        self.config_path = config_path or get_default_config_path()
        self.project_root = project_root
        self._loader = YamlConfigLoader()
        self._config: ConsoleConfig | None = None

    @property
    def project_config_path(self) -> Path | None:
        """Path of the per-project configuration file, if a project is set."""
        if self.project_root is None:
            return None
        return self.project_root / PROJECT_CONFIG_NAME

    def _sources(self) -> list[Path]:
        sources = [self.config_path]
        if self.project_config_path is not None:
            sources.append(self.project_config_path)
        return sources

    def load(self, overrides: dict[str, Any] | None = None) -> ConsoleConfig:
        """Merge every source into a validated ConsoleConfig.

        Missing files are skipped, so with no files at all the defaults apply.

        Args:
            overrides: Highest-precedence values, e.g. from the command line.

        Raises:
            ConfigError: A file is malformed or the merged values fail validation.
        """
        data: dict[str, Any] = {}
        for path in self._sources():
            try:
                data = merge_dicts(data, self._loader.load(str(path)))
            except FileNotFoundError:
                continue

        if overrides:
            data = merge_dicts(data, overrides)

        try:
            self._config = ConsoleConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        if not data:
            logger.info("config_defaults_applied")
        return self._config

    def save(self, config: ConsoleConfig | None = None) -> None:
        """Persist non-default settings to the user file."""
        if config is not None:
            self._config = config
        current = self._config or ConsoleConfig()
        self._config = current
        self._loader.save(
            current.model_dump(mode="json", exclude_defaults=True), str(self.config_path)
        )

    def get_config(self) -> ConsoleConfig:
        """Return the loaded configuration, loading it on first use."""
        if self._config is None:
            self.load()
        return self._config or ConsoleConfig()

    def init_config(self, force: bool = False) -> bool:
        """Write a user file listing every default setting.

        Returns False without touching an existing file unless ``force`` is set.
        """
        if self.config_path.exists() and not force:
            logger.info("config_exists", path=str(self.config_path))
            return False

        self._loader.save(ConsoleConfig().model_dump(mode="json"), str(self.config_path))
        logger.info("config_initialized", path=str(self.config_path))
        return True
