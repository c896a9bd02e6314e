"""Shared test fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_config_dirs(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Generator[Path, None, None]:
    """Isolate tests from the real user configuration and log directories.

    Sets XDG_CONFIG_HOME and XDG_STATE_HOME to temporary directories so
    that tests never read or write ~/.config/mvnconsole/.

    This fixture is applied automatically to all tests in this module.
    """
    config_home = tmp_path / "xdg_config"
    state_home = tmp_path / "xdg_state"
    config_home.mkdir(parents=True, exist_ok=True)
    state_home.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("XDG_STATE_HOME", str(state_home))

    yield config_home


@pytest.fixture
def maven_project(tmp_path: Path) -> Path:
    """A multi-module Maven project without a wrapper."""
    root = tmp_path / "shop"
    root.mkdir()
    (root / "pom.xml").write_text(
        "<project>\n"
        "  <modules>\n"
        "    <module>common</module>\n"
        "    <module>payments</module>\n"
        "  </modules>\n"
        "</project>\n"
    )
    return root
