"""Maven project and module discovery."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from .command import ROOT_MODULE

logger = structlog.get_logger(__name__)

POM_FILE = "pom.xml"

_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_MODULE_RE = re.compile(r"<module>\s*([^<]+?)\s*</module>")


class ProjectNotFoundError(Exception):
    """Raised when no ``pom.xml`` exists in a directory or its parents."""


def find_project_root(start: Path) -> Path:
    """Find the nearest directory at or above ``start`` that holds a ``pom.xml``.

    Raises:
        ProjectNotFoundError: If no ancestor holds a POM.
    """
    current = start.expanduser().resolve()
    for directory in (current, *current.parents):
        if (directory / POM_FILE).is_file():
            return directory
    raise ProjectNotFoundError(f"No {POM_FILE} found in {current} or its parents")


def parse_modules(pom_text: str) -> list[str]:
    """Extract ``<module>`` entries from POM text in declaration order."""
    return _MODULE_RE.findall(_COMMENT_RE.sub("", pom_text))


def discover_modules(project_root: Path) -> list[str]:
    """List the modules of a project.

    Returns:
        Module paths relative to the root, or ``["."]`` for a project
        without modules.
    """
    pom = project_root / POM_FILE
    try:
        modules = parse_modules(pom.read_text(encoding="utf-8"))
    except OSError as e:
        logger.warning("pom_unreadable", path=str(pom), error=str(e))
        modules = []

    if not modules:
        logger.info("single_module_project", project_root=str(project_root))
        return [ROOT_MODULE]

    logger.debug("modules_discovered", count=len(modules))
    return modules
