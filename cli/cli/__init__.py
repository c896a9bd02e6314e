"""mvnconsole command-line interface."""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version

try:
    __version__ = get_package_version("mvnconsole")
except PackageNotFoundError:
    __version__ = "0.0.0"
