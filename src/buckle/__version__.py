"""Installed distribution version of Buckle."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("buckle")
except PackageNotFoundError:
    # Running from a source checkout that was never installed
    __version__ = "0+unknown"
