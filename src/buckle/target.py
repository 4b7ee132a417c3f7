"""Target triple resolution for Buckle."""

import platform
import sys
from enum import StrEnum

from .exceptions import UnsupportedPlatformError


class Target(StrEnum):
    X86_64_LINUX = "x86_64-unknown-linux-gnu"
    X86_64_MACOS = "x86_64-apple-darwin"
    X86_64_WINDOWS = "x86_64-pc-windows-msvc"
    AARCH64_LINUX = "aarch64-unknown-linux-gnu"
    AARCH64_MACOS = "aarch64-apple-darwin"


def resolve_target(arch: str, os_name: str) -> Target:
    """
    Map a reported CPU architecture and OS name to a target triple.

    Args:
        arch: Architecture name (e.g., 'x86_64' or 'aarch64')
        os_name: OS name (e.g., 'linux', 'macos', 'darwin' or 'windows')

    Returns:
        The matching Target

    Raises:
        UnsupportedPlatformError: If the pair is not supported
    """
    match (arch, os_name):
        case ("x86_64", "linux"):
            return Target.X86_64_LINUX
        case ("x86_64", "macos" | "darwin"):
            return Target.X86_64_MACOS
        case ("x86_64", "windows"):
            return Target.X86_64_WINDOWS
        case ("aarch64", "linux"):
            return Target.AARCH64_LINUX
        case ("aarch64", "macos" | "darwin"):
            return Target.AARCH64_MACOS
        case _:
            raise UnsupportedPlatformError(f"Unsupported Arch/OS: {arch}/{os_name}")


def current_arch() -> str:
    """Return the running architecture using 'x86_64'/'aarch64' naming."""
    machine = platform.machine().lower()
    match machine:
        case "amd64" | "x64":
            return "x86_64"
        case "arm64":
            return "aarch64"
        case _:
            return machine


def current_os() -> str:
    """Return the running OS as 'linux', 'macos', 'windows' or the raw platform."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    return sys.platform
