"""Cache store implementation for Buckle."""

import logging
import time
from pathlib import Path
from typing import Callable, Mapping, Optional

from .common import CACHE_TTL, ENV_CACHE, FileSystemClientProtocol
from .exceptions import EnvironmentResolutionError, InstallError

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = "buckle"


def get_cache_base(env: Mapping[str, str], os_name: str) -> Path:
    """
    Locate the platform cache directory Buckle lives under.

    Args:
        env: Environment mapping to read variables from
        os_name: 'linux', 'macos' or 'windows'

    Returns:
        The base cache directory (without the buckle suffix)

    Raises:
        EnvironmentResolutionError: If the required variables are undefined
            or the OS is not supported
    """
    match os_name:
        case "linux":
            if env.get("XDG_CACHE_HOME"):
                return Path(env["XDG_CACHE_HOME"])
            if env.get("HOME"):
                return Path(env["HOME"]) / ".cache"
            raise EnvironmentResolutionError(
                f"neither $XDG_CACHE_HOME nor $HOME are defined. "
                f"Either define them or specify a ${ENV_CACHE}"
            )
        case "macos":
            if env.get("HOME"):
                return Path(env["HOME"]) / "Library" / "Caches"
            raise EnvironmentResolutionError(
                f"$HOME is not defined. Either define it or specify a ${ENV_CACHE}"
            )
        case "windows":
            if env.get("LocalAppData"):
                return Path(env["LocalAppData"])
            raise EnvironmentResolutionError(
                f"%LocalAppData% is not defined. Either define it or specify a %{ENV_CACHE}%"
            )
        case _:
            raise EnvironmentResolutionError(
                f"'{os_name}' is currently an unsupported OS. "
                f"Specify a ${ENV_CACHE} to use buckle on it."
            )


def get_cache_root(
    env: Mapping[str, str], os_name: str, override: Optional[str] = None
) -> Path:
    """Resolve the Buckle cache root.

    An explicit ``override`` wins, then ``$BUCKLE_CACHE``, then the
    platform cache directory with a ``buckle`` subdirectory.
    """
    if override:
        return Path(override)
    if env.get(ENV_CACHE):
        return Path(env[ENV_CACHE])
    return get_cache_base(env, os_name) / CACHE_DIR_NAME


class CacheStore:
    """Directory-addressed cache with mtime-based staleness."""

    def __init__(
        self,
        root: Path,
        file_system_client: FileSystemClientProtocol,
        ttl: int = CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = root
        self.file_system_client = file_system_client
        self.ttl = ttl
        self.clock = clock
        self.ensure_dir(self.root)

    def ensure_dir(self, path: Path) -> Path:
        """Create ``path`` (and parents) if absent."""
        try:
            self.file_system_client.mkdir(path, parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"problem creating {path}: {e}") from e
        return path

    def archive_dir(self, archive_name: str) -> Path:
        return self.ensure_dir(self.root / archive_name)

    def is_fresh(self, path: Path) -> bool:
        """Check whether ``path`` exists and was written within the TTL."""
        if not self.file_system_client.exists(path):
            return False
        age = self.clock() - self.file_system_client.mtime(path)
        return abs(age) <= self.ttl

    def read_if_fresh(self, path: Path) -> Optional[bytes]:
        if not self.is_fresh(path):
            return None
        logger.debug(f"Using cached {path}")
        try:
            return self.file_system_client.read(path)
        except OSError as e:
            raise InstallError(f"problem reading {path}: {e}") from e

    def write(self, path: Path, data: bytes) -> None:
        try:
            self.file_system_client.write(path, data)
        except OSError as e:
            raise InstallError(f"problem writing {path}: {e}") from e
