"""Launcher orchestration for Buckle."""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from .artifact_matcher import find_artifact, substitute_pattern
from .binding import resolve_binding
from .cache import CacheStore, get_cache_root
from .common import (
    DEFAULT_TIMEOUT,
    ArchiveConfig,
    Config,
    FileSystemClientProtocol,
    MatchedArtifact,
    NetworkClientProtocol,
    PackageType,
    ResolvedBinary,
)
from .exceptions import CorruptedCacheError
from .filesystem import FileSystemClient
from .installer import AtomicInstaller
from .integrity import verify_submodule
from .network import NetworkClient
from .project import read_prelude_path
from .release_manager import ReleaseManager
from .target import current_arch, current_os, resolve_target

logger = logging.getLogger(__name__)


class Launcher:
    """Resolves a binary name to an installed executable in the cache."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        cache_dir: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        network_client: Optional[NetworkClientProtocol] = None,
        file_system_client: Optional[FileSystemClientProtocol] = None,
        arch: Optional[str] = None,
        os_name: Optional[str] = None,
    ) -> None:
        self.env = os.environ if env is None else env
        self.arch = arch or current_arch()
        self.os_name = os_name or current_os()
        self.network_client = network_client or NetworkClient(timeout=timeout)
        self.file_system_client = file_system_client or FileSystemClient()

        self.cache_store = CacheStore(
            get_cache_root(self.env, self.os_name, cache_dir), self.file_system_client
        )
        self.release_manager = ReleaseManager(self.network_client, self.cache_store)
        self.installer = AtomicInstaller(self.file_system_client)

    @property
    def cache_root(self) -> Path:
        return self.cache_store.root

    def _install_marker(
        self, archive: ArchiveConfig, matched: MatchedArtifact, install_dir: Path
    ) -> None:
        if not archive.marker_asset:
            return
        marker = next(
            (a for a in matched.release.assets if a.name == archive.marker_asset), None
        )
        if marker is None:
            logger.debug(
                f"Release {matched.release.tag_name} has no {archive.marker_asset} asset"
            )
            return
        self.installer.install(
            marker.name,
            PackageType.SINGLE_FILE,
            lambda: self.network_client.open(marker.download_url),
            install_dir,
            executable=False,
        )

    def _check_executable(self, path: Path) -> None:
        if not self.file_system_client.is_executable(path):
            raise CorruptedCacheError(
                f"The buckle cache is corrupted: {path} is missing or not executable. "
                f"Suggested fix is to remove {self.cache_root}"
            )

    def install(
        self, binary_name: str, archive_name: str, archive: ArchiveConfig
    ) -> ResolvedBinary:
        """
        Ensure ``binary_name`` from ``archive`` is installed and return it.

        Raises:
            BuckleError: If any stage of resolution or installation fails
        """
        target = resolve_target(self.arch, self.os_name)
        source = archive.source
        asset_name = substitute_pattern(
            archive.artifact_pattern, source.version, self.arch, self.os_name, target
        )

        archive_dir = self.cache_store.archive_dir(archive_name)
        releases = self.release_manager.get_releases(source, archive_dir)
        matched = find_artifact(
            releases, source, asset_name, pattern=archive.artifact_pattern
        )

        install_dir = archive_dir / matched.install_subdir
        binary_path = install_dir / binary_name
        if not self.file_system_client.exists(binary_path):
            self._install_marker(archive, matched, install_dir)
            logger.info(f"fetching {matched.asset.name} {source.version}")
            self.installer.install(
                binary_name,
                archive.package_type,
                lambda: self.network_client.open(matched.asset.download_url),
                install_dir,
            )

        self._check_executable(binary_path)
        return ResolvedBinary(
            name=binary_name,
            path=binary_path,
            archive_name=archive_name,
            archive=archive,
            install_dir=install_dir,
        )

    def resolve(self, config: Config, binary_name: Optional[str] = None) -> ResolvedBinary:
        """Resolve ``binary_name`` through ``config`` and install it."""
        name, archive_name, archive = resolve_binding(config, binary_name)
        return self.install(name, archive_name, archive)

    def read_marker(self, resolved: ResolvedBinary) -> Optional[str]:
        """Return the expected hash shipped next to the binary, if any."""
        if not resolved.archive.marker_asset:
            return None
        marker_path = resolved.install_dir / resolved.archive.marker_asset
        if not self.file_system_client.exists(marker_path):
            return None
        try:
            return self.file_system_client.read(marker_path).decode("utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Could not read {marker_path}: {e}")
            return None

    def verify_integrity(
        self, resolved: ResolvedBinary, project_root: Optional[Path]
    ) -> Optional[str]:
        """
        Compare the installed marker against the project's submodule.

        Never raises for a mismatch; returns the warning message instead.
        """
        if project_root is None:
            return None
        expected_hash = self.read_marker(resolved)
        if not expected_hash:
            return None
        submodule = resolved.archive.submodule or read_prelude_path(project_root)
        if not submodule:
            return None
        return verify_submodule(project_root, submodule, expected_hash)
