"""Common types, protocols, and constants for Buckle."""

from __future__ import annotations

import dataclasses
import subprocess
from enum import StrEnum
from pathlib import Path
from typing import BinaryIO, Optional, Protocol


class PackageType(StrEnum):
    SINGLE_FILE = "single_file"
    ZSTD_SINGLE_FILE = "zstd_single_file"


# Type aliases for better readability
Headers = dict[str, str]
ProcessResult = subprocess.CompletedProcess[str]


@dataclasses.dataclass(frozen=True)
class ReleaseDescriptor:
    """A remote release source: ``owner/repo`` at a requested version."""

    owner: str
    repo: str
    version: str = "latest"

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def releases_api_url(self) -> str:
        return f"{GITHUB_API_URL}/repos/{self.slug}/releases"

    @property
    def releases_page_url(self) -> str:
        return f"{GITHUB_URL}/{self.slug}/releases"


@dataclasses.dataclass(frozen=True)
class AssetRecord:
    name: str
    download_url: str


@dataclasses.dataclass(frozen=True)
class ReleaseRecord:
    tag_name: str
    target_commitish: str
    name: Optional[str] = None
    assets: tuple[AssetRecord, ...] = ()


@dataclasses.dataclass(frozen=True)
class ArchiveConfig:
    """A named installation recipe."""

    source: ReleaseDescriptor
    artifact_pattern: str
    package_type: PackageType = PackageType.SINGLE_FILE
    marker_asset: Optional[str] = None
    submodule: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class BindingConfig:
    provided_by: str


@dataclasses.dataclass(frozen=True)
class Config:
    archives: dict[str, ArchiveConfig]
    binaries: dict[str, BindingConfig]


@dataclasses.dataclass(frozen=True)
class MatchedArtifact:
    """The asset selected for installation and the subdirectory it lands in."""

    release: ReleaseRecord
    asset: AssetRecord
    install_subdir: str


@dataclasses.dataclass(frozen=True)
class ResolvedBinary:
    name: str
    path: Path
    archive_name: str
    archive: ArchiveConfig
    install_dir: Path


class NetworkClientProtocol(Protocol):
    """Protocol for network operations with timeout support.

    Implementations must provide a small-body HTTP GET and a streamed
    download. This protocol enables dependency injection and easy mocking
    for testing network operations.

    Attributes:
        timeout: Maximum timeout in seconds for network operations
    """

    timeout: int

    def get(self, url: str, headers: Optional[Headers] = None) -> ProcessResult:
        """Perform HTTP GET request.

        Args:
            url: URL to request
            headers: Optional request headers as key-value pairs

        Returns:
            ProcessResult containing stdout, stderr, and returncode
        """
        ...

    def open(self, url: str, headers: Optional[Headers] = None) -> BinaryIO:
        """Open a streamed download of ``url``.

        The returned object is a readable binary stream that is also a
        context manager.

        Raises:
            NetworkError: On network failures, timeouts, or invalid URLs
        """
        ...


class FileSystemClientProtocol(Protocol):
    """Protocol for filesystem operations.

    Provides an abstract interface for filesystem operations to enable
    dependency injection and easy mocking for testing.
    """

    def exists(self, path: Path) -> bool: ...

    def is_executable(self, path: Path) -> bool: ...

    def mkdir(
        self, path: Path, parents: bool = False, exist_ok: bool = False
    ) -> None: ...

    def write(self, path: Path, data: bytes) -> None: ...

    def read(self, path: Path) -> bytes: ...

    def mtime(self, path: Path) -> float: ...

    def make_executable(self, path: Path) -> None: ...

    def replace(self, source: Path, target: Path) -> None: ...


# Constants
DEFAULT_TIMEOUT = 30
CACHE_TTL = 60 * 60
CHUNK_SIZE = 64 * 1024
LATEST = "latest"
USER_AGENT = "buckle"
RELEASES_FILE = "releases.json"
GITHUB_URL = "https://github.com"
GITHUB_API_URL = "https://api.github.com"

# Environment variables
ENV_CACHE = "BUCKLE_CACHE"
ENV_BINARY = "BUCKLE_BINARY"
ENV_CONFIG = "BUCKLE_CONFIG"
ENV_CONFIG_FILE = "BUCKLE_CONFIG_FILE"
ENV_SCRIPT = "BUCKLE_SCRIPT"
ENV_PRELUDE_CHECK = "BUCKLE_PRELUDE_CHECK"
ENV_DEBUG = "BUCKLE_DEBUG"
ENV_BUCK2_VERSION = "USE_BUCK2_VERSION"

# Project markers
BUCKROOT_FILE = ".buckroot"
BUCKCONFIG_FILE = ".buckconfig"
BUCKVERSION_FILE = ".buckversion"
PROJECT_CONFIG_FILE = ".buckle.toml"
