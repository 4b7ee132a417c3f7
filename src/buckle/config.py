"""Configuration loading for Buckle."""

from __future__ import annotations

import dataclasses
import logging
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from .common import (
    ENV_BINARY,
    ENV_BUCK2_VERSION,
    ENV_CACHE,
    ENV_CONFIG,
    ENV_CONFIG_FILE,
    ENV_DEBUG,
    ENV_PRELUDE_CHECK,
    ENV_SCRIPT,
    LATEST,
    PROJECT_CONFIG_FILE,
    ArchiveConfig,
    BindingConfig,
    Config,
    PackageType,
    ReleaseDescriptor,
)
from .exceptions import ConfigError
from .project import read_version_file

logger = logging.getLogger(__name__)


def _is_truthy(value: Optional[str]) -> bool:
    return bool(value) and value not in ("0", "false", "False", "NO", "no")


@dataclasses.dataclass(frozen=True)
class Settings:
    """Snapshot of the environment variables Buckle reads."""

    cache_dir: Optional[str] = None
    binary: Optional[str] = None
    inline_config: Optional[str] = None
    config_file: Optional[str] = None
    script_mode: bool = False
    prelude_check: bool = True
    debug: bool = False
    buck2_version: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> Settings:
        return cls(
            cache_dir=environ.get(ENV_CACHE) or None,
            binary=environ.get(ENV_BINARY) or None,
            inline_config=environ.get(ENV_CONFIG) or None,
            config_file=environ.get(ENV_CONFIG_FILE) or None,
            script_mode=_is_truthy(environ.get(ENV_SCRIPT)),
            prelude_check=environ.get(ENV_PRELUDE_CHECK, "") != "NO",
            debug=_is_truthy(environ.get(ENV_DEBUG)),
            buck2_version=environ.get(ENV_BUCK2_VERSION) or None,
        )


def _require_str(table: Mapping[str, Any], key: str, where: str) -> str:
    value = table.get(key)
    if not isinstance(value, str) or not value:
        raise ConfigError(f"{where}.{key} must be a non-empty string")
    return value


def _optional_str(table: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = table.get(key)
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{where}.{key} must be a string")
    return value


def _require_table(table: Mapping[str, Any], key: str, where: str) -> Mapping[str, Any]:
    value = table.get(key)
    if not isinstance(value, Mapping):
        raise ConfigError(f"{where}.{key} must be a table")
    return value


def _parse_archive(name: str, table: Any) -> ArchiveConfig:
    where = f"archives.{name}"
    if not isinstance(table, Mapping):
        raise ConfigError(f"{where} must be a table")

    source = _require_table(table, "source", where)
    version = source.get("version", LATEST)
    if not isinstance(version, str) or not version:
        raise ConfigError(f"{where}.source.version must be a non-empty string")

    package_type = table.get("package_type", PackageType.SINGLE_FILE.value)
    try:
        package_type = PackageType(package_type)
    except ValueError:
        choices = ", ".join(p.value for p in PackageType)
        raise ConfigError(
            f"{where}.package_type '{package_type}' is not one of: {choices}"
        ) from None

    return ArchiveConfig(
        source=ReleaseDescriptor(
            owner=_require_str(source, "owner", f"{where}.source"),
            repo=_require_str(source, "repo", f"{where}.source"),
            version=version,
        ),
        artifact_pattern=_require_str(table, "artifact_pattern", where),
        package_type=package_type,
        marker_asset=_optional_str(table, "marker_asset", where),
        submodule=_optional_str(table, "submodule", where),
    )


def _parse_binding(name: str, table: Any) -> BindingConfig:
    where = f"binaries.{name}"
    if not isinstance(table, Mapping):
        raise ConfigError(f"{where} must be a table")
    return BindingConfig(provided_by=_require_str(table, "provided_by", where))


def parse_config(data: Mapping[str, Any]) -> Config:
    """
    Validate a decoded configuration document.

    Args:
        data: Mapping shaped as ``{archives: {...}, binaries: {...}}``

    Returns:
        The typed configuration

    Raises:
        ConfigError: If a key is missing or has the wrong type
    """
    archives = data.get("archives", {})
    binaries = data.get("binaries", {})
    if not isinstance(archives, Mapping):
        raise ConfigError("archives must be a table")
    if not isinstance(binaries, Mapping):
        raise ConfigError("binaries must be a table")

    return Config(
        archives={name: _parse_archive(name, table) for name, table in archives.items()},
        binaries={name: _parse_binding(name, table) for name, table in binaries.items()},
    )


def parse_config_text(text: str, origin: str = "<inline>") -> Config:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse configuration from {origin}: {e}") from e
    return parse_config(data)


def default_config(settings: Settings, project_root: Optional[Path]) -> Config:
    """The built-in configuration: a single buck2 binary."""
    version = settings.buck2_version or read_version_file(project_root) or LATEST
    return Config(
        archives={
            "buck2": ArchiveConfig(
                source=ReleaseDescriptor(owner="facebook", repo="buck2", version=version),
                artifact_pattern="buck2-%target%.zst",
                package_type=PackageType.ZSTD_SINGLE_FILE,
                marker_asset="prelude_hash",
            )
        },
        binaries={"buck2": BindingConfig(provided_by="buck2")},
    )


def load_config(settings: Settings, project_root: Optional[Path]) -> Config:
    """
    Load the configuration in precedence order.

    Inline ``$BUCKLE_CONFIG``, then ``$BUCKLE_CONFIG_FILE``, then
    ``.buckle.toml`` at the project root, then the built-in default.

    Raises:
        ConfigError: If the selected document cannot be read or parsed
    """
    if settings.inline_config:
        logger.debug(f"Using configuration from ${ENV_CONFIG}")
        return parse_config_text(settings.inline_config, f"${ENV_CONFIG}")

    config_path: Optional[Path] = None
    if settings.config_file:
        config_path = Path(settings.config_file)
    elif project_root is not None and (project_root / PROJECT_CONFIG_FILE).is_file():
        config_path = project_root / PROJECT_CONFIG_FILE

    if config_path is not None:
        logger.debug(f"Using configuration from {config_path}")
        try:
            text = config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read configuration {config_path}: {e}") from e
        return parse_config_text(text, str(config_path))

    return default_config(settings, project_root)
