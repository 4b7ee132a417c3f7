"""Binding resolution for Buckle."""

from typing import Optional

from .common import ArchiveConfig, Config
from .exceptions import BindingError


def resolve_binding(
    config: Config, binary_name: Optional[str] = None
) -> tuple[str, str, ArchiveConfig]:
    """
    Map a binary name to the archive that provides it.

    Args:
        config: Parsed configuration
        binary_name: Explicit binary name; may be omitted when exactly one
            binary is configured

    Returns:
        Tuple of (binary name, archive name, archive config)

    Raises:
        BindingError: If no name was given and several binaries exist, the
            named binary is unknown, or its archive is missing
    """
    if not binary_name:
        if len(config.binaries) != 1:
            available = ", ".join(sorted(config.binaries)) or "none"
            raise BindingError(
                f"no binary name provided and the configuration declares "
                f"{len(config.binaries)} binaries ({available}). "
                f"Set BUCKLE_BINARY to choose one."
            )
        binary_name = next(iter(config.binaries))

    binding = config.binaries.get(binary_name)
    if binding is None:
        raise BindingError(f"binary '{binary_name}' is not defined in the configuration")

    archive = config.archives.get(binding.provided_by)
    if archive is None:
        raise BindingError(
            f"archive '{binding.provided_by}' provided by binary '{binary_name}' "
            f"is not defined in the configuration"
        )
    return binary_name, binding.provided_by, archive
