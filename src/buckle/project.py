"""Project discovery for Buckle."""

import configparser
import logging
from pathlib import Path
from typing import Optional

from .common import BUCKCONFIG_FILE, BUCKROOT_FILE, BUCKVERSION_FILE

logger = logging.getLogger(__name__)


def find_project_root(start: Path) -> Optional[Path]:
    """
    Find the project root above ``start``.

    A directory holding a .buckroot stops the search and is the root.
    Otherwise the outermost directory holding a .buckconfig is the root.

    Returns:
        The project root, or None when neither marker exists
    """
    current_root = None
    for ancestor in [start, *start.parents]:
        if (ancestor / BUCKROOT_FILE).exists():
            return ancestor
        if (ancestor / BUCKCONFIG_FILE).exists():
            current_root = ancestor
    return current_root


def read_version_file(project_root: Optional[Path]) -> Optional[str]:
    """Return the trimmed contents of .buckversion, if present."""
    if project_root is None:
        return None
    version_file = project_root / BUCKVERSION_FILE
    if not version_file.is_file():
        return None
    version = version_file.read_text(encoding="utf-8").strip()
    return version or None


def read_prelude_path(project_root: Optional[Path]) -> Optional[str]:
    """Return ``[repositories] prelude`` from .buckconfig, if it can be read."""
    if project_root is None:
        return None
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        text = (project_root / BUCKCONFIG_FILE).read_text(encoding="utf-8")
        # .buckconfig keys are usually indented, which configparser reads as continuations
        parser.read_string("\n".join(line.strip() for line in text.splitlines()))
    except (OSError, configparser.Error) as e:
        # buck2 reports a malformed .buckconfig far better than we can
        logger.debug(f"Could not read {BUCKCONFIG_FILE}: {e}")
        return None
    return parser.get("repositories", "prelude", fallback=None)
