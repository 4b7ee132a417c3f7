"""Submodule integrity checks for Buckle."""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .common import ProcessResult

logger = logging.getLogger(__name__)


def _git(args: list[str], cwd: Path) -> Optional[ProcessResult]:
    """Run git in ``cwd``; None when git itself is unavailable."""
    try:
        return subprocess.run(
            ["git", "-C", str(cwd)] + args, capture_output=True, text=True
        )
    except FileNotFoundError:
        logger.debug("git is not available, skipping submodule check")
        return None


def find_repository_root(path: Path) -> Optional[Path]:
    """Return the work tree root containing ``path``, or None if it is not in one."""
    result = _git(["rev-parse", "--show-toplevel"], path)
    if result is None or result.returncode != 0 or not result.stdout.strip():
        return None
    return Path(result.stdout.strip())


def submodule_commit(repo_root: Path, submodule_path: str) -> Optional[str]:
    """
    Return the commit checked out in a submodule.

    Args:
        repo_root: Work tree root of the enclosing repository
        submodule_path: Submodule path relative to ``repo_root``

    Returns:
        The checked-out commit, or None if the path is not an initialized
        submodule
    """
    result = _git(["submodule", "status", "--", submodule_path], repo_root)
    if result is None or result.returncode != 0:
        return None
    for line in result.stdout.splitlines():
        if not line.strip():
            continue
        # Uninitialized submodules have no checkout to compare
        if line.startswith("-"):
            return None
        fields = line[1:].split()
        if len(fields) >= 2 and fields[1] == submodule_path:
            return fields[0]
    return None


def mismatch_message(submodule_dir: Path, actual: str, expected: str) -> str:
    return (
        f"Git submodule for prelude ({actual}) is not the expected {expected}.\n"
        f"buckle: cd {submodule_dir} && git fetch && git checkout {expected}"
    )


def verify_submodule(
    project_root: Path, submodule_path: str, expected_hash: str
) -> Optional[str]:
    """
    Warn when a submodule is not checked out at ``expected_hash``.

    Anything that prevents the comparison (no git, not a repository, not a
    submodule) skips the check silently.

    Returns:
        The warning message on mismatch, otherwise None
    """
    expected_hash = expected_hash.strip()
    if not expected_hash:
        return None

    repo_root = find_repository_root(project_root)
    if repo_root is None:
        logger.debug(f"{project_root} is not in a git repository, skipping submodule check")
        return None

    submodule_dir = project_root / submodule_path
    try:
        relative = submodule_dir.resolve().relative_to(repo_root.resolve())
    except ValueError:
        logger.debug(f"{submodule_dir} is outside {repo_root}, skipping submodule check")
        return None

    actual = submodule_commit(repo_root, relative.as_posix())
    if actual is None or actual == expected_hash:
        return None

    message = mismatch_message(submodule_dir, actual, expected_hash)
    logger.warning(message)
    return message
