"""CLI implementation for Buckle."""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

from .__version__ import __version__
from .config import Settings, load_config
from .exceptions import BuckleError
from .launcher import Launcher
from .project import find_project_root

logger = logging.getLogger(__name__)


def setup_logging(script_mode: bool = False, debug: bool = False) -> None:
    """Set up logging; script mode only shows warnings and errors."""
    if debug:
        log_level = logging.DEBUG
    elif script_mode:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="buckle: %(message)s",
        stream=sys.stderr,
    )

    # For pytest compatibility, also ensure the root logger has the right level
    logging.getLogger().setLevel(log_level)

    if debug:
        logger.debug(f"Debug logging enabled (buckle {__version__})")


def run_binary(binary: Path, args: Sequence[str]) -> int:
    """Run ``binary`` with ``args``, inheriting environment and stdio."""
    try:
        completed = subprocess.run([str(binary), *args], env=os.environ.copy())
    except OSError as e:
        raise BuckleError(f"Failed to execute {binary}: {e}") from e
    return completed.returncode


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point. Every argument is forwarded to the launched binary."""
    args = list(sys.argv[1:] if argv is None else argv)
    settings = Settings.from_env(os.environ)
    setup_logging(settings.script_mode, settings.debug)

    try:
        project_root = find_project_root(Path.cwd())
        config = load_config(settings, project_root)
        launcher = Launcher(cache_dir=settings.cache_dir)
        resolved = launcher.resolve(config, settings.binary)
        logger.debug(f"Resolved {resolved.name} to {resolved.path}")

        if settings.prelude_check:
            launcher.verify_integrity(resolved, project_root)

        returncode = run_binary(resolved.path, args)
    except BuckleError as e:
        print(f"buckle: Error: {e}", file=sys.stderr)
        raise SystemExit(1) from e

    raise SystemExit(returncode)
