"""File system client implementation for Buckle."""

import os
import stat
from pathlib import Path

EXECUTABLE_MODE = 0o755


class FileSystemClient:
    """Concrete implementation of FileSystemClientProtocol.

    Provides filesystem operations using standard pathlib operations.
    """

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_executable(self, path: Path) -> bool:
        if os.name != "posix":
            return path.is_file()
        return path.is_file() and bool(path.stat().st_mode & 0o111)

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        path.mkdir(parents=parents, exist_ok=exist_ok)

    def write(self, path: Path, data: bytes) -> None:
        with open(path, "wb") as f:
            f.write(data)

    def read(self, path: Path) -> bytes:
        with open(path, "rb") as f:
            return f.read()

    def mtime(self, path: Path) -> float:
        return path.stat().st_mtime

    def make_executable(self, path: Path) -> None:
        # Windows has no exec bits; chmod there only toggles read-only
        if os.name != "posix":
            return
        mode = path.stat().st_mode
        path.chmod(stat.S_IMODE(mode) | EXECUTABLE_MODE)

    def replace(self, source: Path, target: Path) -> None:
        source.replace(target)
