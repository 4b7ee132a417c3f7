"""Atomic artifact installation for Buckle."""

import http.client
import logging
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable

import zstandard

from .common import CHUNK_SIZE, FileSystemClientProtocol, PackageType
from .exceptions import InstallError, NetworkError

logger = logging.getLogger(__name__)

StreamOpener = Callable[[], BinaryIO]


def decompress_zstd(source: BinaryIO, dest: BinaryIO) -> int:
    """
    Decode every zstd frame in ``source`` into ``dest``.

    Returns:
        The number of complete frames decoded

    Raises:
        zstandard.ZstdError: If the data is not zstd or the stream ends
            inside a frame
    """
    dctx = zstandard.ZstdDecompressor()
    dobj = dctx.decompressobj()
    frames = 0
    in_frame = False

    while chunk := source.read(CHUNK_SIZE):
        # A chunk may finish one frame and start the next
        while chunk:
            in_frame = True
            dest.write(dobj.decompress(chunk))
            if not dobj.eof:
                break
            frames += 1
            in_frame = False
            chunk = dobj.unused_data
            dobj = dctx.decompressobj()

    if in_frame or frames == 0:
        raise zstandard.ZstdError("stream ended before the zstd frame was complete")
    return frames


class AtomicInstaller:
    """Publishes artifacts into the cache via temp-file-then-rename."""

    def __init__(self, file_system_client: FileSystemClientProtocol) -> None:
        self.file_system_client = file_system_client

    def _decode(self, package_type: PackageType, source: BinaryIO, dest: BinaryIO) -> None:
        match package_type:
            case PackageType.SINGLE_FILE:
                shutil.copyfileobj(source, dest, CHUNK_SIZE)
            case PackageType.ZSTD_SINGLE_FILE:
                decompress_zstd(source, dest)
            case _:
                raise InstallError(f"Unsupported package type: {package_type}")

    def _write_temp(
        self,
        package_type: PackageType,
        opener: StreamOpener,
        destination: Path,
        final_name: str,
    ) -> Path:
        """Stream ``opener()`` into a uniquely named file inside ``destination``."""
        tmp_file = tempfile.NamedTemporaryFile(
            dir=destination, prefix=f".{final_name}.", suffix=".tmp", delete=False
        )
        tmp_path = Path(tmp_file.name)
        try:
            with tmp_file:
                with opener() as source:
                    self._decode(package_type, source, tmp_file)
                tmp_file.flush()
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
        return tmp_path

    def _publish(self, tmp_path: Path, final_path: Path, executable: bool) -> None:
        if executable:
            try:
                self.file_system_client.make_executable(tmp_path)
            except OSError as e:
                raise InstallError(f"problem setting permissions on {tmp_path}: {e}") from e

        try:
            self.file_system_client.replace(tmp_path, final_path)
        except OSError as e:
            raise InstallError(f"problem renaming {tmp_path} to {final_path}: {e}") from e

    def install(
        self,
        final_name: str,
        package_type: PackageType,
        opener: StreamOpener,
        destination: Path,
        executable: bool = True,
    ) -> Path:
        """
        Install an artifact at ``destination/final_name``.

        An existing file at the final path is returned as is and ``opener``
        is never called. Otherwise the stream is decoded into a temporary
        sibling, marked executable, and renamed into place; the rename is
        the only write that targets the final name.

        Args:
            final_name: File name of the installed artifact
            package_type: How the stream is encoded
            opener: Callable returning the readable source stream
            destination: Directory to install into
            executable: Whether to set the executable bits

        Returns:
            Path to the installed artifact

        Raises:
            InstallError: If decoding or any filesystem step fails
            NetworkError: If the stream breaks off mid-download
        """
        final_path = destination / final_name
        if self.file_system_client.exists(final_path):
            logger.debug(f"{final_path} already installed")
            return final_path

        try:
            self.file_system_client.mkdir(destination, parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"problem creating {destination}: {e}") from e

        try:
            tmp_path = self._write_temp(package_type, opener, destination, final_name)
        except zstandard.ZstdError as e:
            raise InstallError(f"problem decoding {final_name} into {destination}: {e}") from e
        except http.client.HTTPException as e:
            raise NetworkError(f"Failed to download {final_name}: {e!r}") from e
        except OSError as e:
            raise InstallError(f"problem writing {final_name} into {destination}: {e}") from e

        try:
            self._publish(tmp_path, final_path, executable)
        except InstallError:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Installed {final_path}")
        return final_path
