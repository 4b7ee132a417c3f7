"""Network client implementation for Buckle."""

import http.client
import io
import logging
import subprocess
import urllib.error
import urllib.request
from typing import BinaryIO, Optional

from .common import DEFAULT_TIMEOUT, USER_AGENT, Headers, ProcessResult
from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class ResponseStream(io.BufferedIOBase):
    """Readable download body that reports transfer failures as NetworkError."""

    def __init__(self, url: str, response: BinaryIO) -> None:
        super().__init__()
        self.url = url
        self.response = response

    def readable(self) -> bool:
        return True

    def read(self, size: Optional[int] = -1) -> bytes:
        try:
            return self.response.read(size)
        except (http.client.HTTPException, OSError) as e:
            raise NetworkError(f"Failed to download {self.url}: {e!r}") from e

    def close(self) -> None:
        if not self.closed:
            self.response.close()
        super().close()


class NetworkClient:
    """Concrete implementation of network operations using subprocess and urllib."""

    def __init__(self, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def _build_curl_cmd(self, base_cmd: list[str]) -> list[str]:
        """Build a curl command with common reliability options."""
        cmd = ["curl"] + base_cmd
        cmd.extend(
            [
                "--compressed",
                "--max-time",
                str(self.timeout),
            ]
        )
        return cmd

    def _with_user_agent(self, headers: Optional[Headers]) -> Headers:
        merged = {"User-Agent": USER_AGENT}
        if headers:
            merged.update(headers)
        return merged

    def get(self, url: str, headers: Optional[Headers] = None) -> ProcessResult:
        base_cmd = [
            "-L",  # Follow redirects
            "-s",  # Silent mode
            "-S",  # Show errors
            "-f",  # Fail on HTTP error
        ]

        for key, value in self._with_user_agent(headers).items():
            base_cmd.extend(["-H", f"{key}: {value}"])

        base_cmd.append(url)
        cmd = self._build_curl_cmd(base_cmd)

        logger.debug(f"GET {url}")
        try:
            return subprocess.run(cmd, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise NetworkError(f"curl is not available: {e}") from e

    def open(self, url: str, headers: Optional[Headers] = None) -> BinaryIO:
        req = urllib.request.Request(url, headers=self._with_user_agent(headers))
        logger.debug(f"Streaming {url}")
        try:
            response = urllib.request.urlopen(req, timeout=self.timeout)
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise NetworkError(f"Failed to download {url}: {e}") from e
        return ResponseStream(url, response)
