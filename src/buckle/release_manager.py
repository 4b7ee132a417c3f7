"""Release manager implementation for Buckle."""

import json
import logging
from pathlib import Path
from typing import Any

from .cache import CacheStore
from .common import (
    RELEASES_FILE,
    AssetRecord,
    NetworkClientProtocol,
    ReleaseDescriptor,
    ReleaseRecord,
)
from .exceptions import NetworkError, ParseError

logger = logging.getLogger(__name__)


def _parse_asset(asset: dict[str, Any]) -> AssetRecord:
    return AssetRecord(
        name=asset["name"],
        download_url=asset["browser_download_url"],
    )


def _parse_release(release: dict[str, Any]) -> ReleaseRecord:
    return ReleaseRecord(
        tag_name=release["tag_name"],
        target_commitish=release["target_commitish"],
        name=release.get("name"),
        assets=tuple(_parse_asset(asset) for asset in release.get("assets") or []),
    )


def parse_releases(data: bytes | str) -> list[ReleaseRecord]:
    """
    Decode a GitHub release listing.

    Args:
        data: Raw JSON body of ``/repos/<owner>/<repo>/releases``

    Returns:
        Releases in listing order

    Raises:
        ParseError: If the body is not a list of release objects
    """
    try:
        releases_data = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to parse JSON response: {e}") from e

    if not isinstance(releases_data, list):
        message = ""
        if isinstance(releases_data, dict):
            message = releases_data.get("message", "")
        raise ParseError(f"Expected a list of releases, got: {message or releases_data!r}")

    try:
        return [_parse_release(release) for release in releases_data]
    except (KeyError, TypeError) as e:
        raise ParseError(f"Malformed release entry, missing {e}") from e


class ReleaseManager:
    """Retrieves release listings, backed by the cache store."""

    def __init__(
        self,
        network_client: NetworkClientProtocol,
        cache_store: CacheStore,
    ) -> None:
        self.network_client = network_client
        self.cache_store = cache_store

    def _fetch_releases(self, descriptor: ReleaseDescriptor) -> bytes:
        url = descriptor.releases_api_url
        logger.debug(f"Fetching release list from {url}")
        headers = {"Accept": "application/vnd.github+json"}
        response = self.network_client.get(url, headers=headers)
        if response.returncode != 0:
            if "403" in response.stderr or "rate limit" in response.stderr.lower():
                raise NetworkError(
                    f"API rate limit exceeded while fetching releases for {descriptor.slug}. "
                    "Please wait a few minutes before trying again."
                )
            raise NetworkError(
                f"Failed to fetch releases for {descriptor.slug}: {response.stderr.strip()}"
            )
        return response.stdout.encode("utf-8")

    def get_releases(
        self, descriptor: ReleaseDescriptor, output_dir: Path
    ) -> list[ReleaseRecord]:
        """
        Return every published release of ``descriptor``.

        A release list cached in ``output_dir`` within the TTL is reused
        without touching the network; otherwise the listing is fetched and
        the raw body is stored before it is decoded.

        Args:
            descriptor: Source repository
            output_dir: Per-archive cache directory

        Returns:
            Releases in listing order

        Raises:
            NetworkError: If the listing cannot be fetched
            ParseError: If the listing cannot be decoded
        """
        releases_path = output_dir / RELEASES_FILE
        cached = self.cache_store.read_if_fresh(releases_path)
        if cached is not None:
            return parse_releases(cached)

        body = self._fetch_releases(descriptor)
        self.cache_store.write(releases_path, body)
        return parse_releases(body)
