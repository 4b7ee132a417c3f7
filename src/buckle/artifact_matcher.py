"""Artifact matching for Buckle."""

import logging
from typing import Iterable, Optional

from .common import (
    LATEST,
    MatchedArtifact,
    ReleaseDescriptor,
    ReleaseRecord,
)
from .exceptions import ArtifactNotFoundError

logger = logging.getLogger(__name__)


def substitute_pattern(
    pattern: str, version: str, arch: str, os_name: str, target: str
) -> str:
    """
    Expand the placeholders of an artifact naming pattern.

    Args:
        pattern: Pattern such as 'buck2-%target%.zst'
        version: Requested version, replaces %version%
        arch: Raw architecture, replaces %arch%
        os_name: Raw OS name, replaces %os%
        target: Target triple, replaces %target%

    Returns:
        The concrete asset name
    """
    return (
        pattern.replace("%version%", version)
        .replace("%arch%", arch)
        .replace("%os%", os_name)
        .replace("%target%", target)
    )


def install_subdir(release: ReleaseRecord, asset_name: str) -> str:
    """The cache subdirectory a matched asset installs into.

    The rolling 'latest' release is keyed by the commit it points at so a
    moved tag lands in a fresh directory. Pinned releases are keyed by tag
    and asset name, since patterns rarely carry the version.
    """
    if release.tag_name == LATEST:
        return release.target_commitish
    return f"{release.tag_name}/{asset_name}"


def find_artifact(
    releases: Iterable[ReleaseRecord],
    source: ReleaseDescriptor,
    asset_name: str,
    pattern: Optional[str] = None,
) -> MatchedArtifact:
    """
    Select the asset named ``asset_name`` from the release named ``source.version``.

    Releases are scanned in listing order and, within a release, the first
    asset with the exact name is taken. The first matching release wins.

    Raises:
        ArtifactNotFoundError: If no release carries the asset
    """
    version = source.version
    match: Optional[MatchedArtifact] = None

    for release in releases:
        if release.name != version:
            continue
        asset = next((a for a in release.assets if a.name == asset_name), None)
        if asset is not None:
            match = MatchedArtifact(
                release=release,
                asset=asset,
                install_subdir=install_subdir(release, asset.name),
            )
            break

    if match is None:
        raise ArtifactNotFoundError(
            f"{asset_name} (pattern {pattern or asset_name}, version {version}) "
            f"was not available from {source.slug}. "
            f"Please check '{source.releases_page_url}' for available releases."
        )

    logger.debug(
        f"Matched {match.asset.name} in release {match.release.tag_name}"
    )
    return match
