"""
Shared pytest configuration and fixtures for buckle tests.
"""

import io
import json
import subprocess
import sys
from pathlib import Path

import pytest
import zstandard

# Add src to path for testing
parent_dir = Path(__file__).parent.parent
sys.path.insert(0, str(parent_dir / "src"))

from buckle.common import ReleaseDescriptor  # noqa: E402

BINARY_CONTENT = b"#!/bin/sh\necho buck2 2024-05-15\n"
PRELUDE_HASH = "0123456789abcdef0123456789abcdef01234567"


def make_release(tag, name=None, commitish="main", assets=()):
    """Build one entry of a GitHub release listing."""
    return {
        "url": f"https://api.github.com/repos/facebook/buck2/releases/{tag}",
        "tag_name": tag,
        "name": tag if name is None else name,
        "target_commitish": commitish,
        "draft": False,
        "prerelease": False,
        "assets": [
            {
                "name": asset,
                "browser_download_url": f"https://github.com/facebook/buck2/releases/download/{tag}/{asset}",
            }
            for asset in assets
        ],
    }


@pytest.fixture
def test_constants():
    """Test constants for consistent test data."""
    return {
        "ARCH": "x86_64",
        "OS": "linux",
        "TARGET": "x86_64-unknown-linux-gnu",
        "ASSET": "buck2-x86_64-unknown-linux-gnu.zst",
        "PATTERN": "buck2-%target%.zst",
        "VERSION": "2024-05-15",
        "LATEST_COMMIT": "f00dfeedf00dfeedf00dfeedf00dfeedf00dfeed",
        "PRELUDE_HASH": PRELUDE_HASH,
        "BINARY_CONTENT": BINARY_CONTENT,
    }


@pytest.fixture
def descriptor():
    return ReleaseDescriptor(owner="facebook", repo="buck2", version="2024-05-15")


@pytest.fixture
def releases_data(test_constants):
    """A release listing with a rolling 'latest' release and two pinned ones."""
    assets = (
        "buck2-x86_64-unknown-linux-gnu.zst",
        "buck2-aarch64-apple-darwin.zst",
        "prelude_hash",
    )
    return [
        make_release("latest", commitish=test_constants["LATEST_COMMIT"], assets=assets),
        make_release("2024-05-15", assets=assets),
        make_release("2024-04-01", assets=assets[:2]),
    ]


@pytest.fixture
def releases_json(releases_data):
    return json.dumps(releases_data)


@pytest.fixture
def zstd_payload(test_constants):
    return zstandard.ZstdCompressor().compress(test_constants["BINARY_CONTENT"])


@pytest.fixture
def completed_process():
    """Factory for subprocess.CompletedProcess results."""

    def _make(stdout="", returncode=0, stderr=""):
        return subprocess.CompletedProcess(
            args=[], returncode=returncode, stdout=stdout, stderr=stderr
        )

    return _make


@pytest.fixture
def mock_network(mocker, releases_json, zstd_payload, test_constants, completed_process):
    """A network client serving the release listing and asset downloads."""
    network = mocker.MagicMock()
    network.timeout = 30
    network.get.return_value = completed_process(stdout=releases_json)

    def _open(url, headers=None):
        if url.endswith("/prelude_hash"):
            return io.BytesIO(test_constants["PRELUDE_HASH"].encode() + b"\n")
        return io.BytesIO(zstd_payload)

    network.open.side_effect = _open
    return network


@pytest.fixture
def project_dir(tmp_path):
    """A buck2 project with a .buckconfig naming the prelude."""
    root = tmp_path / "project"
    root.mkdir()
    (root / ".buckconfig").write_text(
        "[repositories]\n  root = .\n  prelude = prelude\n"
    )
    return root
