"""
End-to-end tests for Launcher resolution in buckle.launcher
"""

import io
import json
import logging
import os
import stat

import pytest
import zstandard

from buckle.common import ArchiveConfig, BindingConfig, Config, PackageType, ReleaseDescriptor
from buckle.config import Settings, default_config
from buckle.exceptions import (
    ArtifactNotFoundError,
    BindingError,
    CorruptedCacheError,
    UnsupportedPlatformError,
)
from buckle.launcher import Launcher


@pytest.fixture
def launcher(tmp_path, mock_network):
    return Launcher(
        env={"HOME": str(tmp_path / "home")},
        cache_dir=str(tmp_path / "cache"),
        network_client=mock_network,
        arch="x86_64",
        os_name="linux",
    )


def _config(version="2024-05-15", **archive_kwargs):
    return Config(
        archives={
            "buck2": ArchiveConfig(
                source=ReleaseDescriptor("facebook", "buck2", version),
                artifact_pattern="buck2-%target%.zst",
                package_type=PackageType.ZSTD_SINGLE_FILE,
                **archive_kwargs,
            )
        },
        binaries={"buck2": BindingConfig("buck2")},
    )


class TestLauncherResolve:
    """Tests for Launcher.resolve."""

    def test_cache_root_from_env(self, tmp_path, mock_network):
        """Test $BUCKLE_CACHE in the environment selects the cache root."""
        launcher = Launcher(
            env={"BUCKLE_CACHE": str(tmp_path / "env-cache")},
            network_client=mock_network,
            arch="x86_64",
            os_name="linux",
        )
        assert launcher.cache_root == tmp_path / "env-cache"
        assert launcher.cache_root.is_dir()

    def test_pinned_version_layout(self, launcher, tmp_path, test_constants):
        """Test a pinned version installs under its tag and asset name."""
        resolved = launcher.resolve(_config())

        expected = tmp_path / "cache" / "buck2" / "2024-05-15" / test_constants["ASSET"] / "buck2"
        assert resolved.path == expected
        assert resolved.name == "buck2"
        assert resolved.archive_name == "buck2"
        assert expected.read_bytes() == test_constants["BINARY_CONTENT"]
        assert (tmp_path / "cache" / "buck2" / "releases.json").is_file()
        if os.name == "posix":
            assert expected.stat().st_mode & stat.S_IXUSR

    def test_latest_layout(self, launcher, tmp_path, test_constants):
        """Test latest installs under the target commit."""
        resolved = launcher.resolve(_config("latest"))
        assert resolved.install_dir == tmp_path / "cache" / "buck2" / test_constants["LATEST_COMMIT"]

    def test_second_resolve_is_offline(self, launcher, mock_network):
        """Test a warm cache needs neither the listing nor the download."""
        first = launcher.resolve(_config())
        second = launcher.resolve(_config())
        assert first.path == second.path
        assert mock_network.get.call_count == 1
        assert mock_network.open.call_count == 1

    def test_switching_pins_installs_each_release(
        self, launcher, mock_network, releases_data, completed_process, test_constants
    ):
        """Test moving the pin to another release installs that release's binary."""
        newer = json.loads(json.dumps(releases_data[1]))
        newer["tag_name"] = newer["name"] = "2024-06-01"
        for asset in newer["assets"]:
            asset["browser_download_url"] = asset["browser_download_url"].replace(
                "/2024-05-15/", "/2024-06-01/"
            )
        mock_network.get.return_value = completed_process(
            stdout=json.dumps([newer] + releases_data)
        )
        newer_content = b"#!/bin/sh\necho buck2 2024-06-01\n"
        payloads = {
            "2024-05-15": zstandard.ZstdCompressor().compress(test_constants["BINARY_CONTENT"]),
            "2024-06-01": zstandard.ZstdCompressor().compress(newer_content),
        }
        mock_network.open.side_effect = lambda url, headers=None: io.BytesIO(
            payloads[url.split("/")[-2]]
        )

        old = launcher.resolve(_config("2024-05-15"))
        new = launcher.resolve(_config("2024-06-01"))
        back = launcher.resolve(_config("2024-05-15"))

        assert old.path != new.path
        assert old.path.read_bytes() == test_constants["BINARY_CONTENT"]
        assert new.path.read_bytes() == newer_content
        assert back.path == old.path
        assert mock_network.open.call_count == 2

    def test_marker_installed_first(self, launcher, mock_network, test_constants):
        """Test the marker asset is fetched before the binary and not executable."""
        resolved = launcher.resolve(_config(marker_asset="prelude_hash"))

        urls = [c[0][0] for c in mock_network.open.call_args_list]
        assert urls[0].endswith("/2024-05-15/prelude_hash")
        assert urls[1].endswith(f"/2024-05-15/{test_constants['ASSET']}")
        marker = resolved.install_dir / "prelude_hash"
        assert marker.read_text().strip() == test_constants["PRELUDE_HASH"]
        assert launcher.read_marker(resolved) == test_constants["PRELUDE_HASH"]
        if os.name == "posix":
            assert not marker.stat().st_mode & stat.S_IXUSR

    def test_release_without_marker(self, launcher, mock_network):
        """Test a release missing the marker still installs the binary."""
        resolved = launcher.resolve(_config("2024-04-01", marker_asset="prelude_hash"))
        assert resolved.path.is_file()
        assert mock_network.open.call_count == 1
        assert launcher.read_marker(resolved) is None

    def test_logs_fetch(self, launcher, caplog, test_constants):
        """Test the download is announced."""
        with caplog.at_level(logging.INFO):
            launcher.resolve(_config())
        assert f"fetching {test_constants['ASSET']} 2024-05-15" in caplog.text

    def test_unknown_version(self, launcher, mock_network):
        """Test an unknown version fails without downloading anything."""
        with pytest.raises(ArtifactNotFoundError, match="releases"):
            launcher.resolve(_config("v9.9.9"))
        mock_network.open.assert_not_called()

    def test_unsupported_platform(self, tmp_path, mock_network):
        """Test an unsupported platform fails before any network access."""
        launcher = Launcher(
            env={},
            cache_dir=str(tmp_path / "cache"),
            network_client=mock_network,
            arch="riscv64",
            os_name="linux",
        )
        with pytest.raises(UnsupportedPlatformError):
            launcher.resolve(_config())
        mock_network.get.assert_not_called()

    def test_binding_errors_propagate(self, launcher):
        """Test binding failures abort resolution."""
        with pytest.raises(BindingError):
            launcher.resolve(_config(), "reindeer")

    @pytest.mark.skipif(os.name != "posix", reason="exec bits are POSIX only")
    def test_corrupted_cache(self, launcher, tmp_path):
        """Test a non-executable installed binary is reported as corruption."""
        resolved = launcher.resolve(_config())
        resolved.path.chmod(0o644)
        with pytest.raises(CorruptedCacheError) as exc_info:
            launcher.resolve(_config())
        assert str(tmp_path / "cache") in str(exc_info.value)

    def test_default_config(self, launcher, project_dir, test_constants):
        """Test the built-in configuration resolves buck2 latest."""
        resolved = launcher.resolve(default_config(Settings(), project_dir))
        assert resolved.path.parent.name == test_constants["LATEST_COMMIT"]
        assert launcher.read_marker(resolved) == test_constants["PRELUDE_HASH"]


class TestLauncherIntegrity:
    """Tests for Launcher.verify_integrity."""

    def test_mismatch_is_only_a_warning(self, launcher, project_dir, mocker, test_constants):
        """Test a mismatched prelude still leaves a usable binary."""
        verify = mocker.patch(
            "buckle.launcher.verify_submodule", return_value="prelude mismatch"
        )
        resolved = launcher.resolve(_config(marker_asset="prelude_hash"))

        assert launcher.verify_integrity(resolved, project_dir) == "prelude mismatch"
        verify.assert_called_once_with(project_dir, "prelude", test_constants["PRELUDE_HASH"])
        assert resolved.path.is_file()
        assert os.access(resolved.path, os.X_OK) or os.name != "posix"

    def test_configured_submodule(self, launcher, project_dir, mocker, test_constants):
        """Test an archive's submodule setting beats .buckconfig."""
        verify = mocker.patch("buckle.launcher.verify_submodule", return_value=None)
        resolved = launcher.resolve(_config(marker_asset="prelude_hash", submodule="third-party/prelude"))
        launcher.verify_integrity(resolved, project_dir)
        verify.assert_called_once_with(
            project_dir, "third-party/prelude", test_constants["PRELUDE_HASH"]
        )

    def test_skips_without_project(self, launcher, mocker):
        """Test no project root means no check."""
        verify = mocker.patch("buckle.launcher.verify_submodule")
        resolved = launcher.resolve(_config(marker_asset="prelude_hash"))
        assert launcher.verify_integrity(resolved, None) is None
        verify.assert_not_called()

    def test_skips_without_marker(self, launcher, project_dir, mocker):
        """Test archives without a marker are not checked."""
        verify = mocker.patch("buckle.launcher.verify_submodule")
        resolved = launcher.resolve(_config())
        assert launcher.verify_integrity(resolved, project_dir) is None
        verify.assert_not_called()

    def test_skips_without_prelude_entry(self, launcher, tmp_path, mocker):
        """Test a project without a prelude entry is not checked."""
        verify = mocker.patch("buckle.launcher.verify_submodule")
        (tmp_path / ".buckconfig").write_text("[buildfile]\nname = BUCK\n")
        resolved = launcher.resolve(_config(marker_asset="prelude_hash"))
        assert launcher.verify_integrity(resolved, tmp_path) is None
        verify.assert_not_called()
