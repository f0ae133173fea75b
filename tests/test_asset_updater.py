"""
Unit tests for asset diff application.
"""

import base64
import hashlib
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from src.diffs.models import AssetDiff
from src.updater.assets import (
    AssetStatus,
    ChecksumMismatchError,
    HttpFetcher,
    TransportError,
    apply_asset_diffs,
    http_fetcher,
    sha256_hex,
    verify_checksum,
)


class TestVerifyChecksum:
    """Tests for checksum verification."""

    def test_matching_digest(self):
        verify_checksum(b"fetched", hashlib.sha256(b"fetched").hexdigest())

    def test_case_insensitive(self):
        verify_checksum(b"fetched", sha256_hex(b"fetched").upper())

    def test_mismatch_raises(self):
        with pytest.raises(ChecksumMismatchError, match="checksum mismatch"):
            verify_checksum(b"fetched", "0" * 64)


class TestApplyAssetDiffs:
    """Tests for apply_asset_diffs."""

    def test_writes_base64_asset(self, tmp_path: Path):
        """Test that inline payloads are decoded and written."""
        payload = b"svg-bytes"
        diff = AssetDiff(
            node_id="asset-1",
            node_name="Icon",
            asset_path="icons/icon.svg",
            base64_data=base64.b64encode(payload).decode("ascii"),
            mime_type="image/svg+xml",
        )

        results = apply_asset_diffs([diff], root_dir=tmp_path)

        written = tmp_path / "icons" / "icon.svg"
        assert written.read_bytes() == payload
        assert results[0].status is AssetStatus.WRITTEN
        assert results[0].output_path == "icons/icon.svg"
        assert results[0].reason is None

    def test_uses_fetcher_for_download_url(self, tmp_path: Path, fake_fetcher):
        diff = AssetDiff(
            node_id="asset-2",
            asset_path="images/banner.png",
            download_url="https://cdn.test/banner.png",
            sha256="0c7fcf412c36e9e1cfc3cca37cec9afedcfca86e1943f6827c36e88dfda41642",
        )

        results = apply_asset_diffs([diff], root_dir=tmp_path, fetcher=fake_fetcher)

        assert fake_fetcher.calls == ["https://cdn.test/banner.png"]
        assert (tmp_path / "images" / "banner.png").read_bytes() == b"fetched"
        assert results[0].status is AssetStatus.WRITTEN

    def test_correct_checksum_written(self, tmp_path: Path, sample_asset_diff: AssetDiff, svg_bytes: bytes):
        results = apply_asset_diffs([sample_asset_diff], root_dir=tmp_path)

        on_disk = (tmp_path / "icons" / "logo.svg").read_bytes()
        assert results[0].status is AssetStatus.WRITTEN
        assert hashlib.sha256(on_disk).hexdigest() == sample_asset_diff.sha256

    def test_checksum_mismatch_skips_without_writing(self, tmp_path: Path, fake_fetcher):
        """Test that a bad checksum never reaches disk."""
        diff = AssetDiff(
            node_id="asset-3",
            asset_path="images/banner.png",
            download_url="https://cdn.test/banner.png",
            sha256="f" * 64,
        )

        results = apply_asset_diffs([diff], root_dir=tmp_path, fetcher=fake_fetcher)

        assert results[0].status is AssetStatus.SKIPPED
        assert "checksum mismatch" in results[0].reason
        assert not (tmp_path / "images" / "banner.png").exists()

    def test_checksum_mismatch_keeps_existing_file(self, tmp_path: Path, fake_fetcher):
        existing = tmp_path / "images" / "banner.png"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")
        diff = AssetDiff(
            node_id="asset-3",
            asset_path="images/banner.png",
            download_url="https://cdn.test/banner.png",
            sha256="f" * 64,
        )

        apply_asset_diffs([diff], root_dir=tmp_path, fetcher=fake_fetcher)

        assert existing.read_bytes() == b"old"

    def test_dry_run_writes_nothing(self, tmp_path: Path, fake_fetcher):
        diff = AssetDiff(
            node_id="asset-4",
            asset_path="images/banner.png",
            download_url="https://cdn.test/banner.png",
        )

        results = apply_asset_diffs([diff], root_dir=tmp_path, dry_run=True, fetcher=fake_fetcher)

        assert results[0].status is AssetStatus.DRY_RUN
        assert results[0].output_path == "images/banner.png"
        assert fake_fetcher.calls == []
        assert not (tmp_path / "images").exists()

    def test_missing_asset_path_skipped(self, tmp_path: Path):
        diff = AssetDiff(node_id="asset-5", base64_data="AAAA")

        results = apply_asset_diffs([diff], root_dir=tmp_path)

        assert results[0].status is AssetStatus.SKIPPED
        assert results[0].reason == "asset path not provided"
        assert results[0].output_path == ""

    def test_missing_payload_skipped(self, tmp_path: Path):
        diff = AssetDiff(node_id="asset-6", asset_path="icons/empty.svg")

        results = apply_asset_diffs([diff], root_dir=tmp_path)

        assert results[0].status is AssetStatus.SKIPPED
        assert results[0].reason == "no payload source provided"
        assert results[0].output_path == "icons/empty.svg"

    def test_missing_payload_skipped_in_dry_run(self, tmp_path: Path):
        diff = AssetDiff(node_id="asset-6", asset_path="icons/empty.svg")

        results = apply_asset_diffs([diff], root_dir=tmp_path, dry_run=True)

        assert results[0].status is AssetStatus.SKIPPED

    def test_assets_dir_changes_output_path(self, tmp_path: Path, sample_asset_diff: AssetDiff):
        results = apply_asset_diffs(
            [sample_asset_diff],
            root_dir=tmp_path,
            assets_dir=Path("web/public/assets"),
        )

        assert results[0].output_path == "web/public/assets/icons/logo.svg"
        assert (tmp_path / "web/public/assets/icons/logo.svg").exists()

    def test_path_outside_assets_dir_skipped(self, tmp_path: Path):
        diff = AssetDiff(node_id="asset-7", asset_path="../../escape.bin", base64_data="AAAA")

        results = apply_asset_diffs([diff], root_dir=tmp_path, assets_dir=Path("assets"))

        assert results[0].status is AssetStatus.SKIPPED
        assert results[0].reason == "asset path escapes assets directory"
        assert not (tmp_path.parent / "escape.bin").exists()

    def test_fetch_error_is_local_to_record(self, tmp_path: Path, make_fetcher, sample_asset_diff: AssetDiff):
        """Test that a transport failure skips one record and the batch continues."""
        fetcher = make_fetcher(error=TransportError("connection refused", url="https://cdn.test/x.png"))
        failing = AssetDiff(node_id="asset-8", asset_path="x.png", download_url="https://cdn.test/x.png")

        results = apply_asset_diffs([failing, sample_asset_diff], root_dir=tmp_path, fetcher=fetcher)

        assert [r.status for r in results] == [AssetStatus.SKIPPED, AssetStatus.WRITTEN]
        assert results[0].reason == "connection refused"

    def test_unusable_asset_path_is_local_to_record(self, tmp_path: Path, sample_asset_diff: AssetDiff):
        """Test that a path the filesystem rejects skips one record and the batch continues."""
        bad = AssetDiff(
            node_id="asset-11",
            asset_path="a\x00b.bin",
            base64_data=base64.b64encode(b"data").decode("ascii"),
        )

        results = apply_asset_diffs([bad, sample_asset_diff], root_dir=tmp_path)

        assert [r.status for r in results] == [AssetStatus.SKIPPED, AssetStatus.WRITTEN]
        assert results[0].output_path == ""
        assert "null" in results[0].reason

    def test_invalid_base64_skipped(self, tmp_path: Path):
        diff = AssetDiff(node_id="asset-9", asset_path="bad.bin", base64_data="abc")

        results = apply_asset_diffs([diff], root_dir=tmp_path)

        assert results[0].status is AssetStatus.SKIPPED
        assert "invalid base64 payload" in results[0].reason
        assert not (tmp_path / "bad.bin").exists()

    def test_base64_preferred_over_download_url(self, tmp_path: Path, fake_fetcher):
        diff = AssetDiff(
            node_id="asset-10",
            asset_path="both.bin",
            base64_data=base64.b64encode(b"inline").decode("ascii"),
            download_url="https://cdn.test/banner.png",
        )

        apply_asset_diffs([diff], root_dir=tmp_path, fetcher=fake_fetcher)

        assert fake_fetcher.calls == []
        assert (tmp_path / "both.bin").read_bytes() == b"inline"

    def test_overwrites_existing_file(self, tmp_path: Path, sample_asset_diff: AssetDiff, svg_bytes: bytes):
        target = tmp_path / "icons" / "logo.svg"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"stale")

        apply_asset_diffs([sample_asset_diff], root_dir=tmp_path)
        apply_asset_diffs([sample_asset_diff], root_dir=tmp_path)

        assert target.read_bytes() == svg_bytes


class TestHttpFetchers:
    """Tests for the default HTTP fetchers."""

    def test_http_fetcher_returns_body(self):
        response = MagicMock()
        response.content = b"png-bytes"

        with patch("src.updater.assets.requests.get", return_value=response) as mock_get:
            assert http_fetcher("https://cdn.test/a.png") == b"png-bytes"

        mock_get.assert_called_once_with("https://cdn.test/a.png", timeout=30.0)

    def test_http_fetcher_wraps_http_errors(self):
        response = MagicMock()
        response.status_code = 404
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("404", response=response)

        with patch("src.updater.assets.requests.get", return_value=response):
            with pytest.raises(TransportError) as exc_info:
                http_fetcher("https://cdn.test/missing.png")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://cdn.test/missing.png"

    def test_session_fetcher_wraps_connection_errors(self):
        with HttpFetcher(timeout=5, max_retries=0) as fetcher:
            with patch.object(
                fetcher._session,
                "get",
                side_effect=requests.exceptions.ConnectionError("refused"),
            ):
                with pytest.raises(TransportError, match="refused"):
                    fetcher("https://cdn.test/a.png")
