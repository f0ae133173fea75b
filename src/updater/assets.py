"""
Binary asset diff application.

Resolves each asset diff to an output path, obtains its bytes from the
inline base64 payload or through a fetcher, verifies the optional SHA-256
checksum and writes the file.

Every failure is recorded on the result; nothing raises past
apply_asset_diffs.
"""

import base64
import binascii
import hashlib
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..diffs.models import AssetDiff

logger = logging.getLogger(__name__)


Fetcher = Callable[[str], bytes]

REASON_NO_ASSET_PATH = "asset path not provided"
REASON_NO_PAYLOAD = "no payload source provided"
REASON_OUTSIDE_ASSETS_DIR = "asset path escapes assets directory"


class AssetStatus(Enum):
    """Outcome of one asset diff."""
    WRITTEN = "written"
    SKIPPED = "skipped"
    DRY_RUN = "dry-run"


class TransportError(Exception):
    """Raised when a fetcher cannot retrieve asset bytes."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ChecksumMismatchError(Exception):
    """Raised when asset bytes do not hash to the expected digest."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"checksum mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


@dataclass(frozen=True)
class AssetDiffResult:
    """
    Outcome of applying one AssetDiff.

    Attributes:
        diff: The applied diff record
        output_path: Output path relative to the project root ("" if unknown)
        status: written, skipped or dry-run
        reason: Why the diff was skipped
    """
    diff: AssetDiff
    output_path: str
    status: AssetStatus
    reason: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.status is AssetStatus.WRITTEN

    @property
    def skipped(self) -> bool:
        return self.status is AssetStatus.SKIPPED


def http_fetcher(url: str, timeout: float = 30.0) -> bytes:
    """
    Download asset bytes with a plain GET.

    Raises:
        TransportError: On any HTTP or connection failure
    """
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
        return response.content
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise TransportError(f"Asset download failed: {e}", url=url, status_code=status) from e
    except requests.exceptions.RequestException as e:
        raise TransportError(f"Asset download failed: {e}", url=url) from e


class HttpFetcher:
    """
    Session-backed fetcher with retries for transient failures.

    Usage:
        with HttpFetcher(timeout=10) as fetcher:
            apply_asset_diffs(diffs, root, fetcher=fetcher)
    """

    def __init__(self, timeout: float = 30.0, max_retries: int = 3):
        self.timeout = timeout
        self._session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)

    def __call__(self, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.content
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise TransportError(f"Asset download failed: {e}", url=url, status_code=status) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Asset download failed: {e}", url=url) from e

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def verify_checksum(data: bytes, expected: str) -> None:
    """
    Compare the SHA-256 of data with an expected hex digest.

    Raises:
        ChecksumMismatchError: If the digests differ (case-insensitive)
    """
    actual = sha256_hex(data)
    if actual != expected.strip().lower():
        raise ChecksumMismatchError(expected=expected, actual=actual)


def apply_asset_diffs(
    diffs: Iterable[AssetDiff],
    root_dir: Path,
    assets_dir: Optional[Path] = None,
    dry_run: bool = False,
    fetcher: Fetcher = http_fetcher,
) -> list[AssetDiffResult]:
    """
    Apply asset diffs to the project.

    Args:
        diffs: Asset diffs, applied in order
        root_dir: Project root; reported paths are relative to it
        assets_dir: Base directory for asset paths (relative to root_dir
            when not absolute); defaults to root_dir
        dry_run: If True, resolve paths but fetch and write nothing
        fetcher: Callable mapping a download URL to bytes

    Returns:
        One AssetDiffResult per input diff, in input order
    """
    root = Path(root_dir).expanduser().resolve()
    base = (root / assets_dir).resolve() if assets_dir else root

    results = []
    for diff in diffs:
        result = _apply_asset_diff(diff, root, base, dry_run, fetcher)

        if result.status is AssetStatus.SKIPPED:
            logger.warning(f"Asset {diff.label} skipped: {result.reason}")
        elif result.status is AssetStatus.DRY_RUN:
            logger.info(f"DRY RUN: Would write asset {result.output_path}")
        else:
            logger.info(f"Wrote asset {result.output_path}")

        results.append(result)

    return results


def _apply_asset_diff(
    diff: AssetDiff,
    root: Path,
    base: Path,
    dry_run: bool,
    fetcher: Fetcher,
) -> AssetDiffResult:
    if not diff.asset_path:
        return AssetDiffResult(diff, "", AssetStatus.SKIPPED, REASON_NO_ASSET_PATH)

    try:
        output = (base / diff.asset_path).resolve()
        output_relative = Path(os.path.relpath(output, root)).as_posix()
    except (TypeError, ValueError, OSError) as e:
        return AssetDiffResult(diff, "", AssetStatus.SKIPPED, str(e) or type(e).__name__)

    if not output.is_relative_to(base) or output == base:
        return AssetDiffResult(diff, output_relative, AssetStatus.SKIPPED, REASON_OUTSIDE_ASSETS_DIR)

    if not diff.has_payload:
        return AssetDiffResult(diff, output_relative, AssetStatus.SKIPPED, REASON_NO_PAYLOAD)

    if dry_run:
        return AssetDiffResult(diff, output_relative, AssetStatus.DRY_RUN)

    try:
        output.parent.mkdir(parents=True, exist_ok=True)

        data = _load_payload(diff, fetcher)

        if diff.sha256:
            verify_checksum(data, diff.sha256)

        output.write_bytes(data)

    except Exception as e:
        reason = str(e) or type(e).__name__
        return AssetDiffResult(diff, output_relative, AssetStatus.SKIPPED, reason)

    return AssetDiffResult(diff, output_relative, AssetStatus.WRITTEN)


def _load_payload(diff: AssetDiff, fetcher: Fetcher) -> bytes:
    if diff.base64_data:
        try:
            return base64.b64decode(diff.base64_data)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid base64 payload: {e}") from e

    data = fetcher(diff.download_url)
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError(f"fetcher returned {type(data).__name__}, expected bytes")
    return bytes(data)
