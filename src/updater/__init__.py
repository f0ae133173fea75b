"""Diff application module."""

from .assets import AssetDiffResult, AssetStatus, HttpFetcher, TransportError, apply_asset_diffs
from .engine import UpdateEngine, UpdateReport, UpdateStats
from .files import NoFilesMatchedError, RootNotFoundError, resolve_project_files
from .text import TextDiffResult, TextMatch, apply_text_diffs

__all__ = [
    "AssetDiffResult",
    "AssetStatus",
    "HttpFetcher",
    "TransportError",
    "apply_asset_diffs",
    "UpdateEngine",
    "UpdateReport",
    "UpdateStats",
    "NoFilesMatchedError",
    "RootNotFoundError",
    "resolve_project_files",
    "TextDiffResult",
    "TextMatch",
    "apply_text_diffs",
]
