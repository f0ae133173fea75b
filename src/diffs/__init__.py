"""Diff service client module."""

from .client import DiffServiceClient, DiffServiceError
from .models import AssetDiff, DiffResponse, TextDiff, VersionRef

__all__ = [
    "DiffServiceClient",
    "DiffServiceError",
    "AssetDiff",
    "DiffResponse",
    "TextDiff",
    "VersionRef",
]
