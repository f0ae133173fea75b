"""
Diff records returned by the diff service.

These are plain immutable values. The updater consumes them as-is and never
computes diffs itself. The service speaks camelCase JSON; field names here
are snake_case.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class VersionRef:
    """
    One side of a version comparison.

    Attributes:
        id: Version identifier as known to the design tool
        label: Human-readable version label
        created_at: ISO timestamp, empty when the service did not report one
    """
    id: str
    label: str
    created_at: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "VersionRef":
        """Create VersionRef from a diff service version payload."""
        version_id = str(data["id"])
        return cls(
            id=version_id,
            label=data.get("label") or version_id,
            created_at=data.get("createdAt") or "",
        )

    @classmethod
    def placeholder(cls, version_id: str) -> "VersionRef":
        """Describe a version the service did not echo back."""
        return cls(id=version_id, label=version_id)


@dataclass(frozen=True)
class TextDiff:
    """
    A text-node change between two versions.

    A record whose previous_text is empty, or equal to current_text,
    is a no-op.

    Attributes:
        node_id: Design node identifier
        previous_text: Text as it appeared in the older version
        current_text: Text as it appears in the newer version
        node_name: Optional display name of the node
    """
    node_id: str
    previous_text: str
    current_text: str
    node_name: Optional[str] = None

    @property
    def is_noop(self) -> bool:
        """True when applying this diff can never change a file."""
        return not self.previous_text or self.previous_text == self.current_text

    @property
    def label(self) -> str:
        """Name to show in output, falling back to the node id."""
        return self.node_name or self.node_id

    @classmethod
    def from_api_response(cls, data: dict) -> "TextDiff":
        """Create TextDiff from a diff service payload."""
        return cls(
            node_id=str(data["nodeId"]),
            previous_text=_text_field(data, "previousText") or "",
            current_text=_text_field(data, "currentText") or "",
            node_name=data.get("nodeName"),
        )


@dataclass(frozen=True)
class AssetDiff:
    """
    A binary asset change between two versions.

    At most one payload source is expected. When both are present the
    inline base64 payload wins.

    Attributes:
        node_id: Design node identifier
        asset_path: Output path relative to the assets directory
        node_name: Optional display name of the node
        download_url: Remote location of the asset bytes
        base64_data: Inline base64-encoded asset bytes
        mime_type: Optional MIME type, informational only
        sha256: Optional expected hex digest of the asset bytes
    """
    node_id: str
    asset_path: Optional[str] = None
    node_name: Optional[str] = None
    download_url: Optional[str] = None
    base64_data: Optional[str] = None
    mime_type: Optional[str] = None
    sha256: Optional[str] = None

    @property
    def has_payload(self) -> bool:
        return bool(self.base64_data or self.download_url)

    @property
    def label(self) -> str:
        return self.node_name or self.node_id

    @classmethod
    def from_api_response(cls, data: dict) -> "AssetDiff":
        """Create AssetDiff from a diff service payload."""
        return cls(
            node_id=str(data["nodeId"]),
            asset_path=_text_field(data, "assetPath") or None,
            node_name=data.get("nodeName"),
            download_url=_text_field(data, "downloadUrl") or None,
            base64_data=_text_field(data, "base64Data") or None,
            mime_type=data.get("mimeType"),
            sha256=_text_field(data, "sha256") or None,
        )


@dataclass(frozen=True)
class DiffResponse:
    """All changes between two versions of one design file."""
    file_key: str
    from_version: VersionRef
    to_version: VersionRef
    diffs: tuple[TextDiff, ...] = ()
    asset_diffs: tuple[AssetDiff, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.diffs and not self.asset_diffs


def _text_field(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value
