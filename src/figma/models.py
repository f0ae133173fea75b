"""
Figma data models.

Only the version history listing is modelled; the updater never reads
document trees directly.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class VersionDescriptor:
    """
    A saved version of a Figma file.

    Attributes:
        id: Version identifier used in diff requests
        label: Version label, falling back to description or id
        created_at: ISO timestamp of the version
        description: Optional free-form description
    """
    id: str
    label: str
    created_at: str
    description: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict) -> "VersionDescriptor":
        """Create VersionDescriptor from a Figma versions entry."""
        raw_id = (
            data.get("id")
            or data.get("versionId")
            or data.get("label")
            or data.get("created_at")
        )
        if raw_id is None:
            raise ValueError("Version entry has no usable identifier")

        return cls(
            id=str(raw_id),
            label=data.get("label") or data.get("description") or str(raw_id) or "Unnamed version",
            created_at=data.get("created_at") or datetime.now(timezone.utc).isoformat(),
            description=data.get("description") or None,
        )
