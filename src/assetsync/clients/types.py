"""Records exchanged with the DAM and the destination content store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _parse_version(value: Any) -> int:
    """DAM versions are positive integers; a missing or zero version means 1."""
    try:
        version = int(value)
    except (TypeError, ValueError):
        return 1
    return version if version > 0 else 1


def _parse_tags(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    return [str(tag) for tag in value]


@dataclass(frozen=True)
class DamAssetSummary:
    """One entry of a DAM listing."""

    id: str
    tags: tuple[str, ...] = ()
    version: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DamAssetSummary:
        """Create from a listing item."""
        return cls(
            id=str(data["id"]),
            tags=tuple(_parse_tags(data.get("tags"))),
            version=_parse_version(data.get("version")),
        )


@dataclass
class DamAsset:
    """Full metadata for one DAM asset."""

    id: str
    name: str
    tags: list[str] = field(default_factory=list)
    version: int = 1
    description: str = ""
    type: str = "file"
    extension: str | None = None
    permalink: str | None = None
    date_created: datetime | None = None
    date_modified: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DamAsset:
        """Create from an asset-info API response."""
        extension = data.get("extension")
        if isinstance(extension, list):
            extension = extension[0] if extension else None
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            tags=_parse_tags(data.get("tags")),
            version=_parse_version(data.get("version")),
            description=str(data.get("description") or ""),
            type=str(data.get("type") or "file"),
            extension=extension or None,
            permalink=data.get("permalink") or data.get("original") or None,
            date_created=_parse_datetime(data.get("dateCreated")),
            date_modified=_parse_datetime(data.get("dateModified")),
        )

    @property
    def filename(self) -> str:
        """Original filename: the asset name plus its extension if missing."""
        if self.extension and not self.name.lower().endswith(f".{self.extension.lower()}"):
            return f"{self.name}.{self.extension}"
        return self.name


@dataclass
class DownloadedFile:
    """Binary content fetched from the DAM."""

    data: bytes
    content_type: str


@dataclass(frozen=True)
class UploadedFile:
    """A file created in the destination store."""

    file_id: str
    file_url: str


@dataclass
class FileMetadataFields:
    """Provenance fields written onto a destination-store file."""

    asset_id: str
    permalink: str
    tags: list[str]
    version: int
    synced_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the store API."""
        return {
            "asset_id": self.asset_id,
            "permalink": self.permalink,
            "tags": list(self.tags),
            "version": self.version,
            "synced_at": self.synced_at.isoformat(),
        }


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
