"""Interfaces the sync engine expects from the DAM and the content store.

The httpx clients in this package implement them; tests use doubles.
"""

from __future__ import annotations

from typing import Protocol

from assetsync.clients.types import (
    DamAsset,
    DamAssetSummary,
    DownloadedFile,
    FileMetadataFields,
    UploadedFile,
)


class DamSource(Protocol):
    """Read side: the DAM that owns the assets."""

    def list_assets_by_tag(self, tag: str) -> list[DamAssetSummary]: ...

    def get_asset_metadata(self, asset_id: str) -> DamAsset: ...

    def get_download_url(self, asset_id: str) -> str: ...

    def download(self, url: str) -> DownloadedFile: ...

    def close(self) -> None: ...


class ContentStore(Protocol):
    """Write side: the destination that receives imported files."""

    def upload(
        self,
        data: bytes,
        content_type: str,
        path: str,
        alt_text: str = "",
    ) -> UploadedFile: ...

    def set_metadata(self, file_id: str, fields: FileMetadataFields) -> None: ...

    def close(self) -> None: ...
