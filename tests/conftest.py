"""Shared fixtures: an isolated database, a tenant and in-memory clients."""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import datetime
from pathlib import Path

import pytest

from assetsync.clients.errors import NotFoundError
from assetsync.clients.types import (
    DamAsset,
    DamAssetSummary,
    DownloadedFile,
    FileMetadataFields,
    UploadedFile,
)
from assetsync.server.database import Database
from assetsync.server.models import SyncJob, Tenant
from assetsync.sync.context import SyncContext

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


class FakeDam:
    """In-memory DAM.

    Download failures are queued per asset: each download pops the next
    exception, if any.
    """

    def __init__(self) -> None:
        self.assets: dict[str, DamAsset] = {}
        self.listing_error: Exception | None = None
        self.failures: dict[str, list[Exception]] = {}
        self.on_download: Callable[[str], None] | None = None
        self.listed_tags: list[str] = []
        self.download_calls: list[str] = []
        self.closed = False

    def add(self, asset_id: str, tags: list[str], version: int = 1, **kwargs: object) -> DamAsset:
        asset = DamAsset(
            id=asset_id,
            name=str(kwargs.pop("name", f"{asset_id}.png")),
            tags=list(tags),
            version=version,
            **kwargs,  # type: ignore[arg-type]
        )
        self.assets[asset_id] = asset
        return asset

    def fail(self, asset_id: str, *errors: Exception) -> None:
        self.failures.setdefault(asset_id, []).extend(errors)

    def list_assets_by_tag(self, tag: str) -> list[DamAssetSummary]:
        self.listed_tags.append(tag)
        if self.listing_error is not None:
            raise self.listing_error
        return [
            DamAssetSummary(id=a.id, tags=tuple(a.tags), version=a.version)
            for a in self.assets.values()
            if tag in a.tags
        ]

    def get_asset_metadata(self, asset_id: str) -> DamAsset:
        if asset_id not in self.assets:
            raise NotFoundError(f"Asset {asset_id} not found in DAM", 404)
        return self.assets[asset_id]

    def get_download_url(self, asset_id: str) -> str:
        return f"https://dam.test/api/v4/media/{asset_id}/download/"

    def download(self, url: str) -> DownloadedFile:
        asset_id = url.rstrip("/").split("/")[-2]
        self.download_calls.append(asset_id)
        if self.on_download is not None:
            self.on_download(asset_id)
        queue = self.failures.get(asset_id)
        if queue:
            raise queue.pop(0)
        return DownloadedFile(data=PNG_BYTES, content_type="image/png")

    def close(self) -> None:
        self.closed = True


class FakeStore:
    """In-memory content store that records uploads and metadata."""

    def __init__(self) -> None:
        self.uploads: list[dict[str, object]] = []
        self.metadata: dict[str, FileMetadataFields] = {}
        self.closed = False

    def upload(
        self,
        data: bytes,
        content_type: str,
        path: str,
        alt_text: str = "",
    ) -> UploadedFile:
        file_id = f"file-{len(self.uploads) + 1}"
        self.uploads.append(
            {
                "file_id": file_id,
                "path": path,
                "content_type": content_type,
                "alt_text": alt_text,
                "size": len(data),
            }
        )
        return UploadedFile(file_id=file_id, file_url=f"https://cdn.test/{path}")

    def set_metadata(self, file_id: str, fields: FileMetadataFields) -> None:
        self.metadata[file_id] = fields

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def tenant(db: Database) -> Tenant:
    """Tenant syncing the "promo" tag, with both clients configured."""
    return db.create_tenant(
        "acme",
        sync_tags="promo",
        dam_base_url="https://dam.test",
        dam_token="dam-token",
        store_base_url="https://store.test",
        store_token="store-token",
    )


@pytest.fixture
def dam() -> FakeDam:
    """Empty in-memory DAM."""
    return FakeDam()


@pytest.fixture
def store() -> FakeStore:
    """Empty in-memory content store."""
    return FakeStore()


@pytest.fixture
def ctx(db: Database, tenant: Tenant, dam: FakeDam, store: FakeStore) -> SyncContext:
    """Sync context over the fakes."""
    return SyncContext(db=db, tenant=tenant, dam=dam, store=store)


@pytest.fixture
def set_job_times(db: Database) -> Callable[..., None]:
    """Overwrite timestamp columns of a job."""

    def _set(job_id: str, **times: datetime | None) -> None:
        with db._session() as session:
            job = session.get(SyncJob, job_id)
            assert job is not None
            for name, value in times.items():
                setattr(job, name, value)
            session.commit()

    return _set
