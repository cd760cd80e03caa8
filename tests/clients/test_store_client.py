"""Tests for the content store client."""

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import UTC, datetime

import pytest
from pytest_httpx import HTTPXMock

from assetsync.clients.errors import AuthenticationError
from assetsync.clients.store import ContentStoreClient, staged_filename
from assetsync.clients.types import FileMetadataFields

STAGED_URL = "https://store.test/api/files/staged-uploads"
FILES_URL = "https://store.test/api/files"


@pytest.fixture
def store() -> Generator[ContentStoreClient, None, None]:
    """Store client with instant transfer retries."""
    client = ContentStoreClient("https://store.test", "store-token", upload_backoff=0.0)
    yield client
    client.close()


class TestStagedFilename:
    """Tests for staged_filename()."""

    def test_basename(self) -> None:
        """Should drop the folder and replace colons."""
        assert staged_filename("dam/promo/12:30 shot.png") == "12-30 shot.png"

    def test_fallback(self) -> None:
        """Should fall back when nothing is left."""
        assert staged_filename("dam/promo/") == "asset"


class TestUpload:
    """Tests for upload()."""

    def test_multipart_target(self, store: ContentStoreClient, httpx_mock: HTTPXMock) -> None:
        """Should stage, POST the form without credentials, then register the file."""
        httpx_mock.add_response(
            url=STAGED_URL,
            method="POST",
            json={
                "url": "https://bucket.test/",
                "resource_url": "https://bucket.test/tmp/hero.png",
                "parameters": [{"name": "key", "value": "tmp/hero.png"}],
            },
        )
        httpx_mock.add_response(url="https://bucket.test/", method="POST", status_code=204)
        httpx_mock.add_response(
            url=FILES_URL, method="POST", json={"id": 42, "url": "https://cdn.test/hero.png"}
        )

        uploaded = store.upload(b"png-bytes", "image/png", "dam/promo/hero.png", alt_text="Hero")

        assert uploaded.file_id == "42"
        assert uploaded.file_url == "https://cdn.test/hero.png"

        staged = json.loads(httpx_mock.get_request(url=STAGED_URL).content)
        assert staged == {
            "filename": "hero.png",
            "mime_type": "image/png",
            "resource": "IMAGE",
            "file_size": 9,
        }

        transfer = httpx_mock.get_request(url="https://bucket.test/")
        assert transfer is not None
        assert "Authorization" not in transfer.headers
        assert b'name="key"' in transfer.content
        assert b"png-bytes" in transfer.content

        created = json.loads(httpx_mock.get_request(url=FILES_URL).content)
        assert created == {
            "resource_url": "https://bucket.test/tmp/hero.png",
            "path": "dam/promo/hero.png",
            "alt_text": "Hero",
            "content_type": "image/png",
        }

    def test_signed_put_target(self, store: ContentStoreClient, httpx_mock: HTTPXMock) -> None:
        """Should PUT raw bytes when the target has no form parameters."""
        httpx_mock.add_response(
            url=STAGED_URL, method="POST", json={"url": "https://bucket.test/signed"}
        )
        httpx_mock.add_response(url="https://bucket.test/signed", method="PUT")
        httpx_mock.add_response(url=FILES_URL, method="POST", json={"id": "f1"})

        uploaded = store.upload(b"%PDF", "application/pdf", "docs/brochure.pdf")

        assert uploaded.file_url == "https://bucket.test/signed"
        staged = json.loads(httpx_mock.get_request(url=STAGED_URL).content)
        assert staged["resource"] == "FILE"
        transfer = httpx_mock.get_request(url="https://bucket.test/signed")
        assert transfer is not None
        assert transfer.content == b"%PDF"
        assert transfer.headers["Content-Type"] == "application/pdf"

    def test_transfer_retried(self, store: ContentStoreClient, httpx_mock: HTTPXMock) -> None:
        """Should retry the byte transfer on a 503."""
        httpx_mock.add_response(
            url=STAGED_URL, method="POST", json={"url": "https://bucket.test/signed"}
        )
        httpx_mock.add_response(url="https://bucket.test/signed", method="PUT", status_code=503)
        httpx_mock.add_response(url="https://bucket.test/signed", method="PUT")
        httpx_mock.add_response(url=FILES_URL, method="POST", json={"id": "f1"})

        assert store.upload(b"data", "image/png", "a.png").file_id == "f1"
        assert len(httpx_mock.get_requests(url="https://bucket.test/signed")) == 2

    def test_transfer_not_retried_on_auth_error(
        self, store: ContentStoreClient, httpx_mock: HTTPXMock
    ) -> None:
        """Should give up immediately when the target refuses the upload."""
        httpx_mock.add_response(
            url=STAGED_URL, method="POST", json={"url": "https://bucket.test/signed"}
        )
        httpx_mock.add_response(url="https://bucket.test/signed", method="PUT", status_code=403)

        with pytest.raises(AuthenticationError):
            store.upload(b"data", "image/png", "a.png")


class TestSetMetadata:
    """Tests for set_metadata()."""

    def test_writes_fields(self, store: ContentStoreClient, httpx_mock: HTTPXMock) -> None:
        """Should PUT the provenance fields."""
        httpx_mock.add_response(url="https://store.test/api/files/42/metadata", method="PUT")

        store.set_metadata(
            "42",
            FileMetadataFields(
                asset_id="A1",
                permalink="https://dam.test/p/A1",
                tags=["promo"],
                version=2,
                synced_at=datetime(2025, 6, 1, 9, 30, tzinfo=UTC),
            ),
        )

        request = httpx_mock.get_request()
        assert request is not None
        assert request.headers["Authorization"] == "Bearer store-token"
        assert json.loads(request.content) == {
            "asset_id": "A1",
            "permalink": "https://dam.test/p/A1",
            "tags": ["promo"],
            "version": 2,
            "synced_at": "2025-06-01T09:30:00+00:00",
        }
