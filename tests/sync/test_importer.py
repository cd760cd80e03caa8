"""Tests for the DAM -> content store import pipeline."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from assetsync.clients.errors import NetworkError, ServerError
from assetsync.server.database import Database
from assetsync.server.models import Tenant
from assetsync.sync.importer import (
    alt_text_for,
    detect_mime_type,
    fix_wildcard_mime_type,
    import_asset,
)
from assetsync.sync.types import AssetImportError

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 16
WEBP_BYTES = b"RIFF\x00\x00\x00\x00WEBPVP8 "
UNKNOWN_BYTES = b"\x00" * 32


class TestDetectMimeType:
    """Tests for detect_mime_type()."""

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (JPEG_BYTES, "image/jpeg"),
            (b"\x89PNG\r\n\x1a\n" + b"\x00" * 8, "image/png"),
            (b"GIF89a" + b"\x00" * 8, "image/gif"),
            (WEBP_BYTES, "image/webp"),
            (b'<?xml version="1.0"?><svg></svg>', "image/svg+xml"),
            (b"%PDF-1.7\n" + b"\x00" * 8, "application/pdf"),
            (b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 4, "video/mp4"),
        ],
    )
    def test_signatures(self, data: bytes, expected: str) -> None:
        """Should recognise common signatures."""
        assert detect_mime_type(data) == expected

    def test_too_short(self) -> None:
        """Should not guess from fewer than 12 bytes."""
        assert detect_mime_type(b"\xff\xd8\xff") is None

    def test_unknown(self) -> None:
        """Should return None for unknown content."""
        assert detect_mime_type(UNKNOWN_BYTES) is None


class TestFixWildcard:
    """Tests for fix_wildcard_mime_type()."""

    def test_concrete_type_unchanged(self) -> None:
        """Should leave concrete types alone."""
        assert fix_wildcard_mime_type("image/png", JPEG_BYTES) == "image/png"

    def test_detects_from_bytes(self) -> None:
        """Should replace a wildcard with the detected type."""
        assert fix_wildcard_mime_type("image/*", JPEG_BYTES) == "image/jpeg"

    def test_family_fallbacks(self) -> None:
        """Should fall back per family when detection fails."""
        assert fix_wildcard_mime_type("image/*", UNKNOWN_BYTES) == "image/jpeg"
        assert fix_wildcard_mime_type("video/*", UNKNOWN_BYTES) == "video/mp4"

    def test_other_wildcard_kept(self) -> None:
        """Should keep wildcards with no fallback."""
        assert fix_wildcard_mime_type("application/*", UNKNOWN_BYTES) == "application/*"


class TestAltText:
    """Tests for alt_text_for()."""

    def test_prefers_description(self, dam) -> None:
        """Should use the description when present."""
        asset = dam.add("A1", ["promo"], description="Red shoes")
        assert alt_text_for(asset, None) == "Red shoes"

    def test_prefix_and_name(self, dam) -> None:
        """Should prepend the prefix to the name when there is no description."""
        asset = dam.add("A1", ["promo"], name="shoes.png")
        assert alt_text_for(asset, "Acme:") == "Acme: shoes.png"


class TestImportAsset:
    """Tests for import_asset()."""

    def test_uploads_and_writes_metadata(self, dam, store, tenant: Tenant) -> None:
        """Should upload under the templated path and write provenance."""
        asset = dam.add("A1", ["promo", "web"], version=3, name="hero.png")
        synced_at = datetime(2025, 6, 1, 9, 30, tzinfo=UTC)

        imported = import_asset(dam, store, tenant, asset, now=lambda: synced_at)

        assert imported.file_id == "file-1"
        assert imported.path == "dam/promo/hero.png"
        assert imported.version == 3
        assert imported.tags == ["promo", "web"]
        assert store.uploads[0]["content_type"] == "image/png"
        assert store.uploads[0]["alt_text"] == "hero.png"

        metadata = store.metadata["file-1"]
        assert metadata.asset_id == "A1"
        assert metadata.version == 3
        assert metadata.tags == ["promo", "web"]
        assert metadata.synced_at == synced_at
        assert metadata.permalink == "https://dam.test/api/v4/media/A1/download/"

    def test_permalink_from_asset(self, dam, store, tenant: Tenant) -> None:
        """Should record the asset permalink when the DAM provides one."""
        asset = dam.add("A1", ["promo"], permalink="https://dam.test/p/A1")

        import_asset(dam, store, tenant, asset)

        assert store.metadata["file-1"].permalink == "https://dam.test/p/A1"

    def test_tenant_templates(self, db: Database, dam, store, tenant: Tenant) -> None:
        """Should apply the tenant's folder template and affixes."""
        tenant = db.update_tenant(
            tenant.id,
            file_folder_template="media/{type}",
            filename_prefix="dam_",
            filename_suffix="_orig",
            alt_text_prefix="Acme",
        )
        asset = dam.add("A1", ["promo"], name="logo.png", type="image")

        imported = import_asset(dam, store, tenant, asset)

        assert imported.path == "media/image/dam_logo_orig.png"
        assert store.uploads[0]["alt_text"] == "Acme logo.png"

    def test_download_failure(self, dam, store, tenant: Tenant) -> None:
        """Should wrap download failures and upload nothing."""
        asset = dam.add("A1", ["promo"])
        dam.fail("A1", ServerError("HTTP 503 Service Unavailable", 503))

        with pytest.raises(AssetImportError, match="Failed to download asset A1: HTTP 503"):
            import_asset(dam, store, tenant, asset)

        assert store.uploads == []

    def test_upload_failure_propagates(self, dam, store, tenant: Tenant) -> None:
        """Should let store failures through unchanged."""
        asset = dam.add("A1", ["promo"])

        def broken_upload(*args: object, **kwargs: object) -> None:
            raise NetworkError("Request timeout: POST https://store.test/api/files")

        store.upload = broken_upload

        with pytest.raises(NetworkError, match="Request timeout"):
            import_asset(dam, store, tenant, asset)
