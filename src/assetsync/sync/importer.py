"""Import pipeline: DAM asset -> content-store file.

Downloads the original from the DAM, fixes wildcard content types, uploads
under the tenant's templated path and writes provenance metadata.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from assetsync.clients.errors import APIError
from assetsync.clients.types import FileMetadataFields
from assetsync.sync.templates import build_file_path
from assetsync.sync.types import AssetImportError, ImportedFile

if TYPE_CHECKING:
    from assetsync.clients.protocols import ContentStore, DamSource
    from assetsync.clients.types import DamAsset
    from assetsync.server.models import Tenant

logger = logging.getLogger(__name__)

# Content types the DAM answers with when it only knows the family
WILDCARD_FALLBACKS = {"image/": "image/jpeg", "video/": "video/mp4"}


def detect_mime_type(data: bytes) -> str | None:
    """Detect a content type from file signature bytes.

    Returns:
        The detected type, or None if the signature is unknown.
    """
    if len(data) < 12:
        return None

    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:2] == b"BM":
        return "image/bmp"
    if data[:3] in (b"II*", b"MM\x00"):
        return "image/tiff"

    head = data[:100].decode("utf-8", errors="ignore")
    if "<svg" in head or "<?xml" in head:
        return "image/svg+xml"

    if data[:4] == b"%PDF":
        return "application/pdf"
    if data[4:8] == b"ftyp":
        return "video/mp4"
    return None


def fix_wildcard_mime_type(content_type: str, data: bytes) -> str:
    """Replace a wildcard type such as ``image/*`` with a concrete one."""
    if "/*" not in content_type:
        return content_type

    detected = detect_mime_type(data)
    if detected:
        logger.debug("Fixed wildcard content type %r -> %r", content_type, detected)
        return detected
    for family, fallback in WILDCARD_FALLBACKS.items():
        if content_type.startswith(family):
            logger.debug("Could not detect %r, defaulting to %s", content_type, fallback)
            return fallback
    return content_type


def alt_text_for(asset: DamAsset, prefix: str | None) -> str:
    """Alt text: optional prefix, then the description or the name."""
    text = asset.description or asset.name
    if prefix:
        return f"{prefix} {text}".strip()
    return text


def import_asset(
    dam: DamSource,
    store: ContentStore,
    tenant: Tenant,
    asset: DamAsset,
    now: Callable[[], datetime] | None = None,
) -> ImportedFile:
    """Copy one DAM asset into the content store.

    Args:
        dam: DAM client.
        store: Content-store client.
        tenant: Tenant whose templates and sync tags apply.
        asset: Asset metadata, already fetched.
        now: Clock for the synced_at metadata field.

    Returns:
        The created file.

    Raises:
        AssetImportError: If the download fails.
        APIError: If the upload or the metadata write fails.
    """
    url = dam.get_download_url(asset.id)
    try:
        downloaded = dam.download(url)
    except APIError as e:
        raise AssetImportError(f"Failed to download asset {asset.id}: {e}") from e

    content_type = fix_wildcard_mime_type(downloaded.content_type, downloaded.data)
    path = build_file_path(
        asset,
        tenant.tag_list,
        template=tenant.file_folder_template,
        prefix=tenant.filename_prefix,
        suffix=tenant.filename_suffix,
    )

    uploaded = store.upload(
        downloaded.data,
        content_type,
        path,
        alt_text=alt_text_for(asset, tenant.alt_text_prefix),
    )

    synced_at = now() if now else datetime.now(UTC)
    store.set_metadata(
        uploaded.file_id,
        FileMetadataFields(
            asset_id=asset.id,
            permalink=asset.permalink or url,
            tags=list(asset.tags),
            version=asset.version,
            synced_at=synced_at,
        ),
    )

    logger.info("Imported asset %s -> %s (%s)", asset.id, path, uploaded.file_id)
    return ImportedFile(
        file_id=uploaded.file_id,
        file_url=uploaded.file_url,
        path=path,
        version=asset.version,
        tags=list(asset.tags),
    )
