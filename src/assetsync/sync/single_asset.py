"""Synchronize exactly one DAM asset for one tenant.

Steps: tag check, version check, import, mapping upsert. The function never
raises; any failure comes back as ``SingleAssetResult.error``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from assetsync.core.types import SyncOrigin
from assetsync.sync.importer import import_asset
from assetsync.sync.types import SingleAssetResult

if TYPE_CHECKING:
    from assetsync.sync.context import SyncContext

logger = logging.getLogger(__name__)


def sync_single_asset(
    ctx: SyncContext,
    asset_id: str,
    origin: SyncOrigin = SyncOrigin.AUTO,
    force: bool = False,
    job_id: str | None = None,
) -> SingleAssetResult:
    """Sync one asset if it is in scope and newer than the stored copy.

    Args:
        ctx: Store, tenant and clients.
        asset_id: DAM asset id.
        origin: Recorded on the mapping row.
        force: Re-import even when the stored version is current. The stored
            version still never decreases.
        job_id: Only used for log context.

    Returns:
        created, updated, skipped, or an error message.
    """
    tenant = ctx.tenant
    try:
        sync_tags = tenant.tag_list
        if not sync_tags:
            return SingleAssetResult(asset_id, skipped=True)

        asset = ctx.dam.get_asset_metadata(asset_id)

        if not any(tag in sync_tags for tag in asset.tags):
            logger.debug("Asset %s has no sync tag, skipping", asset_id)
            return SingleAssetResult(asset_id, skipped=True)

        existing = ctx.db.get_synced_asset(tenant.id, asset_id)
        if existing is not None and (existing.dam_version or 0) >= asset.version and not force:
            logger.debug(
                "Asset %s up to date (stored v%d, DAM v%d)",
                asset_id,
                existing.dam_version,
                asset.version,
            )
            return SingleAssetResult(asset_id, skipped=True)

        imported = import_asset(ctx.dam, ctx.store, tenant, asset)

        written = ctx.db.upsert_synced_asset(
            tenant.id,
            asset_id,
            imported.file_id,
            asset.version,
            asset.tags,
            origin=origin,
            allow_same_version=force,
        )
        if not written:
            # A concurrent writer stored a newer version while we uploaded
            logger.warning("Asset %s: newer version already recorded, mapping kept", asset_id)

        if existing is None:
            return SingleAssetResult(asset_id, created=True, file_id=imported.file_id)
        return SingleAssetResult(asset_id, updated=True, file_id=imported.file_id)

    except Exception as e:
        logger.error("Job %s: asset %s failed: %s", job_id or "-", asset_id, e)
        return SingleAssetResult(asset_id, error=str(e) or type(e).__name__)
