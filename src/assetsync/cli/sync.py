"""Ad-hoc sync command for the assetsync CLI."""

from __future__ import annotations

import sys
import uuid
from pathlib import Path

import click

from assetsync.cli.common import db_path_option, load_settings, open_database, resolve_tenant
from assetsync.core.log import setup_logging
from assetsync.core.types import SyncOrigin
from assetsync.sync.context import ClientFactory
from assetsync.sync.orchestrator import SyncOrchestrator
from assetsync.sync.rate_limiter import RateLimiter
from assetsync.sync.types import ConfigurationError


@click.command()
@click.argument("tenant_ref")
@click.option("--force", is_flag=True, help="Re-import every asset, even if up to date.")
@db_path_option
def sync(tenant_ref: str, force: bool, db_path: Path | None) -> None:
    """Run a full sync for a tenant now, without the worker.

    The run is recorded as a job, so it can be inspected and cancelled like
    a queued one.

    Examples:

        assetsync sync acme

        assetsync sync acme --force
    """
    settings = load_settings(db_path)
    setup_logging()
    db = open_database(settings)
    try:
        tenant = resolve_tenant(db, tenant_ref)
        limiter = RateLimiter.from_config(settings.rate_limit)
        try:
            ctx = ClientFactory(limiter, timeout=settings.http_timeout)(db, tenant)
        except ConfigurationError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        j = db.start_job(tenant.id, worker_id=f"cli-{uuid.uuid4().hex[:8]}")
        click.echo(f"Syncing tenant {tenant.name} (job {j.id})...")
        with ctx:
            try:
                result = SyncOrchestrator(ctx, config=settings.worker).run(
                    job_id=j.id, force=force, origin=SyncOrigin.MANUAL
                )
            except Exception as e:
                click.echo(f"Error: Sync failed: {e}", err=True)
                sys.exit(1)
    finally:
        db.close()

    if result.cancelled:
        click.echo(f"Cancelled after {result.processed} assets.")
        return
    click.echo(
        f"Done: {result.processed} processed, {result.created} created, "
        f"{result.updated} updated, {len(result.errors)} error(s)"
    )
    for error in result.errors:
        click.echo(f"  {error.asset_id}: {error.message}")
