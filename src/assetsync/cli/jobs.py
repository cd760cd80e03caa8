"""Job commands for the assetsync CLI.

Commands:
- job create: Queue a sync job for a tenant
- job show: Show a job with its errors
- job list: List recent jobs
- job cancel: Cancel a pending or running job
- job retry: Retry failed assets now
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from assetsync.cli.common import db_path_option, load_settings, open_database, resolve_tenant
from assetsync.server.models import SyncJob
from assetsync.sync import jobs as job_ops
from assetsync.sync.context import ClientFactory
from assetsync.sync.rate_limiter import RateLimiter
from assetsync.sync.types import ConfigurationError, JobNotFoundError, JobStateError


@click.group()
def job() -> None:
    """Sync job commands."""


def _print_job(j: SyncJob) -> None:
    click.echo(f"Job:       {j.id}")
    click.echo(f"Tenant:    {j.tenant_id}")
    click.echo(f"Status:    {j.status}")
    click.echo(f"Created:   {j.created_at.isoformat()}")
    if j.started_at:
        click.echo(f"Started:   {j.started_at.isoformat()}")
    if j.completed_at:
        click.echo(f"Finished:  {j.completed_at.isoformat()}")
    click.echo(
        f"Assets:    {j.assets_processed} processed, "
        f"{j.assets_created} created, {j.assets_updated} updated"
    )
    if j.fatal_error:
        click.echo(f"Error:     {j.fatal_error}")
    errors = j.errors
    if errors:
        click.echo(f"Asset errors ({len(errors)}):")
        for error in errors:
            click.echo(f"  {error.asset_id}: {error.message}")


@job.command("create")
@click.argument("tenant_ref")
@db_path_option
def create_job(tenant_ref: str, db_path: Path | None) -> None:
    """Queue a sync job for a tenant (id or name)."""
    db = open_database(load_settings(db_path))
    try:
        tenant = resolve_tenant(db, tenant_ref)
        job_id = job_ops.create_pending_job(db, tenant.id)
    finally:
        db.close()
    click.echo(f"Queued job {job_id}")


@job.command("show")
@click.argument("job_id")
@db_path_option
def show_job(job_id: str, db_path: Path | None) -> None:
    """Show a job."""
    db = open_database(load_settings(db_path))
    try:
        j = db.get_job(job_id)
    finally:
        db.close()
    if j is None:
        click.echo(f"Error: Job not found: {job_id}", err=True)
        sys.exit(1)
    _print_job(j)


@job.command("list")
@click.option("--tenant", "tenant_ref", help="Only jobs of this tenant (id or name).")
@click.option("--limit", type=int, default=20, show_default=True, help="Maximum jobs to list.")
@db_path_option
def list_jobs(tenant_ref: str | None, limit: int, db_path: Path | None) -> None:
    """List recent jobs, newest first."""
    db = open_database(load_settings(db_path))
    try:
        tenant_id = resolve_tenant(db, tenant_ref).id if tenant_ref else None
        jobs = db.list_jobs(tenant_id=tenant_id, limit=limit)
    finally:
        db.close()

    if not jobs:
        click.echo("No jobs.")
        return
    for j in jobs:
        click.echo(
            f"{j.id}  {j.status:<9}  {j.created_at.isoformat()}  "
            f"{j.assets_processed} processed, {len(j.errors)} error(s)"
        )


@job.command("cancel")
@click.argument("job_id")
@db_path_option
def cancel_job(job_id: str, db_path: Path | None) -> None:
    """Cancel a pending or running job."""
    db = open_database(load_settings(db_path))
    try:
        job_ops.request_cancellation(db, job_id)
    except (JobNotFoundError, JobStateError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        db.close()
    click.echo(f"Cancelled job {job_id}")


@job.command("retry")
@click.option("--job-id", help="Retry every failed asset of this job.")
@click.option("--tenant", "tenant_ref", help="Tenant (id or name) for --asset-id.")
@click.option("--asset-id", "asset_ids", multiple=True, help="Asset to retry (repeatable).")
@click.option("--only-transient", is_flag=True, help="Only retry transient failures.")
@db_path_option
def retry_job(
    job_id: str | None,
    tenant_ref: str | None,
    asset_ids: tuple[str, ...],
    only_transient: bool,
    db_path: Path | None,
) -> None:
    """Retry failed assets now, in this process.

    Examples:

        assetsync job retry --job-id 3f2a...

        assetsync job retry --tenant acme --asset-id A1 --asset-id A2
    """
    if not job_id and not asset_ids:
        click.echo("Error: Either --job-id or --asset-id must be provided", err=True)
        sys.exit(1)

    settings = load_settings(db_path)
    db = open_database(settings)
    try:
        if job_id:
            j = db.get_job(job_id)
            if j is None:
                click.echo(f"Error: Job not found: {job_id}", err=True)
                sys.exit(1)
            tenant = resolve_tenant(db, j.tenant_id)
        elif tenant_ref:
            tenant = resolve_tenant(db, tenant_ref)
        else:
            click.echo("Error: --tenant is required with --asset-id", err=True)
            sys.exit(1)

        factory = ClientFactory(
            RateLimiter.from_config(settings.rate_limit), timeout=settings.http_timeout
        )
        try:
            ctx = factory(db, tenant)
        except ConfigurationError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        with ctx:
            result = job_ops.retry(
                ctx,
                job_id=job_id,
                asset_ids=list(asset_ids) or None,
                only_transient=only_transient,
            )
    finally:
        db.close()

    click.echo(
        f"Retried {result.processed}: {result.successful} successful, "
        f"{result.failed} failed, {result.skipped} skipped"
    )
    for error in result.errors:
        click.echo(f"  {error.asset_id} [{error.category.value}]: {error.message}")
