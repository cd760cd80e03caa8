"""Command-line interface for assetsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- worker: Run the job worker
- serve: Run the HTTP API
- sync: Run a full sync for a tenant now
- tenant: Tenant management (add, show, list)
- job: Job management (create, show, list, cancel, retry)
"""

from __future__ import annotations

import click

from assetsync.cli.jobs import job
from assetsync.cli.sync import sync
from assetsync.cli.tenants import tenant
from assetsync.cli.worker import serve, worker


@click.group()
@click.version_option(package_name="assetsync")
def cli() -> None:
    """AssetSync - DAM to content store synchronization."""


# Process commands
cli.add_command(worker)
cli.add_command(serve)
cli.add_command(sync)

# Admin commands
cli.add_command(tenant)
cli.add_command(job)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
