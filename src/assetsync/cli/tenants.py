"""Tenant commands for the assetsync CLI.

Commands:
- tenant add: Create a tenant
- tenant show: Show one tenant
- tenant list: List tenants
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from sqlalchemy.exc import IntegrityError

from assetsync.cli.common import db_path_option, load_settings, open_database, resolve_tenant
from assetsync.server.models import Tenant


@click.group()
def tenant() -> None:
    """Tenant management commands."""


def _print_tenant(t: Tenant) -> None:
    click.echo(f"Tenant:    {t.name} ({t.id})")
    click.echo(f"Sync tags: {', '.join(t.tag_list) or '(none)'}")
    click.echo(f"DAM:       {t.dam_base_url or '(not configured)'}")
    click.echo(f"Store:     {t.store_base_url or '(not configured)'}")
    if t.file_folder_template:
        click.echo(f"Folder:    {t.file_folder_template}")


@tenant.command("add")
@click.argument("name")
@click.option("--dam-url", help="DAM base URL.")
@click.option("--dam-token", help="DAM API token.")
@click.option("--store-url", help="Content store base URL.")
@click.option("--store-token", help="Content store API token.")
@click.option("--tags", help="Comma-separated sync tags (default: dam-sync).")
@click.option("--folder-template", help="Destination folder template, e.g. 'dam/{tag}'.")
@click.option("--prefix", help="Filename prefix.")
@click.option("--suffix", help="Filename suffix, inserted before the extension.")
@click.option("--alt-prefix", help="Alt text prefix.")
@db_path_option
def add_tenant(
    name: str,
    dam_url: str | None,
    dam_token: str | None,
    store_url: str | None,
    store_token: str | None,
    tags: str | None,
    folder_template: str | None,
    prefix: str | None,
    suffix: str | None,
    alt_prefix: str | None,
    db_path: Path | None,
) -> None:
    """Create a tenant.

    Examples:

        assetsync tenant add acme --dam-url https://acme.dam.example \\
            --dam-token XXX --store-url https://store.example --store-token YYY \\
            --tags "web,promo"
    """
    db = open_database(load_settings(db_path))
    try:
        created = db.create_tenant(
            name,
            dam_base_url=dam_url,
            dam_token=dam_token,
            store_base_url=store_url,
            store_token=store_token,
            sync_tags=tags,
            file_folder_template=folder_template,
            filename_prefix=prefix,
            filename_suffix=suffix,
            alt_text_prefix=alt_prefix,
        )
    except IntegrityError:
        click.echo(f"Error: Tenant '{name}' already exists", err=True)
        sys.exit(1)
    finally:
        db.close()

    click.echo(f"Created tenant {created.name} ({created.id})")


@tenant.command("show")
@click.argument("ref")
@db_path_option
def show_tenant(ref: str, db_path: Path | None) -> None:
    """Show a tenant by id or name."""
    db = open_database(load_settings(db_path))
    try:
        _print_tenant(resolve_tenant(db, ref))
    finally:
        db.close()


@tenant.command("list")
@db_path_option
def list_tenants(db_path: Path | None) -> None:
    """List tenants."""
    db = open_database(load_settings(db_path))
    try:
        tenants = db.list_tenants()
    finally:
        db.close()

    if not tenants:
        click.echo("No tenants.")
        return
    for t in tenants:
        click.echo(f"{t.id}  {t.name}  [{', '.join(t.tag_list)}]")
