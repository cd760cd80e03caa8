"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import click

from assetsync.core.config import Settings
from assetsync.server.database import Database
from assetsync.server.models import Tenant

F = TypeVar("F", bound=Callable[..., object])


def db_path_option(func: F) -> F:
    """Add the --db-path option."""
    return click.option(
        "--db-path",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Path to database file (default: ASSETSYNC_DB_PATH or ./assetsync.db).",
    )(func)


def load_settings(db_path: Path | None = None) -> Settings:
    """Settings from the environment, with an optional database override."""
    try:
        settings = Settings.from_env()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if db_path is not None:
        settings.db_path = db_path
    return settings


def open_database(settings: Settings) -> Database:
    """Open (creating if needed) the database named in settings."""
    return Database(settings.db_path)


def resolve_tenant(db: Database, ref: str) -> Tenant:
    """Find a tenant by id or name, or exit with an error."""
    tenant = db.get_tenant(ref) or db.get_tenant_by_name(ref)
    if tenant is None:
        click.echo(f"Error: Tenant not found: {ref}", err=True)
        sys.exit(1)
    return tenant
