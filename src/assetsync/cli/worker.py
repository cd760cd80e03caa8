"""Long-running process commands for the assetsync CLI.

Commands:
- worker: Poll the job store and run jobs
- serve: Run the HTTP API
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click

from assetsync.cli.common import db_path_option, load_settings, open_database
from assetsync.core.log import setup_logging
from assetsync.sync.context import ClientFactory
from assetsync.sync.rate_limiter import RateLimiter
from assetsync.sync.worker import SyncWorker

logger = logging.getLogger(__name__)


@click.command()
@click.option("--once", is_flag=True, help="Run a single poll cycle and exit.")
@db_path_option
def worker(once: bool, db_path: Path | None) -> None:
    """Run the sync worker.

    Picks up pending jobs (and jobs abandoned by a crashed worker) and
    runs them one at a time. Stop with Ctrl+C.
    """
    settings = load_settings(db_path)
    setup_logging(settings.log_path)
    db = open_database(settings)
    limiter = RateLimiter.from_config(settings.rate_limit)
    sync_worker = SyncWorker(
        db,
        ClientFactory(limiter, timeout=settings.http_timeout),
        config=settings.worker,
    )

    click.echo(f"Worker {sync_worker.worker_id} polling {settings.db_path}")
    try:
        if once:
            handled = sync_worker.run_once()
            click.echo(f"Handled job {handled}" if handled else "No runnable job.")
        else:
            sync_worker.run_forever()
    except KeyboardInterrupt:
        click.echo("\nStopping worker...")
        sync_worker.stop()
    finally:
        db.close()


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", type=int, default=8000, show_default=True, help="Bind port.")
@db_path_option
def serve(host: str, port: int, db_path: Path | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    if db_path is not None:
        os.environ["ASSETSYNC_DB_PATH"] = str(db_path)

    uvicorn.run("assetsync.server.app:app_factory", factory=True, host=host, port=port)
