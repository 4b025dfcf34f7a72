"""Sync command for todosync CLI."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from todosync.core.config import Settings
from todosync.sync.types import SyncMode, SyncResult


def print_result(result: SyncResult) -> None:
    """Print sync counters and errors."""
    click.echo(
        f"Lists: {result.lists_created} created, {result.lists_updated} updated, "
        f"{result.lists_skipped} skipped, {result.lists_deleted} deleted"
    )
    click.echo(
        f"Items: {result.items_created} created, {result.items_updated} updated, "
        f"{result.items_skipped} skipped, {result.items_deleted} deleted"
    )
    if result.errors:
        click.echo(f"\n{len(result.errors)} error(s):", err=True)
        for error in result.errors:
            click.echo(f"  - {error}", err=True)


@click.command()
@click.argument(
    "mode",
    type=click.Choice([m.value for m in SyncMode]),
    default=SyncMode.FULL.value,
)
@click.option(
    "--db-path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to database file (default: TODOSYNC_DB_PATH or ./todosync.db).",
)
@click.option(
    "--remote-url",
    default=None,
    help="Base URL of the external todo API (default: TODOSYNC_REMOTE_BASE_URL).",
)
def sync(mode: str, db_path: Path | None, remote_url: str | None) -> None:
    """Synchronize with the external todo API.

    MODE is one of pull, push or full (default). Exits with status 1 when
    the sync recorded any error.

    Examples:

        # Pull then push
        todosync sync

        # Only send local changes
        todosync sync push --remote-url https://todos.example.com
    """
    from todosync.client.api import RemoteTodoClient
    from todosync.core.config import RemoteApiConfig
    from todosync.server.app import setup_logging
    from todosync.server.database import Database
    from todosync.sync.engine import SyncEngine

    settings = Settings.from_env()
    remote = settings.remote
    if remote_url:
        remote = RemoteApiConfig(
            base_url=remote_url,
            timeout=remote.timeout if remote else 30.0,
            retry_count=remote.retry_count if remote else 3,
            retry_delay=remote.retry_delay if remote else 2.0,
        )
    if remote is None:
        click.echo("Error: No remote API configured.", err=True)
        click.echo("Set TODOSYNC_REMOTE_BASE_URL or pass --remote-url.", err=True)
        sys.exit(1)

    setup_logging()
    db = Database(db_path or settings.db_path)
    click.echo(f"Database: {db.path}")
    click.echo(f"Remote:   {remote.base_url}")
    click.echo(f"Running {mode} sync...")

    try:
        with RemoteTodoClient(remote) as client:
            result = SyncEngine(client, db).run(SyncMode(mode))
    finally:
        db.close()

    print_result(result)
    if not result.successful:
        sys.exit(1)
    click.echo("Sync completed successfully.")
