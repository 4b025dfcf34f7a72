"""Command-line interface for todosync.

Commands:
- serve: Run the HTTP API server
- sync: Run one sync against the configured remote API
"""

from __future__ import annotations

import click

from todosync import __version__
from todosync.cli.serve import serve
from todosync.cli.sync import sync


@click.group()
@click.version_option(__version__)
def cli() -> None:
    """todosync - Todo lists with bidirectional sync."""


cli.add_command(serve)
cli.add_command(sync)


def main() -> None:
    """Console script entry point."""
    cli()
