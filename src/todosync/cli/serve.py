"""Server command for todosync CLI."""

from __future__ import annotations

import click


@click.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", "-p", type=int, default=8000, show_default=True, help="Bind port.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API server.

    Configuration is read from TODOSYNC_* environment variables.
    """
    import uvicorn

    uvicorn.run(
        "todosync.server.app:app_factory",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )
