"""FastAPI application for the todosync server.

This module creates and configures the FastAPI application with:
- REST API for todo lists, items, complete-all jobs and sync triggers
- WebSocket endpoint for live job progress
- Background job processor and scheduled sync

Usage:
    uvicorn todosync.server.app:app_factory --factory --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from todosync import __version__
from todosync.client.api import RemoteTodoClient
from todosync.core.config import RemoteApiConfig, Settings
from todosync.server.api.router import router as api_router
from todosync.server.database import Database
from todosync.server.jobs import JobProcessor, JobQueue
from todosync.server.scheduler import SyncScheduler
from todosync.server.ws import ProgressHub, set_hub
from todosync.server.ws import router as ws_router
from todosync.sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(log_path: Path | None = None, level: int = logging.INFO) -> None:
    """Configure logging to output to stdout and, optionally, a file.

    Calling it again is a no-op once handlers are installed.

    Args:
        log_path: Path to the log file.
        level: Log level of the todosync logger.
    """
    formatter = logging.Formatter(LOG_FORMAT)

    # Root logger for todosync
    root_logger = logging.getLogger("todosync")
    root_logger.setLevel(level)
    if root_logger.handlers:
        return

    # Stdout handler
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if log_path is None:
        return

    # File handler
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    # Also capture uvicorn logs to file
    for uvicorn_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(uvicorn_name)
        uvicorn_logger.addHandler(file_handler)


def build_coordinator(remote: RemoteApiConfig, db: Database) -> SyncCoordinator:
    """Create the sync coordinator for a remote API configuration."""
    return SyncCoordinator(lambda: RemoteTodoClient(remote), db)


def create_app(
    db: Database,
    settings: Settings | None = None,
    sync_coordinator: SyncCoordinator | None = None,
    job_queue: JobQueue | None = None,
) -> FastAPI:
    """Create FastAPI application with custom database and collaborators.

    Passing collaborators explicitly is primarily used for testing.

    Args:
        db: Database instance.
        settings: Application settings (defaults when omitted).
        sync_coordinator: Sync coordinator; built from settings.remote when
            omitted, sync endpoints answer 503 when neither is available.
        job_queue: Background job queue.

    Returns:
        Configured FastAPI application.
    """
    settings = settings or Settings()
    if sync_coordinator is None and settings.remote is not None:
        sync_coordinator = build_coordinator(settings.remote, db)
    job_queue = job_queue or JobQueue(maxsize=settings.job_queue_size)

    hub = ProgressHub()
    set_hub(hub)
    processor = JobProcessor(
        job_queue,
        db,
        publish=hub.publish_threadsafe,
        batch_size=settings.job_batch_size,
    )
    scheduler = (
        SyncScheduler(sync_coordinator, settings.sync_interval_minutes)
        if sync_coordinator is not None
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("=" * 60)
        logger.info("todosync Server Starting")
        logger.info("=" * 60)
        logger.info("  Database: %s", db.path)
        if settings.remote:
            logger.info("  Remote:   %s", settings.remote.base_url)
        else:
            logger.info("  Remote:   None (sync disabled)")
        logger.info("  Logs:     %s", settings.log_path.absolute())
        logger.info("=" * 60)

        hub.bind_loop(asyncio.get_running_loop())
        processor.start()
        if scheduler is not None:
            scheduler.start()

        yield

        # Shutdown
        logger.info("todosync Server shutting down")
        if scheduler is not None:
            scheduler.stop()
        processor.stop()
        hub.bind_loop(None)

    application = FastAPI(
        title="todosync Server",
        description="Todo lists with bidirectional sync to an external todo API",
        version=__version__,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "An unexpected error occurred"},
        )

    application.state.settings = settings
    application.state.db = db
    application.state.job_queue = job_queue
    application.state.job_processor = processor
    application.state.sync_coordinator = sync_coordinator
    application.state.scheduler = scheduler

    application.include_router(api_router)
    application.include_router(ws_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    settings = Settings.from_env()
    setup_logging(settings.log_path)
    return create_app(db=Database(settings.db_path), settings=settings)
