"""FastAPI dependencies for API routes."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from todosync.server.database import Database
from todosync.server.jobs import JobQueue
from todosync.sync.coordinator import SyncCoordinator


def get_db(request: Request) -> Database:
    """Get database from app state."""
    db: Database = request.app.state.db
    return db


def get_job_queue(request: Request) -> JobQueue:
    """Get background job queue from app state."""
    job_queue: JobQueue = request.app.state.job_queue
    return job_queue


def get_coordinator(request: Request) -> SyncCoordinator:
    """Get sync coordinator from app state."""
    coordinator: SyncCoordinator | None = request.app.state.sync_coordinator
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Remote API not configured",
        )
    return coordinator
