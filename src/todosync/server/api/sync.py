"""Sync trigger and status API routes.

A sync that records errors returns 500 with the result body, so callers
can still see what converged.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from todosync.server.api.deps import get_coordinator
from todosync.server.schemas import (
    SyncCancelResponse,
    SyncResultResponse,
    SyncStatusResponse,
)
from todosync.sync.coordinator import SyncCoordinator
from todosync.sync.types import SyncInProgressError, SyncMode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


def _run(coordinator: SyncCoordinator, mode: SyncMode) -> JSONResponse:
    logger.info("Manual %s sync triggered via API", mode.value)
    try:
        result = coordinator.run(mode)
    except SyncInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from None

    body = SyncResultResponse(**result.to_dict()).model_dump(mode="json")
    code = status.HTTP_200_OK if result.successful else status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=body)


@router.post("/pull", response_model=SyncResultResponse)
def sync_pull(coordinator: SyncCoordinator = Depends(get_coordinator)) -> JSONResponse:
    """Pull remote changes into the local store."""
    return _run(coordinator, SyncMode.PULL)


@router.post("/push", response_model=SyncResultResponse)
def sync_push(coordinator: SyncCoordinator = Depends(get_coordinator)) -> JSONResponse:
    """Push local changes to the remote API."""
    return _run(coordinator, SyncMode.PUSH)


@router.post("/full", response_model=SyncResultResponse)
def sync_full(coordinator: SyncCoordinator = Depends(get_coordinator)) -> JSONResponse:
    """Pull then push."""
    return _run(coordinator, SyncMode.FULL)


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(request: Request) -> SyncStatusResponse:
    """Get the state of the sync coordinator."""
    coordinator: SyncCoordinator | None = request.app.state.sync_coordinator
    if coordinator is None:
        return SyncStatusResponse(enabled=False, running=False)
    return SyncStatusResponse(enabled=True, **coordinator.status())


@router.post("/cancel", response_model=SyncCancelResponse)
def sync_cancel(coordinator: SyncCoordinator = Depends(get_coordinator)) -> SyncCancelResponse:
    """Ask the running sync to stop after the entity in flight.

    Returns cancelled=False when no sync is running.
    """
    return SyncCancelResponse(cancelled=coordinator.cancel())
