"""WebSocket hub for live job progress.

This module provides:
- ProgressHub: Per-job WebSocket subscribers and status broadcasting
- get_hub / set_hub: Process-wide hub instance

Architecture:
    JobProcessor (thread) ──publish_threadsafe──► ProgressHub ──ws──► Browser
                                                    (event loop)
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

if TYPE_CHECKING:
    from todosync.server.jobs import JobQueue, JobStatus

logger = logging.getLogger(__name__)


class ProgressHub:
    """Fan-out of job status snapshots to WebSocket subscribers.

    Subscribers are grouped by job id. Snapshots produced on worker threads
    are handed to the event loop bound with bind_loop().
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[WebSocket]] = {}
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Set the event loop that owns the WebSocket connections."""
        self._loop = loop

    async def subscribe(self, job_id: str, websocket: WebSocket) -> None:
        """Accept a connection and register it for a job."""
        await websocket.accept()
        async with self._lock:
            self._subscribers.setdefault(job_id, set()).add(websocket)
        logger.info("Subscriber connected to job %s", job_id)

    async def unsubscribe(self, job_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._subscribers.get(job_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self._subscribers[job_id]
        logger.info("Subscriber disconnected from job %s", job_id)

    async def subscriber_count(self, job_id: str) -> int:
        async with self._lock:
            return len(self._subscribers.get(job_id, ()))

    async def publish(self, status: JobStatus) -> None:
        """Send a status snapshot to every subscriber of its job."""
        message = json.dumps({"type": "job_status", "job": status.to_dict()})

        async with self._lock:
            sockets = list(self._subscribers.get(status.job_id, ()))

        disconnected = []
        for ws in sockets:
            try:
                if ws.client_state == WebSocketState.CONNECTED:
                    await ws.send_text(message)
            except Exception:
                disconnected.append(ws)

        for ws in disconnected:
            await self.unsubscribe(status.job_id, ws)

    def publish_threadsafe(self, status: JobStatus) -> None:
        """Publish from a non-async thread.

        Snapshots are dropped when no event loop is bound.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No event loop, skipping status of job %s", status.job_id)
            return
        asyncio.run_coroutine_threadsafe(self.publish(status), loop)


# Global hub instance (created by app)
_hub: ProgressHub | None = None


def get_hub() -> ProgressHub:
    """Get the global ProgressHub instance."""
    global _hub
    if _hub is None:
        _hub = ProgressHub()
    return _hub


def set_hub(hub: ProgressHub) -> None:
    """Set the global ProgressHub instance."""
    global _hub
    _hub = hub


# WebSocket router
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/jobs/{job_id}")
async def websocket_job(websocket: WebSocket, job_id: str) -> None:
    """WebSocket endpoint streaming status snapshots of one job.

    The current status is sent right after connecting when the job is known.

    Message format (server -> client):
        {"type": "job_status", "job": {...}}

    Args:
        websocket: The WebSocket connection.
        job_id: Job to follow.
    """
    hub = get_hub()
    job_queue: JobQueue = websocket.app.state.job_queue

    await hub.subscribe(job_id, websocket)

    status = job_queue.get_status(job_id)
    if status is not None:
        with contextlib.suppress(Exception):
            await websocket.send_text(
                json.dumps({"type": "job_status", "job": status.to_dict()})
            )

    try:
        while True:
            # Subscribers don't send messages, just wait for disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.unsubscribe(job_id, websocket)
    except Exception as e:
        logger.exception("Error in job WebSocket: %s", e)
        await hub.unsubscribe(job_id, websocket)
