"""Tests for the job progress WebSocket hub."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from starlette.websockets import WebSocketState

from todosync.server.jobs import JobState, JobStatus
from todosync.server.ws import ProgressHub, get_hub, set_hub


@pytest.fixture
def hub() -> ProgressHub:
    """Create a fresh ProgressHub."""
    return ProgressHub()


@pytest.fixture
def mock_ws() -> MagicMock:
    """Create a mock WebSocket."""
    ws = MagicMock()
    ws.accept = AsyncMock()
    ws.send_text = AsyncMock()
    ws.client_state = WebSocketState.CONNECTED
    return ws


class TestProgressHub:
    """Tests for ProgressHub class."""

    @pytest.mark.asyncio
    async def test_subscribe(self, hub: ProgressHub, mock_ws: MagicMock) -> None:
        await hub.subscribe("j1", mock_ws)

        mock_ws.accept.assert_called_once()
        assert await hub.subscriber_count("j1") == 1

    @pytest.mark.asyncio
    async def test_publish_to_job_subscribers(
        self, hub: ProgressHub, mock_ws: MagicMock
    ) -> None:
        """Should send the snapshot only to subscribers of that job."""
        other = MagicMock()
        other.accept = AsyncMock()
        other.send_text = AsyncMock()
        other.client_state = WebSocketState.CONNECTED
        await hub.subscribe("j1", mock_ws)
        await hub.subscribe("j2", other)

        await hub.publish(JobStatus(job_id="j1", state=JobState.PROCESSING, processed_count=5))

        data = json.loads(mock_ws.send_text.call_args[0][0])
        assert data["type"] == "job_status"
        assert data["job"]["job_id"] == "j1"
        assert data["job"]["processed_count"] == 5
        other.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_send_unsubscribes(
        self, hub: ProgressHub, mock_ws: MagicMock
    ) -> None:
        mock_ws.send_text.side_effect = RuntimeError("closed")
        await hub.subscribe("j1", mock_ws)

        await hub.publish(JobStatus(job_id="j1"))

        assert await hub.subscriber_count("j1") == 0

    @pytest.mark.asyncio
    async def test_unsubscribe(self, hub: ProgressHub, mock_ws: MagicMock) -> None:
        await hub.subscribe("j1", mock_ws)
        await hub.unsubscribe("j1", mock_ws)
        assert await hub.subscriber_count("j1") == 0

    @pytest.mark.asyncio
    async def test_publish_threadsafe(self, hub: ProgressHub, mock_ws: MagicMock) -> None:
        """Should hand snapshots from worker threads to the bound loop."""
        await hub.subscribe("j1", mock_ws)
        hub.bind_loop(asyncio.get_running_loop())

        await asyncio.to_thread(hub.publish_threadsafe, JobStatus(job_id="j1"))
        for _ in range(50):
            if mock_ws.send_text.called:
                break
            await asyncio.sleep(0.01)

        mock_ws.send_text.assert_called_once()

    def test_publish_threadsafe_without_loop(self, hub: ProgressHub) -> None:
        hub.publish_threadsafe(JobStatus(job_id="j1"))


def test_get_set_hub() -> None:
    hub = ProgressHub()
    set_hub(hub)
    assert get_hub() is hub
