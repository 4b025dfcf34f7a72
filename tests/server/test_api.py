"""Tests for FastAPI server endpoints."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from todosync.core.types import TodoList
from todosync.server.app import create_app
from todosync.server.database import Database
from todosync.server.jobs import JobQueue, JobState
from todosync.sync.coordinator import SyncCoordinator
from todosync.sync.types import SyncInProgressError, SyncMode, SyncResult


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def app(db: Database) -> FastAPI:
    """Create the app without a remote API."""
    return create_app(db)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def coordinator() -> MagicMock:
    return MagicMock(spec=SyncCoordinator)


@pytest.fixture
def sync_client(db: Database, coordinator: MagicMock) -> TestClient:
    """Create a test client with a mocked sync coordinator."""
    return TestClient(create_app(db, sync_coordinator=coordinator))


@pytest.fixture
def todo_list(client: TestClient) -> dict:
    response = client.post("/api/todolists", json={"name": "Groceries"})
    assert response.status_code == 201
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client: TestClient) -> None:
        """Health endpoint should return OK."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestTodoListEndpoints:
    """Tests for todo list endpoints."""

    def test_create_list(self, todo_list: dict) -> None:
        assert todo_list["name"] == "Groceries"
        assert todo_list["remote_id"] is None
        assert todo_list["items"] == []

    def test_create_list_rejects_blank_name(self, client: TestClient) -> None:
        response = client.post("/api/todolists", json={"name": "   "})
        assert response.status_code == 422

    def test_list_lists_with_incomplete_count(self, client: TestClient, todo_list: dict) -> None:
        base = f"/api/todolists/{todo_list['id']}/todos"
        client.post(base, json={"description": "Milk"})
        client.post(base, json={"description": "Eggs", "completed": True})

        response = client.get("/api/todolists")

        assert response.status_code == 200
        assert response.json() == [
            {"id": todo_list["id"], "name": "Groceries", "incomplete_item_count": 1}
        ]

    def test_get_list(self, client: TestClient, todo_list: dict) -> None:
        response = client.get(f"/api/todolists/{todo_list['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "Groceries"

    def test_get_missing_list(self, client: TestClient) -> None:
        response = client.get("/api/todolists/999")
        assert response.status_code == 404
        assert response.json()["detail"] == "Todo list not found: 999"

    def test_rename_list(self, client: TestClient, todo_list: dict) -> None:
        response = client.put(f"/api/todolists/{todo_list['id']}", json={"name": "Shopping"})
        assert response.status_code == 200
        assert response.json()["name"] == "Shopping"

    def test_rename_missing_list(self, client: TestClient) -> None:
        response = client.put("/api/todolists/999", json={"name": "x"})
        assert response.status_code == 404

    def test_delete_list(self, client: TestClient, todo_list: dict) -> None:
        response = client.delete(f"/api/todolists/{todo_list['id']}")
        assert response.status_code == 204
        assert client.get(f"/api/todolists/{todo_list['id']}").status_code == 404
        assert client.delete(f"/api/todolists/{todo_list['id']}").status_code == 404

    def test_delete_synced_list_records_tombstone(self, client: TestClient, db: Database) -> None:
        synced = TodoList(name="Synced", remote_id="r1")
        db.save_list(synced)

        client.delete(f"/api/todolists/{synced.id}")

        assert [t.remote_id for t in db.list_tombstones()] == ["r1"]


class TestTodoItemEndpoints:
    """Tests for todo item endpoints."""

    def test_item_lifecycle(self, client: TestClient, todo_list: dict) -> None:
        base = f"/api/todolists/{todo_list['id']}/todos"

        created = client.post(base, json={"description": "Milk"})
        assert created.status_code == 201
        item = created.json()
        assert item["completed"] is False
        assert item["todo_list_id"] == todo_list["id"]

        updated = client.put(
            f"{base}/{item['id']}", json={"description": "Oat milk", "completed": True}
        )
        assert updated.status_code == 200
        assert updated.json()["description"] == "Oat milk"
        assert updated.json()["completed"] is True

        listed = client.get(base)
        assert [i["description"] for i in listed.json()] == ["Oat milk"]

        assert client.delete(f"{base}/{item['id']}").status_code == 204
        assert client.get(base).json() == []

    def test_items_of_missing_list(self, client: TestClient) -> None:
        assert client.get("/api/todolists/999/todos").status_code == 404
        response = client.post("/api/todolists/999/todos", json={"description": "x"})
        assert response.status_code == 404

    def test_update_missing_item(self, client: TestClient, todo_list: dict) -> None:
        response = client.put(
            f"/api/todolists/{todo_list['id']}/todos/999",
            json={"description": "x", "completed": False},
        )
        assert response.status_code == 404

    def test_update_requires_both_fields(self, client: TestClient, todo_list: dict) -> None:
        base = f"/api/todolists/{todo_list['id']}/todos"
        item = client.post(base, json={"description": "Milk"}).json()

        response = client.put(f"{base}/{item['id']}", json={"completed": True})

        assert response.status_code == 422

    def test_delete_missing_item(self, client: TestClient, todo_list: dict) -> None:
        assert client.delete(f"/api/todolists/{todo_list['id']}/todos/999").status_code == 404


class TestCompleteAllEndpoints:
    """Tests for complete-all jobs."""

    def test_complete_all_job(self, app: FastAPI, client: TestClient, todo_list: dict) -> None:
        """Should accept the job, then report it completed once processed."""
        base = f"/api/todolists/{todo_list['id']}"
        for n in range(3):
            client.post(f"{base}/todos", json={"description": f"task {n}"})

        response = client.post(f"{base}/complete-all")
        assert response.status_code == 202
        job_id = response.json()["job_id"]

        queued = client.get(f"{base}/jobs/{job_id}/status")
        assert queued.status_code == 200
        assert queued.json()["state"] == "queued"

        job_queue: JobQueue = app.state.job_queue
        app.state.job_processor.process(job_queue.dequeue(timeout=0))

        done = client.get(f"{base}/jobs/{job_id}/status").json()
        assert done["state"] == JobState.COMPLETED.value
        assert done["processed_count"] == 3
        assert done["total_count"] == 3
        assert all(i["completed"] for i in client.get(f"{base}/todos").json())

    def test_complete_all_missing_list(self, client: TestClient) -> None:
        assert client.post("/api/todolists/999/complete-all").status_code == 404

    def test_complete_all_queue_full(self, db: Database) -> None:
        client = TestClient(create_app(db, job_queue=JobQueue(maxsize=1)))
        list_id = client.post("/api/todolists", json={"name": "L"}).json()["id"]
        assert client.post(f"/api/todolists/{list_id}/complete-all").status_code == 202

        response = client.post(f"/api/todolists/{list_id}/complete-all")

        assert response.status_code == 503

    def test_unknown_job(self, client: TestClient, todo_list: dict) -> None:
        response = client.get(f"/api/todolists/{todo_list['id']}/jobs/nope/status")
        assert response.status_code == 404

    def test_websocket_sends_current_status(self, app: FastAPI, todo_list: dict) -> None:
        job = app.state.job_queue.enqueue(todo_list["id"])
        app.state.job_processor.process(app.state.job_queue.dequeue(timeout=0))

        with TestClient(app) as client, client.websocket_connect(f"/ws/jobs/{job.job_id}") as ws:
            message = ws.receive_json()

        assert message["type"] == "job_status"
        assert message["job"]["job_id"] == job.job_id
        assert message["job"]["state"] == "completed"


class TestSyncEndpoints:
    """Tests for sync trigger endpoints."""

    def test_sync_not_configured(self, client: TestClient) -> None:
        response = client.post("/api/sync/full")
        assert response.status_code == 503
        assert response.json()["detail"] == "Remote API not configured"

    def test_status_not_configured(self, client: TestClient) -> None:
        response = client.get("/api/sync/status")
        assert response.status_code == 200
        assert response.json()["enabled"] is False

    @pytest.mark.parametrize(
        ("path", "mode"),
        [("pull", SyncMode.PULL), ("push", SyncMode.PUSH), ("full", SyncMode.FULL)],
    )
    def test_sync_success(
        self, sync_client: TestClient, coordinator: MagicMock, path: str, mode: SyncMode
    ) -> None:
        coordinator.run.return_value = SyncResult(lists_created=2)

        response = sync_client.post(f"/api/sync/{path}")

        assert response.status_code == 200
        assert response.json()["lists_created"] == 2
        assert response.json()["successful"] is True
        coordinator.run.assert_called_once_with(mode)

    def test_sync_with_errors_returns_500(
        self, sync_client: TestClient, coordinator: MagicMock
    ) -> None:
        """Should return the partial result with a 500 status."""
        coordinator.run.return_value = SyncResult(
            lists_created=1, errors=["Error syncing list 'x' (remote id r1): boom"]
        )

        response = sync_client.post("/api/sync/pull")

        assert response.status_code == 500
        body = response.json()
        assert body["lists_created"] == 1
        assert body["successful"] is False
        assert body["errors"] == ["Error syncing list 'x' (remote id r1): boom"]

    def test_sync_in_progress_returns_409(
        self, sync_client: TestClient, coordinator: MagicMock
    ) -> None:
        coordinator.run.side_effect = SyncInProgressError("A sync is already running")

        response = sync_client.post("/api/sync/push")

        assert response.status_code == 409
        assert response.json()["detail"] == "A sync is already running"

    def test_sync_status(self, sync_client: TestClient, coordinator: MagicMock) -> None:
        coordinator.status.return_value = {
            "running": False,
            "mode": None,
            "last_mode": "full",
            "last_started_at": "2025-06-01T12:00:00+00:00",
            "last_result": SyncResult().to_dict(),
        }

        response = sync_client.get("/api/sync/status")

        assert response.status_code == 200
        body = response.json()
        assert body["enabled"] is True
        assert body["last_mode"] == "full"
        assert body["last_result"]["successful"] is True

    def test_cancel_running_sync(self, sync_client: TestClient, coordinator: MagicMock) -> None:
        coordinator.cancel.return_value = True

        response = sync_client.post("/api/sync/cancel")

        assert response.status_code == 200
        assert response.json() == {"cancelled": True}
        coordinator.cancel.assert_called_once_with()

    def test_cancel_when_idle(self, sync_client: TestClient, coordinator: MagicMock) -> None:
        coordinator.cancel.return_value = False

        response = sync_client.post("/api/sync/cancel")

        assert response.json() == {"cancelled": False}

    def test_cancel_not_configured(self, client: TestClient) -> None:
        assert client.post("/api/sync/cancel").status_code == 503
