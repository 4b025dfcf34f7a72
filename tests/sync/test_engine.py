"""Tests for SyncEngine orchestration and SyncResult."""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from unittest.mock import MagicMock

from tests.sync.helpers import NOW, T1, T2, add_local_list, remote_list
from todosync.client.api import RemotePayloadError, RemoteTodoClient
from todosync.core.config import RemoteApiConfig
from todosync.server.database import Database
from todosync.sync.engine import SyncEngine
from todosync.sync.types import SyncMode, SyncResult


class TestSyncResult:
    """Tests for SyncResult helpers."""

    def test_successful_requires_no_errors(self) -> None:
        assert SyncResult().successful
        assert not SyncResult(lists_created=3, errors=["boom"]).successful

    def test_combine(self) -> None:
        """Should add counters, keep pull skips and concatenate errors."""
        pull = SyncResult(lists_created=1, items_skipped=4, lists_skipped=2, errors=["a"])
        push = SyncResult(
            lists_created=2,
            items_updated=3,
            lists_deleted=1,
            errors=["b"],
            completed_at=NOW,
        )

        combined = SyncResult.combine(pull, push)

        assert combined.lists_created == 3
        assert combined.items_updated == 3
        assert combined.lists_deleted == 1
        assert combined.lists_skipped == 2
        assert combined.items_skipped == 4
        assert combined.errors == ["a", "b"]
        assert combined.completed_at == NOW

    def test_to_dict(self) -> None:
        result = SyncResult(items_created=2, completed_at=datetime(2025, 6, 1, tzinfo=UTC))
        data = result.to_dict()
        assert data["items_created"] == 2
        assert data["errors"] == []
        assert data["successful"] is True
        assert data["completed_at"] == "2025-06-01T00:00:00+00:00"


class TestFullSync:
    """Tests for full_sync (pull then push)."""

    def test_pull_then_push(self, engine: SyncEngine, client: MagicMock, db: Database) -> None:
        """Should mirror remote lists and create local-only ones remotely."""
        add_local_list(db, "Local only")
        client.list_all.return_value = [remote_list("r1", name="Remote")]
        client.create.return_value = remote_list("r2", name="Local only")

        result = engine.full_sync()

        assert result.successful
        assert result.lists_created == 2
        assert result.completed_at == NOW
        assert {lst.remote_id for lst in db.load_all_lists_with_items()} == {"r1", "r2"}

    def test_merged_list_is_not_pushed_back(
        self, engine: SyncEngine, client: MagicMock, db: Database
    ) -> None:
        """Should leave a list updated by the pull clean for the push."""
        add_local_list(db, "Old", remote_id="r1", updated_at=T1, last_synced_at=T1)
        client.list_all.return_value = [remote_list("r1", name="New", updated_at=T2)]

        result = engine.full_sync()

        assert result.lists_updated == 1
        client.update.assert_not_called()

    def test_pull_failure_still_pushes(
        self, engine: SyncEngine, client: MagicMock, db: Database
    ) -> None:
        """Should record the fatal pull error and still run the push."""
        add_local_list(db, "Local only")
        client.list_all.side_effect = RemotePayloadError("Expected a JSON array")
        client.create.return_value = remote_list("r1")

        result = engine.full_sync()

        assert result.errors == ["Fatal sync error: Expected a JSON array"]
        assert result.lists_created == 1

    def test_run_dispatches_mode(self, engine: SyncEngine, client: MagicMock) -> None:
        engine.run(SyncMode.PUSH)
        client.list_all.assert_not_called()

        engine.run(SyncMode.PULL)
        client.list_all.assert_called_once()


class TestCancellation:
    """Tests for cooperative cancellation."""

    def test_cancel_mid_push(self, engine: SyncEngine, client: MagicMock, db: Database) -> None:
        """Should stop after the entity in flight and keep what it finished."""
        add_local_list(db, "First")
        add_local_list(db, "Second")
        cancel = threading.Event()

        def create_and_cancel(payload):  # type: ignore[no-untyped-def]
            cancel.set()
            return remote_list("r1", name=payload.name)

        client.create.side_effect = create_and_cancel

        result = engine.sync_to_remote(cancel)

        assert result.lists_created == 1
        assert result.errors == ["Sync cancelled"]
        assert client.create.call_count == 1
        remote_ids = [lst.remote_id for lst in db.load_all_lists_with_items()]
        assert remote_ids.count("r1") == 1
        assert remote_ids.count(None) == 1

    def test_full_sync_cancelled_before_push(
        self, engine: SyncEngine, client: MagicMock, db: Database
    ) -> None:
        add_local_list(db, "Local only")
        cancel = threading.Event()

        def list_all_and_cancel():  # type: ignore[no-untyped-def]
            cancel.set()
            return []

        client.list_all.side_effect = list_all_and_cancel

        result = engine.full_sync(cancel)

        assert result.completed_at == NOW
        client.create.assert_not_called()


class TestWithHttpClient:
    """Tests running the engine against a real RemoteTodoClient."""

    def test_malformed_list_is_isolated(self, httpx_mock, db: Database) -> None:  # type: ignore[no-untyped-def]
        """A bad timestamp should fail only its own list, not the whole pull."""
        httpx_mock.add_response(
            url="http://test/todolists",
            json=[
                {"id": "r1", "name": "Broken", "updated_at": "garbage", "items": []},
                {
                    "id": "r2",
                    "name": "Fine",
                    "updated_at": "2025-02-01T09:00:00Z",
                    "items": [
                        {"id": "i1", "description": "Milk", "updated_at": "2025-02-01T09:00:00Z"}
                    ],
                },
            ],
        )
        remote = RemoteTodoClient(
            RemoteApiConfig(base_url="http://test", retry_count=0, retry_delay=0)
        )

        with remote:
            result = SyncEngine(remote, db, clock=lambda: NOW).sync_from_remote()

        assert result.errors == [
            "Error syncing list 'Broken' (remote id r1): Remote list is missing id or updated_at"
        ]
        assert result.lists_created == 1
        assert result.items_created == 1
        lists = db.load_all_lists_with_items()
        assert [(lst.remote_id, lst.name) for lst in lists] == [("r2", "Fine")]
        assert lists[0].items[0].description == "Milk"
