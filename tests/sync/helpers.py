"""Builders for remote payloads and local records used by sync tests."""

from __future__ import annotations

from datetime import UTC, datetime

from todosync.client.api import RemoteItem, RemoteList
from todosync.core.types import TodoItem, TodoList
from todosync.server.database import Database

T1 = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
T2 = datetime(2025, 2, 1, 9, 0, tzinfo=UTC)
T3 = datetime(2025, 3, 1, 9, 0, tzinfo=UTC)
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


def remote_item(
    id: str | None,
    description: str | None = "Item",
    completed: bool = False,
    source_id: str | None = None,
    updated_at: datetime | None = T2,
) -> RemoteItem:
    return RemoteItem(
        id=id,
        description=description,
        completed=completed,
        source_id=source_id,
        created_at=T1,
        updated_at=updated_at,
    )


def remote_list(
    id: str | None,
    name: str | None = "List",
    source_id: str | None = None,
    updated_at: datetime | None = T2,
    items: list[RemoteItem] | None = None,
) -> RemoteList:
    return RemoteList(
        id=id,
        name=name,
        source_id=source_id,
        created_at=T1,
        updated_at=updated_at,
        items=items or [],
    )


def local_item(
    description: str,
    completed: bool = False,
    remote_id: str | None = None,
    source_id: str | None = None,
    updated_at: datetime = T1,
    last_synced_at: datetime | None = None,
) -> TodoItem:
    return TodoItem(
        description=description,
        completed=completed,
        remote_id=remote_id,
        source_id=source_id,
        created_at=T1,
        updated_at=updated_at,
        last_synced_at=last_synced_at,
    )


def add_local_list(
    db: Database,
    name: str,
    remote_id: str | None = None,
    source_id: str | None = None,
    updated_at: datetime = T1,
    last_synced_at: datetime | None = None,
    items: list[TodoItem] | None = None,
) -> TodoList:
    """Insert a list (and its items) with explicit sync metadata."""
    todo_list = TodoList(
        name=name,
        remote_id=remote_id,
        source_id=source_id,
        created_at=T1,
        updated_at=updated_at,
        last_synced_at=last_synced_at,
        items=items or [],
    )
    db.save_list(todo_list, include_items=True)
    return todo_list
