"""Domain records shared by the store, the sync engine and the API.

These are plain dataclasses. The SQLAlchemy models in
``todosync.server.models`` are mapped to and from them by the Database.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC, convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class EntityType(Enum):
    """Kind of entity a tombstone refers to."""

    LIST = "list"
    ITEM = "item"


@dataclass
class TodoItem:
    """A todo item owned by a list."""

    description: str
    completed: bool = False
    todo_list_id: int | None = None
    id: int | None = None
    remote_id: str | None = None
    source_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_synced_at: datetime | None = None
    # updated_at as last read from or written to the store
    stored_updated_at: datetime | None = field(default=None, compare=False, repr=False)

    @property
    def is_stale(self) -> bool:
        """Locally modified since the last successful sync."""
        return is_stale(self.remote_id, self.updated_at, self.last_synced_at)


@dataclass
class TodoList:
    """A todo list with its items."""

    name: str
    id: int | None = None
    remote_id: str | None = None
    source_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    last_synced_at: datetime | None = None
    # updated_at as last read from or written to the store
    stored_updated_at: datetime | None = field(default=None, compare=False, repr=False)
    items: list[TodoItem] = field(default_factory=list)

    @property
    def is_stale(self) -> bool:
        """Locally modified since the last successful sync."""
        return is_stale(self.remote_id, self.updated_at, self.last_synced_at)

    @property
    def incomplete_count(self) -> int:
        return sum(1 for item in self.items if not item.completed)


@dataclass
class DeletedEntity:
    """Tombstone for a locally deleted entity pending remote deletion.

    Attributes:
        remote_id: External id to delete.
        entity_type: LIST or ITEM.
        parent_remote_id: Remote id of the owning list (items only).
        deleted_at: When the local deletion happened.
        id: Local tombstone id.
    """

    remote_id: str
    entity_type: EntityType
    parent_remote_id: str | None = None
    deleted_at: datetime = field(default_factory=utcnow)
    id: int | None = None


def is_stale(
    remote_id: str | None,
    updated_at: datetime,
    last_synced_at: datetime | None,
) -> bool:
    """Staleness test for outbound sync."""
    return (
        remote_id is not None
        and last_synced_at is not None
        and updated_at > last_synced_at
    )
