"""Server database using SQLAlchemy with SQLite.

This module provides:
- Todo list and item CRUD for the HTTP API
- Tombstone recording on user-initiated deletion of synced entities
- The local store operations used by the sync engine

Timestamps:
    User-facing writes go through Database._touch(), the single place that
    stamps updated_at. The sync store writes (save_list, save_item) persist
    records verbatim so the engine controls updated_at and last_synced_at,
    unless the row changed since it was loaded. In that case only the sync
    metadata is written and ConcurrentModificationError is raised.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import Session, selectinload

from todosync.core.types import (
    DeletedEntity,
    EntityType,
    TodoItem,
    TodoList,
    as_utc,
)
from todosync.server.models import (
    Base,
    DeletedEntityRecord,
    TodoItemRecord,
    TodoListRecord,
)
from todosync.sync.types import ConcurrentModificationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _item_from_record(record: TodoItemRecord) -> TodoItem:
    item = TodoItem(
        id=record.id,
        description=record.description,
        completed=record.completed,
        todo_list_id=record.todo_list_id,
        remote_id=record.remote_id,
        source_id=record.source_id,
        created_at=as_utc(record.created_at),  # type: ignore[arg-type]
        updated_at=as_utc(record.updated_at),  # type: ignore[arg-type]
        last_synced_at=as_utc(record.last_synced_at),
    )
    item.stored_updated_at = item.updated_at
    return item


def _list_from_record(record: TodoListRecord) -> TodoList:
    todo_list = TodoList(
        id=record.id,
        name=record.name,
        remote_id=record.remote_id,
        source_id=record.source_id,
        created_at=as_utc(record.created_at),  # type: ignore[arg-type]
        updated_at=as_utc(record.updated_at),  # type: ignore[arg-type]
        last_synced_at=as_utc(record.last_synced_at),
        items=[_item_from_record(i) for i in record.items],
    )
    todo_list.stored_updated_at = todo_list.updated_at
    return todo_list


def _tombstone_from_record(record: DeletedEntityRecord) -> DeletedEntity:
    return DeletedEntity(
        id=record.id,
        remote_id=record.remote_id,
        entity_type=EntityType(record.entity_type),
        parent_remote_id=record.parent_remote_id,
        deleted_at=as_utc(record.deleted_at),  # type: ignore[arg-type]
    )


class Database:
    """SQLAlchemy database for todo lists, items and tombstones.

    Uses SQLite with WAL mode for better concurrency with multiple readers.
    Every public method runs in its own session and commits before returning.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        # check_same_thread=False: used from request handlers, the job worker
        # and the scheduler thread
        self._engine: Engine = create_engine(
            f"sqlite:///{self._db_path}",
            connect_args={"check_same_thread": False},
            echo=False,
        )

        @event.listens_for(self._engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        with self._engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL")

        # Create tables if they don't exist
        Base.metadata.create_all(self._engine)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    @staticmethod
    def _touch(record: TodoListRecord | TodoItemRecord) -> None:
        """Stamp a user-facing modification."""
        record.updated_at = datetime.now(UTC)

    def _load_list(self, session: Session, list_id: int) -> TodoListRecord | None:
        stmt = (
            select(TodoListRecord)
            .options(selectinload(TodoListRecord.items))
            .where(TodoListRecord.id == list_id)
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _load_item(
        session: Session, list_id: int, item_id: int
    ) -> TodoItemRecord | None:
        stmt = select(TodoItemRecord).where(
            TodoItemRecord.id == item_id,
            TodoItemRecord.todo_list_id == list_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    # === List operations ===

    def create_list(self, name: str, source_id: str | None = None) -> TodoList:
        """Create a local (never synced) list.

        Args:
            name: List name.
            source_id: Optional correlation key.

        Returns:
            Created TodoList.
        """
        with self._session() as session:
            record = TodoListRecord(name=name, source_id=source_id)
            self._touch(record)
            record.created_at = record.updated_at
            session.add(record)
            session.commit()
            session.refresh(record)
            return _list_from_record(record)

    def get_list(self, list_id: int) -> TodoList | None:
        """Get a list with its items.

        Args:
            list_id: Local list id.

        Returns:
            TodoList if found, None otherwise.
        """
        with self._session() as session:
            record = self._load_list(session, list_id)
            return _list_from_record(record) if record else None

    def list_lists(self) -> list[TodoList]:
        """List all todo lists with their items, ordered by id."""
        return self.load_all_lists_with_items()

    def rename_list(self, list_id: int, name: str) -> TodoList | None:
        """Rename a list.

        Returns:
            Updated TodoList, or None if not found.
        """
        with self._session() as session:
            record = self._load_list(session, list_id)
            if record is None:
                return None
            record.name = name
            self._touch(record)
            session.commit()
            return _list_from_record(record)

    def remove_list(self, list_id: int) -> bool:
        """User-initiated deletion of a list and its items.

        When the list was synced, a tombstone is recorded for it and for each
        of its synced items so the deletion can be pushed later.

        Returns:
            True if the list was deleted, False if not found.
        """
        with self._session() as session:
            record = self._load_list(session, list_id)
            if record is None:
                return False

            if record.remote_id:
                session.add(
                    DeletedEntityRecord(
                        remote_id=record.remote_id,
                        entity_type=EntityType.LIST.value,
                    )
                )
                for item in record.items:
                    if item.remote_id:
                        session.add(
                            DeletedEntityRecord(
                                remote_id=item.remote_id,
                                entity_type=EntityType.ITEM.value,
                                parent_remote_id=record.remote_id,
                            )
                        )

            session.delete(record)
            session.commit()
            return True

    # === Item operations ===

    def create_item(
        self,
        list_id: int,
        description: str,
        completed: bool = False,
    ) -> TodoItem | None:
        """Create a local item in a list.

        Returns:
            Created TodoItem, or None if the list does not exist.
        """
        with self._session() as session:
            if session.get(TodoListRecord, list_id) is None:
                return None
            record = TodoItemRecord(
                todo_list_id=list_id,
                description=description,
                completed=completed,
            )
            self._touch(record)
            record.created_at = record.updated_at
            session.add(record)
            session.commit()
            session.refresh(record)
            return _item_from_record(record)

    def get_item(self, list_id: int, item_id: int) -> TodoItem | None:
        """Get an item of a list."""
        with self._session() as session:
            record = self._load_item(session, list_id, item_id)
            return _item_from_record(record) if record else None

    def list_items(self, list_id: int) -> list[TodoItem] | None:
        """List items of a list.

        Returns:
            Items ordered by id, or None if the list does not exist.
        """
        todo_list = self.get_list(list_id)
        return todo_list.items if todo_list else None

    def update_item(
        self,
        list_id: int,
        item_id: int,
        description: str | None = None,
        completed: bool | None = None,
    ) -> TodoItem | None:
        """Update description and/or completion of an item.

        Returns:
            Updated TodoItem, or None if not found.
        """
        with self._session() as session:
            record = self._load_item(session, list_id, item_id)
            if record is None:
                return None
            if description is not None:
                record.description = description
            if completed is not None:
                record.completed = completed
            self._touch(record)
            session.commit()
            return _item_from_record(record)

    def remove_item(self, list_id: int, item_id: int) -> bool:
        """User-initiated deletion of an item.

        Records a tombstone when the item and its list were synced.

        Returns:
            True if the item was deleted, False if not found.
        """
        with self._session() as session:
            record = self._load_item(session, list_id, item_id)
            if record is None:
                return False

            if record.remote_id:
                parent_remote_id = record.todo_list.remote_id
                if parent_remote_id:
                    session.add(
                        DeletedEntityRecord(
                            remote_id=record.remote_id,
                            entity_type=EntityType.ITEM.value,
                            parent_remote_id=parent_remote_id,
                        )
                    )
                else:
                    logger.warning(
                        "Item %d has remote id %s but its list was never synced; "
                        "no tombstone recorded",
                        record.id,
                        record.remote_id,
                    )

            session.delete(record)
            session.commit()
            return True

    def count_pending_items(self, list_id: int) -> int:
        """Count incomplete items of a list."""
        with self._session() as session:
            stmt = select(func.count(TodoItemRecord.id)).where(
                TodoItemRecord.todo_list_id == list_id,
                TodoItemRecord.completed == False,  # noqa: E712
            )
            return int(session.execute(stmt).scalar_one())

    def complete_pending_items(self, list_id: int, limit: int) -> int:
        """Mark up to `limit` incomplete items of a list as completed.

        Returns:
            Number of items completed (0 when none are left).
        """
        with self._session() as session:
            stmt = (
                select(TodoItemRecord)
                .where(
                    TodoItemRecord.todo_list_id == list_id,
                    TodoItemRecord.completed == False,  # noqa: E712
                )
                .order_by(TodoItemRecord.id)
                .limit(limit)
            )
            records = list(session.execute(stmt).scalars().all())
            for record in records:
                record.completed = True
                self._touch(record)
            session.commit()
            return len(records)

    # === Sync store operations ===

    def load_all_lists_with_items(self) -> list[TodoList]:
        """Load every list with its items, ordered by id."""
        with self._session() as session:
            stmt = (
                select(TodoListRecord)
                .options(selectinload(TodoListRecord.items))
                .order_by(TodoListRecord.id)
            )
            return [_list_from_record(r) for r in session.execute(stmt).scalars().all()]

    def save_list(self, todo_list: TodoList, include_items: bool = False) -> None:
        """Insert or update a list as-is (no timestamp stamping).

        Assigns todo_list.id on insert. With include_items, every item of
        the list is written in the same transaction.

        Raises:
            ConcurrentModificationError: If the list or one of its items was
                modified or deleted since it was loaded. Sync metadata of
                the other records is still committed.
        """
        conflicts: list[str] = []
        with self._session() as session:
            record = self._upsert_list(session, todo_list, conflicts)
            if record is not None and include_items:
                for item in todo_list.items:
                    item.todo_list_id = record.id
                    self._upsert_item(session, item, conflicts)
            session.commit()
        if conflicts:
            raise ConcurrentModificationError("; ".join(conflicts))

    def save_item(self, item: TodoItem) -> None:
        """Insert or update an item as-is (no timestamp stamping).

        Assigns item.id on insert.

        Raises:
            ConcurrentModificationError: If the item was modified or deleted
                since it was loaded.
        """
        if item.todo_list_id is None:
            raise ValueError("Item must belong to a persisted list")
        conflicts: list[str] = []
        with self._session() as session:
            self._upsert_item(session, item, conflicts)
            session.commit()
        if conflicts:
            raise ConcurrentModificationError("; ".join(conflicts))

    def delete_list(self, todo_list: TodoList) -> None:
        """Delete a list and its items without recording tombstones."""
        with self._session() as session:
            record = self._load_list(session, todo_list.id) if todo_list.id else None
            if record is not None:
                session.delete(record)
                session.commit()

    def delete_item(self, item: TodoItem) -> None:
        """Delete an item without recording a tombstone."""
        with self._session() as session:
            record = session.get(TodoItemRecord, item.id) if item.id else None
            if record is not None:
                session.delete(record)
                session.commit()

    def list_tombstones(self) -> list[DeletedEntity]:
        """List pending deletion tombstones, oldest first."""
        with self._session() as session:
            stmt = select(DeletedEntityRecord).order_by(DeletedEntityRecord.id)
            return [
                _tombstone_from_record(r) for r in session.execute(stmt).scalars().all()
            ]

    def delete_tombstone(self, tombstone: DeletedEntity) -> None:
        """Remove a tombstone once its remote deletion is confirmed."""
        with self._session() as session:
            record = session.get(DeletedEntityRecord, tombstone.id) if tombstone.id else None
            if record is not None:
                session.delete(record)
                session.commit()

    @staticmethod
    def _record_tombstone(
        session: Session,
        remote_id: str,
        entity_type: EntityType,
        parent_remote_id: str | None = None,
    ) -> None:
        """Record a tombstone unless one is already pending for remote_id."""
        stmt = select(DeletedEntityRecord.id).where(
            DeletedEntityRecord.remote_id == remote_id,
            DeletedEntityRecord.entity_type == entity_type.value,
        )
        if session.execute(stmt).first() is None:
            session.add(
                DeletedEntityRecord(
                    remote_id=remote_id,
                    entity_type=entity_type.value,
                    parent_remote_id=parent_remote_id,
                )
            )

    @staticmethod
    def _keep_concurrent_edit(
        record: TodoListRecord | TodoItemRecord,
        entity: TodoList | TodoItem,
        loaded: datetime,
    ) -> None:
        """Write only sync metadata over a record changed since it was loaded.

        The record stays stale so the concurrent edit is pushed later.
        """
        current = as_utc(record.updated_at) or loaded
        record.remote_id = entity.remote_id
        if record.source_id is None:
            record.source_id = entity.source_id
        record.last_synced_at = min(loaded, current - timedelta(microseconds=1))

    def _upsert_list(
        self, session: Session, todo_list: TodoList, conflicts: list[str]
    ) -> TodoListRecord | None:
        if todo_list.id is None:
            record = TodoListRecord()
            session.add(record)
        else:
            record = session.get(TodoListRecord, todo_list.id)
            if record is None:
                logger.warning("List %d was deleted during sync", todo_list.id)
                if todo_list.remote_id:
                    self._record_tombstone(session, todo_list.remote_id, EntityType.LIST)
                conflicts.append(f"List {todo_list.id} was deleted during sync")
                return None
            loaded = todo_list.stored_updated_at
            if loaded is not None and as_utc(record.updated_at) != loaded:
                logger.warning("List %d was modified during sync", todo_list.id)
                self._keep_concurrent_edit(record, todo_list, loaded)
                session.flush()
                conflicts.append(
                    f"List {todo_list.id} was modified during sync; local changes kept"
                )
                return record
        record.name = todo_list.name
        record.remote_id = todo_list.remote_id
        record.source_id = todo_list.source_id
        record.created_at = todo_list.created_at
        record.updated_at = todo_list.updated_at
        record.last_synced_at = todo_list.last_synced_at
        session.flush()
        todo_list.id = record.id
        todo_list.stored_updated_at = todo_list.updated_at
        return record

    def _upsert_item(
        self, session: Session, item: TodoItem, conflicts: list[str]
    ) -> TodoItemRecord | None:
        if item.id is None:
            record = TodoItemRecord()
            session.add(record)
        else:
            record = session.get(TodoItemRecord, item.id)
            if record is None:
                logger.warning("Item %d was deleted during sync", item.id)
                parent = session.get(TodoListRecord, item.todo_list_id)
                if item.remote_id and parent is not None and parent.remote_id:
                    self._record_tombstone(
                        session, item.remote_id, EntityType.ITEM, parent.remote_id
                    )
                conflicts.append(f"Item {item.id} was deleted during sync")
                return None
            loaded = item.stored_updated_at
            if loaded is not None and as_utc(record.updated_at) != loaded:
                logger.warning("Item %d was modified during sync", item.id)
                self._keep_concurrent_edit(record, item, loaded)
                session.flush()
                conflicts.append(f"Item {item.id} was modified during sync; local changes kept")
                return record
        record.description = item.description
        record.completed = item.completed
        record.todo_list_id = item.todo_list_id  # type: ignore[assignment]
        record.remote_id = item.remote_id
        record.source_id = item.source_id
        record.created_at = item.created_at
        record.updated_at = item.updated_at
        record.last_synced_at = item.last_synced_at
        session.flush()
        item.id = record.id
        item.stored_updated_at = item.updated_at
        return record
