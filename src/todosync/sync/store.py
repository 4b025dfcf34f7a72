"""Persistence operations required by the sync engine."""

from __future__ import annotations

from typing import Protocol

from todosync.core.types import DeletedEntity, TodoItem, TodoList


class LocalStore(Protocol):
    """Local store used by the sync engine.

    Every write commits durably before returning. save_list and save_item
    persist the record as given (no timestamp stamping) and assign the local
    id on insert. They raise ConcurrentModificationError when the record
    changed or was deleted since it was loaded.
    """

    def load_all_lists_with_items(self) -> list[TodoList]: ...

    def save_list(self, todo_list: TodoList, include_items: bool = False) -> None: ...

    def save_item(self, item: TodoItem) -> None: ...

    def delete_list(self, todo_list: TodoList) -> None: ...

    def delete_item(self, item: TodoItem) -> None: ...

    def list_tombstones(self) -> list[DeletedEntity]: ...

    def delete_tombstone(self, tombstone: DeletedEntity) -> None: ...
