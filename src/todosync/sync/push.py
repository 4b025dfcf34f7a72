"""Push phase: send local changes to the remote API.

Phase order: create new lists, update stale lists, update stale items,
then push pending deletions. Creating lists first guarantees that an item
update never targets a list without a remote id.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from todosync.client.api import (
    RemoteItemInput,
    RemoteItemPatch,
    RemoteListInput,
    RemoteListPatch,
)
from todosync.sync.deletions import push_tombstones
from todosync.sync.types import (
    SyncCancelledError,
    SyncError,
    SyncResult,
    check_cancelled,
)

if TYPE_CHECKING:
    from todosync.client.api import RemoteTodoClient
    from todosync.core.types import TodoItem, TodoList
    from todosync.sync.store import LocalStore

logger = logging.getLogger(__name__)


class PushPhase:
    """Pushes local creations, modifications and deletions."""

    def __init__(
        self,
        client: RemoteTodoClient,
        store: LocalStore,
        clock: Callable[[], datetime],
        push_deletions: bool = True,
    ) -> None:
        self._client = client
        self._store = store
        self._clock = clock
        self._push_deletions = push_deletions

    def run(self, result: SyncResult, cancel: threading.Event | None = None) -> None:
        """Run the push phase, accumulating outcomes into result."""
        lists = self._store.load_all_lists_with_items()

        for todo_list in lists:
            if todo_list.remote_id is not None:
                continue
            check_cancelled(cancel)
            try:
                self._create_list(todo_list, result)
            except SyncCancelledError:
                raise
            except Exception as e:
                logger.exception("Error creating list %d remotely", todo_list.id)
                result.errors.append(
                    f"Error creating list '{todo_list.name}' (id {todo_list.id}): {e}"
                )

        for todo_list in lists:
            if not todo_list.is_stale:
                continue
            check_cancelled(cancel)
            try:
                self._update_list(todo_list, result)
            except SyncCancelledError:
                raise
            except Exception as e:
                logger.exception("Error updating remote list %s", todo_list.remote_id)
                result.errors.append(
                    f"Error updating list '{todo_list.name}' "
                    f"(remote id {todo_list.remote_id}): {e}"
                )

        for todo_list in lists:
            if todo_list.remote_id is None:
                continue
            for item in todo_list.items:
                if not item.is_stale:
                    continue
                check_cancelled(cancel)
                try:
                    self._update_item(todo_list, item, result)
                except SyncCancelledError:
                    raise
                except Exception as e:
                    logger.exception("Error updating remote item %s", item.remote_id)
                    result.errors.append(
                        f"Error updating item '{item.description}' "
                        f"(remote id {item.remote_id}): {e}"
                    )

        if self._push_deletions:
            push_tombstones(self._client, self._store, result, cancel)

    def _create_list(self, todo_list: TodoList, result: SyncResult) -> None:
        source_id = todo_list.source_id or str(todo_list.id)
        payload = RemoteListInput(
            name=todo_list.name,
            source_id=source_id,
            items=[
                RemoteItemInput(
                    description=item.description,
                    completed=item.completed,
                    source_id=item.source_id or str(item.id),
                )
                for item in todo_list.items
            ],
        )

        created = self._client.create(payload)
        if not created.id:
            raise SyncError("Remote API returned a list without id")

        now = self._clock()
        todo_list.remote_id = created.id
        todo_list.source_id = source_id
        todo_list.last_synced_at = max(now, todo_list.updated_at)

        assigned = 0
        # Remote ids are assigned by position: the API returns items in request order
        for index, item in enumerate(todo_list.items):
            item.source_id = item.source_id or str(item.id)
            remote_item = created.items[index] if index < len(created.items) else None
            if remote_item is None or not remote_item.id:
                logger.warning(
                    "No remote id returned for item %d of list %s", item.id, created.id
                )
                continue
            item.remote_id = remote_item.id
            item.last_synced_at = max(now, item.updated_at)
            assigned += 1

        self._store.save_list(todo_list, include_items=True)
        result.lists_created += 1
        result.items_created += assigned
        logger.info(
            "Created remote list %s from local list %d with %d items",
            created.id,
            todo_list.id,
            assigned,
        )

    def _update_list(self, todo_list: TodoList, result: SyncResult) -> None:
        self._client.update(todo_list.remote_id, RemoteListPatch(name=todo_list.name))  # type: ignore[arg-type]
        todo_list.last_synced_at = max(self._clock(), todo_list.updated_at)
        self._store.save_list(todo_list)
        result.lists_updated += 1
        logger.info("Updated remote list %s", todo_list.remote_id)

    def _update_item(self, todo_list: TodoList, item: TodoItem, result: SyncResult) -> None:
        self._client.update_item(
            todo_list.remote_id,  # type: ignore[arg-type]
            item.remote_id,  # type: ignore[arg-type]
            RemoteItemPatch(description=item.description, completed=item.completed),
        )
        item.last_synced_at = max(self._clock(), item.updated_at)
        self._store.save_item(item)
        result.items_updated += 1
        logger.info("Updated remote item %s", item.remote_id)
