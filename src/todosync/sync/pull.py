"""Pull phase: mirror remote lists and items into the local store.

Lists are processed in the order the remote API returns them, items in
the order of their list. Each remote list is one error-isolated unit.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from todosync.core.types import EntityType, TodoItem, TodoList
from todosync.sync.deletions import delete_vanished_locally
from todosync.sync.matching import match_item, match_list
from todosync.sync.types import (
    SyncCancelledError,
    SyncError,
    SyncResult,
    check_cancelled,
)

if TYPE_CHECKING:
    from todosync.client.api import RemoteItem, RemoteList, RemoteTodoClient
    from todosync.sync.store import LocalStore

logger = logging.getLogger(__name__)

DEFAULT_LIST_NAME = "Untitled"
DEFAULT_ITEM_DESCRIPTION = "No description"


class PullPhase:
    """Fetches remote state and merges it into the local store."""

    def __init__(
        self,
        client: RemoteTodoClient,
        store: LocalStore,
        clock: Callable[[], datetime],
        detect_deletions: bool = True,
    ) -> None:
        self._client = client
        self._store = store
        self._clock = clock
        self._detect_deletions = detect_deletions

    def run(self, result: SyncResult, cancel: threading.Event | None = None) -> None:
        """Run the pull phase, accumulating outcomes into result.

        Raises:
            SyncCancelledError: If cancel is set between two entities.
            Exception: Failures outside any per-list scope (e.g. fetching
                the remote lists) propagate to the caller.
        """
        remote_lists = self._client.list_all()
        local_lists = self._store.load_all_lists_with_items()

        # Pending local deletions win over remote state until pushed
        deleted_lists: set[str] = set()
        deleted_items: set[tuple[str | None, str]] = set()
        for tombstone in self._store.list_tombstones():
            if tombstone.entity_type is EntityType.LIST:
                deleted_lists.add(tombstone.remote_id)
            else:
                deleted_items.add((tombstone.parent_remote_id, tombstone.remote_id))

        claimed: set[int] = set()
        failed: set[str] = set()

        for remote in remote_lists:
            check_cancelled(cancel)
            if remote.id and remote.id in deleted_lists:
                logger.info("Remote list %s is pending local deletion, not pulled", remote.id)
                continue
            try:
                self._sync_list(remote, local_lists, claimed, deleted_items, result, cancel)
            except SyncCancelledError:
                raise
            except Exception as e:
                logger.exception("Error syncing remote list %s", remote.id)
                if remote.id:
                    failed.add(remote.id)
                result.errors.append(
                    f"Error syncing list '{remote.name}' (remote id {remote.id}): {e}"
                )

        if self._detect_deletions:
            delete_vanished_locally(
                self._store, remote_lists, local_lists, result, cancel, skip_items_of=failed
            )

    def _sync_list(
        self,
        remote: RemoteList,
        local_lists: list[TodoList],
        claimed: set[int],
        deleted_items: set[tuple[str | None, str]],
        result: SyncResult,
        cancel: threading.Event | None,
    ) -> None:
        if not remote.id or remote.updated_at is None:
            raise SyncError("Remote list is missing id or updated_at")

        now = self._clock()
        local = match_list(remote, local_lists, claimed)

        if local is None:
            local = TodoList(
                name=remote.name or DEFAULT_LIST_NAME,
                remote_id=remote.id,
                source_id=remote.source_id,
                created_at=remote.created_at or remote.updated_at,
                updated_at=remote.updated_at,
                last_synced_at=max(now, remote.updated_at),
            )
            self._store.save_list(local)
            local_lists.append(local)
            result.lists_created += 1
            logger.info("Created local list %d from remote %s", local.id, remote.id)
        else:
            if remote.updated_at > local.updated_at:
                local.name = remote.name or local.name
                local.updated_at = remote.updated_at
                result.lists_updated += 1
                logger.info("Updated local list %d from remote %s", local.id, remote.id)
            else:
                result.lists_skipped += 1
                logger.debug("Local list %d is up to date with remote %s", local.id, remote.id)
            local.remote_id = remote.id
            if local.source_id is None:
                local.source_id = remote.source_id
            # Remote clocks may run ahead of ours
            local.last_synced_at = max(now, local.updated_at)
            self._store.save_list(local)

        if local.id is not None:
            claimed.add(local.id)

        item_claimed: set[int] = set()
        for remote_item in remote.items:
            check_cancelled(cancel)
            if remote_item.id and (remote.id, remote_item.id) in deleted_items:
                logger.info(
                    "Remote item %s is pending local deletion, not pulled", remote_item.id
                )
                continue
            self._sync_item(remote_item, local, item_claimed, result)

    def _sync_item(
        self,
        remote: RemoteItem,
        todo_list: TodoList,
        claimed: set[int],
        result: SyncResult,
    ) -> None:
        if not remote.id or remote.updated_at is None:
            raise SyncError(
                f"Remote item in list {todo_list.remote_id} is missing id or updated_at"
            )

        now = self._clock()
        local = match_item(remote, todo_list.items, claimed)

        if local is None:
            local = TodoItem(
                description=remote.description or DEFAULT_ITEM_DESCRIPTION,
                completed=remote.completed,
                todo_list_id=todo_list.id,
                remote_id=remote.id,
                source_id=remote.source_id,
                created_at=remote.created_at or remote.updated_at,
                updated_at=remote.updated_at,
                last_synced_at=max(now, remote.updated_at),
            )
            self._store.save_item(local)
            todo_list.items.append(local)
            result.items_created += 1
        else:
            if remote.updated_at > local.updated_at:
                local.description = remote.description or local.description
                local.completed = remote.completed
                local.updated_at = remote.updated_at
                result.items_updated += 1
            else:
                result.items_skipped += 1
            local.remote_id = remote.id
            if local.source_id is None:
                local.source_id = remote.source_id
            local.last_synced_at = max(now, local.updated_at)
            self._store.save_item(local)

        if local.id is not None:
            claimed.add(local.id)
