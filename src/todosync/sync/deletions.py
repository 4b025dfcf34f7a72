"""Deletion propagation in both directions.

This module provides:
- delete_vanished_locally: Remove synced local entities gone from the remote side
- push_tombstones: Drain pending local deletions to the remote API

Entities that were never synced (no remote id) are never touched here.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection
from typing import TYPE_CHECKING

from todosync.client.api import NotFoundError
from todosync.core.types import EntityType
from todosync.sync.types import SyncResult, check_cancelled

if TYPE_CHECKING:
    from todosync.client.api import RemoteList, RemoteTodoClient
    from todosync.core.types import DeletedEntity, TodoList
    from todosync.sync.store import LocalStore

logger = logging.getLogger(__name__)


def delete_vanished_locally(
    store: LocalStore,
    remote_lists: list[RemoteList],
    local_lists: list[TodoList],
    result: SyncResult,
    cancel: threading.Event | None = None,
    skip_items_of: Collection[str] = (),
) -> None:
    """Delete local lists and items whose remote counterpart no longer exists.

    Args:
        store: Local store.
        remote_lists: Full remote snapshot fetched by the pull.
        local_lists: Local lists after merging (modified in place).
        result: Result to accumulate into.
        cancel: Optional cancellation event.
        skip_items_of: Remote list ids whose item-level detection is skipped
            (lists whose pull failed, so their local items may be incomplete).
    """
    if any(not remote.id for remote in remote_lists):
        logger.warning("Remote snapshot has lists without id; skipping deletion detection")
        return

    remote_item_ids = {
        remote.id: {item.id for item in remote.items} for remote in remote_lists
    }

    for todo_list in list(local_lists):
        if todo_list.remote_id is None:
            continue
        check_cancelled(cancel)

        if todo_list.remote_id not in remote_item_ids:
            try:
                store.delete_list(todo_list)
            except Exception as e:
                logger.exception("Failed to delete local list %d", todo_list.id)
                result.errors.append(
                    f"Error deleting local list '{todo_list.name}' "
                    f"(remote id {todo_list.remote_id}): {e}"
                )
                continue
            local_lists.remove(todo_list)
            result.lists_deleted += 1
            result.items_deleted += len(todo_list.items)
            logger.info(
                "Deleted local list %d (remote %s no longer exists)",
                todo_list.id,
                todo_list.remote_id,
            )
            continue

        if todo_list.remote_id in skip_items_of:
            continue

        item_ids = remote_item_ids[todo_list.remote_id]
        if None in item_ids:
            logger.warning(
                "Remote list %s has items without id; skipping item deletion detection",
                todo_list.remote_id,
            )
            continue

        for item in list(todo_list.items):
            if item.remote_id is None or item.remote_id in item_ids:
                continue
            check_cancelled(cancel)
            try:
                store.delete_item(item)
            except Exception as e:
                logger.exception("Failed to delete local item %d", item.id)
                result.errors.append(
                    f"Error deleting local item '{item.description}' "
                    f"(remote id {item.remote_id}): {e}"
                )
                continue
            todo_list.items.remove(item)
            result.items_deleted += 1
            logger.info(
                "Deleted local item %d (remote %s no longer exists)",
                item.id,
                item.remote_id,
            )


def push_tombstones(
    client: RemoteTodoClient,
    store: LocalStore,
    result: SyncResult,
    cancel: threading.Event | None = None,
) -> None:
    """Propagate pending local deletions to the remote API.

    Item tombstones are processed before list tombstones. A tombstone is
    removed when the remote delete succeeds or the entity is already gone
    (404); any other failure keeps it for the next sync.
    """
    tombstones = store.list_tombstones()
    ordered = [t for t in tombstones if t.entity_type is EntityType.ITEM] + [
        t for t in tombstones if t.entity_type is EntityType.LIST
    ]
    if ordered:
        logger.info("Pushing %d pending deletions", len(ordered))

    for tombstone in ordered:
        check_cancelled(cancel)

        if tombstone.entity_type is EntityType.ITEM and not tombstone.parent_remote_id:
            logger.warning(
                "Item tombstone %s has no parent list id; left in place",
                tombstone.remote_id,
            )
            continue

        try:
            _delete_remote(client, tombstone)
            store.delete_tombstone(tombstone)
        except Exception as e:
            logger.error(
                "Failed to push deletion of %s %s: %s",
                tombstone.entity_type.value,
                tombstone.remote_id,
                e,
            )
            result.errors.append(
                f"Error deleting remote {tombstone.entity_type.value} "
                f"{tombstone.remote_id}: {e}"
            )
            continue

        if tombstone.entity_type is EntityType.ITEM:
            result.items_deleted += 1
        else:
            result.lists_deleted += 1


def _delete_remote(client: RemoteTodoClient, tombstone: DeletedEntity) -> None:
    try:
        if tombstone.entity_type is EntityType.ITEM:
            client.delete_item(tombstone.parent_remote_id, tombstone.remote_id)  # type: ignore[arg-type]
        else:
            client.delete(tombstone.remote_id)
    except NotFoundError:
        logger.info(
            "Remote %s %s already deleted",
            tombstone.entity_type.value,
            tombstone.remote_id,
        )
    else:
        logger.info("Deleted remote %s %s", tombstone.entity_type.value, tombstone.remote_id)
