"""Matching of remote entities to their local counterparts.

Priority order, first hit wins:
1. Same remote id.
2. Same source id (remote source id non-empty).
3. Same name / description, case-insensitive (remote value non-empty).

A local entity already claimed earlier in the same pass is not eligible for
steps 2 and 3, so two remote entities never collapse onto one local entity
through a secondary key.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar

from todosync.client.api import RemoteItem, RemoteList
from todosync.core.types import TodoItem, TodoList


class _Matchable(Protocol):
    id: int | None
    remote_id: str | None
    source_id: str | None


T = TypeVar("T", bound=_Matchable)


def find_match(
    candidates: Iterable[T],
    remote_id: str | None,
    source_id: str | None,
    text: str | None,
    text_of: Callable[[T], str],
    claimed: set[int],
) -> T | None:
    """Find the local entity matching a remote one.

    Args:
        candidates: Local entities to search.
        remote_id: Id of the remote entity.
        source_id: Source id of the remote entity.
        text: Name or description of the remote entity.
        text_of: Returns the comparable text of a local entity.
        claimed: Local ids already paired in this pass.

    Returns:
        The matching local entity, or None when a new one must be created.
    """
    pool = list(candidates)

    if remote_id:
        for local in pool:
            if local.remote_id == remote_id:
                return local

    if source_id:
        for local in pool:
            if local.id not in claimed and local.source_id == source_id:
                return local

    if text:
        folded = text.casefold()
        for local in pool:
            if local.id not in claimed and text_of(local).casefold() == folded:
                return local

    return None


def match_list(
    remote: RemoteList, local_lists: Iterable[TodoList], claimed: set[int]
) -> TodoList | None:
    return find_match(
        local_lists, remote.id, remote.source_id, remote.name, lambda x: x.name, claimed
    )


def match_item(
    remote: RemoteItem, local_items: Iterable[TodoItem], claimed: set[int]
) -> TodoItem | None:
    return find_match(
        local_items,
        remote.id,
        remote.source_id,
        remote.description,
        lambda x: x.description,
        claimed,
    )
