"""Tests for remote-to-local matching."""

from __future__ import annotations

from tests.sync.helpers import remote_item, remote_list
from todosync.core.types import TodoItem, TodoList
from todosync.sync.matching import match_item, match_list


def make_list(
    id: int, name: str, remote_id: str | None = None, source_id: str | None = None
) -> TodoList:
    return TodoList(id=id, name=name, remote_id=remote_id, source_id=source_id)


class TestMatchList:
    """Tests for match_list priority order."""

    def test_remote_id_wins_over_name(self) -> None:
        by_name = make_list(1, "Chores")
        by_id = make_list(2, "Something else", remote_id="r1")

        assert match_list(remote_list("r1", name="Chores"), [by_name, by_id], set()) is by_id

    def test_source_id_before_name(self) -> None:
        by_name = make_list(1, "Chores")
        by_source = make_list(2, "Renamed", source_id="s1")

        remote = remote_list("r1", name="Chores", source_id="s1")
        match = match_list(remote, [by_name, by_source], set())

        assert match is by_source

    def test_name_is_case_insensitive(self) -> None:
        local = make_list(1, "GROCERIES")
        assert match_list(remote_list("r1", name="groceries"), [local], set()) is local

    def test_empty_keys_never_match(self) -> None:
        """Should not pair entities through missing or empty keys."""
        local = make_list(1, "", remote_id=None, source_id=None)
        assert match_list(remote_list(None, name="", source_id=""), [local], set()) is None

    def test_claimed_entities_skip_secondary_keys(self) -> None:
        local = make_list(1, "Chores", source_id="s1")

        assert match_list(remote_list("r2", name="Chores"), [local], {1}) is None
        assert match_list(remote_list("r2", source_id="s1"), [local], {1}) is None

    def test_claimed_entity_still_matches_by_remote_id(self) -> None:
        local = make_list(1, "Chores", remote_id="r1")
        assert match_list(remote_list("r1"), [local], {1}) is local


class TestMatchItem:
    def test_matches_description(self) -> None:
        local = TodoItem(id=5, description="Buy Milk")
        assert match_item(remote_item("i1", description="buy milk"), [local], set()) is local

    def test_no_match(self) -> None:
        local = TodoItem(id=5, description="Buy Milk", remote_id="i9")
        assert match_item(remote_item("i1", description="Eggs"), [local], set()) is None
