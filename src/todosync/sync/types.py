"""Shared types for sync operations.

This module provides:
- SyncError and subclasses: Exception classes
- SyncMode: Which phases a sync run executes
- SyncResult: Counters and errors of one sync run
- check_cancelled: Cancellation checkpoint used between entities
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SyncError(Exception):
    """Base exception for sync errors."""


class SyncCancelledError(SyncError):
    """The sync was cancelled between two entities."""


class SyncInProgressError(SyncError):
    """Another sync is already running."""


class ConcurrentModificationError(SyncError):
    """A local record changed or disappeared while it was being synced."""


class SyncMode(str, Enum):
    """Sync direction."""

    PULL = "pull"
    PUSH = "push"
    FULL = "full"


@dataclass
class SyncResult:
    """Outcome of a pull, push or full sync.

    Counters are never negative. A result is successful only when no error
    was recorded, even if every other entity converged.
    """

    lists_created: int = 0
    lists_updated: int = 0
    lists_skipped: int = 0
    lists_deleted: int = 0
    items_created: int = 0
    items_updated: int = 0
    items_skipped: int = 0
    items_deleted: int = 0
    errors: list[str] = field(default_factory=list)
    completed_at: datetime | None = None

    @property
    def successful(self) -> bool:
        return not self.errors

    @classmethod
    def combine(cls, pull: SyncResult, push: SyncResult) -> SyncResult:
        """Merge the results of a pull followed by a push.

        Skipped counters come from the pull only; push has no skip concept.
        """
        return cls(
            lists_created=pull.lists_created + push.lists_created,
            lists_updated=pull.lists_updated + push.lists_updated,
            lists_skipped=pull.lists_skipped,
            lists_deleted=pull.lists_deleted + push.lists_deleted,
            items_created=pull.items_created + push.items_created,
            items_updated=pull.items_updated + push.items_updated,
            items_skipped=pull.items_skipped,
            items_deleted=pull.items_deleted + push.items_deleted,
            errors=[*pull.errors, *push.errors],
            completed_at=push.completed_at or pull.completed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "lists_created": self.lists_created,
            "lists_updated": self.lists_updated,
            "lists_skipped": self.lists_skipped,
            "lists_deleted": self.lists_deleted,
            "items_created": self.items_created,
            "items_updated": self.items_updated,
            "items_skipped": self.items_skipped,
            "items_deleted": self.items_deleted,
            "errors": list(self.errors),
            "successful": self.successful,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def check_cancelled(cancel: threading.Event | None) -> None:
    """Raise SyncCancelledError if the cancel event is set."""
    if cancel is not None and cancel.is_set():
        raise SyncCancelledError("Sync cancelled")
