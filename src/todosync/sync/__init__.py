"""Bidirectional synchronization with the external todo API."""

from todosync.sync.coordinator import SyncCoordinator
from todosync.sync.engine import SyncEngine
from todosync.sync.store import LocalStore
from todosync.sync.types import (
    ConcurrentModificationError,
    SyncCancelledError,
    SyncError,
    SyncInProgressError,
    SyncMode,
    SyncResult,
)

__all__ = [
    "ConcurrentModificationError",
    "LocalStore",
    "SyncCancelledError",
    "SyncCoordinator",
    "SyncEngine",
    "SyncError",
    "SyncInProgressError",
    "SyncMode",
    "SyncResult",
]
