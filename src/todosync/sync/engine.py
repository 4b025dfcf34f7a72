"""Sync engine coordinating pull, push and full synchronization.

This module provides:
- SyncEngine: Runs the sync phases and aggregates a SyncResult

The three public operations never raise: per-entity failures are recorded
by the phases, anything else is caught here as a single fatal error.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from todosync.core.types import utcnow
from todosync.sync.pull import PullPhase
from todosync.sync.push import PushPhase
from todosync.sync.types import SyncCancelledError, SyncMode, SyncResult

if TYPE_CHECKING:
    from todosync.client.api import RemoteTodoClient
    from todosync.sync.store import LocalStore

logger = logging.getLogger(__name__)


class SyncEngine:
    """Bidirectional sync between the local store and the remote todo API."""

    def __init__(
        self,
        client: RemoteTodoClient,
        store: LocalStore,
        *,
        detect_remote_deletions: bool = True,
        push_deletions: bool = True,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the sync engine.

        Args:
            client: Remote API client.
            store: Local store.
            detect_remote_deletions: Delete local entities gone from the remote side on pull.
            push_deletions: Drain local deletion tombstones on push.
            clock: Returns the current time (injectable for tests).
        """
        self._clock = clock
        self._pull = PullPhase(client, store, clock, detect_deletions=detect_remote_deletions)
        self._push = PushPhase(client, store, clock, push_deletions=push_deletions)

    def run(self, mode: SyncMode, cancel: threading.Event | None = None) -> SyncResult:
        """Run the sync matching mode."""
        if mode is SyncMode.PULL:
            return self.sync_from_remote(cancel)
        if mode is SyncMode.PUSH:
            return self.sync_to_remote(cancel)
        return self.full_sync(cancel)

    def sync_from_remote(self, cancel: threading.Event | None = None) -> SyncResult:
        """Pull remote changes into the local store."""
        logger.info("Starting sync from remote")
        return self._run_phase(self._pull.run, "Fatal sync error", cancel)

    def sync_to_remote(self, cancel: threading.Event | None = None) -> SyncResult:
        """Push local changes to the remote API."""
        logger.info("Starting sync to remote")
        return self._run_phase(self._push.run, "Fatal sync error", cancel)

    def full_sync(self, cancel: threading.Event | None = None) -> SyncResult:
        """Pull then push; the push sees the post-pull state."""
        logger.info("Starting full sync")
        try:
            pull = self.sync_from_remote(cancel)
            if cancel is not None and cancel.is_set():
                pull.completed_at = self._clock()
                return pull
            push = self.sync_to_remote(cancel)
            result = SyncResult.combine(pull, push)
        except Exception as e:
            logger.exception("Fatal full sync error")
            result = SyncResult(errors=[f"Fatal full sync error: {e}"])
        result.completed_at = self._clock()
        self._log_summary("Full sync", result)
        return result

    def _run_phase(
        self,
        phase: Callable[[SyncResult, threading.Event | None], None],
        fatal_prefix: str,
        cancel: threading.Event | None,
    ) -> SyncResult:
        result = SyncResult()
        try:
            phase(result, cancel)
        except SyncCancelledError:
            logger.warning("Sync cancelled, returning partial result")
            result.errors.append("Sync cancelled")
        except Exception as e:
            logger.exception(fatal_prefix)
            result.errors.append(f"{fatal_prefix}: {e}")
        result.completed_at = self._clock()
        self._log_summary("Sync", result)
        return result

    @staticmethod
    def _log_summary(label: str, result: SyncResult) -> None:
        logger.info(
            "%s finished: lists %d created, %d updated, %d skipped, %d deleted; "
            "items %d created, %d updated, %d skipped, %d deleted; %d errors",
            label,
            result.lists_created,
            result.lists_updated,
            result.lists_skipped,
            result.lists_deleted,
            result.items_created,
            result.items_updated,
            result.items_skipped,
            result.items_deleted,
            len(result.errors),
        )
