"""Single-flight guard around the sync engine.

Both the HTTP triggers and the scheduler run syncs through one
SyncCoordinator, so at most one sync is in flight per process.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from todosync.core.types import utcnow
from todosync.sync.engine import SyncEngine
from todosync.sync.types import SyncInProgressError, SyncMode, SyncResult

if TYPE_CHECKING:
    from todosync.client.api import RemoteTodoClient
    from todosync.sync.store import LocalStore

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Runs syncs one at a time and remembers the last outcome."""

    def __init__(
        self,
        client_factory: Callable[[], RemoteTodoClient],
        store: LocalStore,
        **engine_options: Any,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client_factory: Creates a remote client for one run (closed afterwards).
            store: Local store.
            **engine_options: Passed to SyncEngine (phase toggles, clock).
        """
        self._client_factory = client_factory
        self._store = store
        self._engine_options = engine_options
        self._lock = threading.Lock()
        self._cancel = threading.Event()
        self._state_lock = threading.Lock()
        self._running: SyncMode | None = None
        self._last_mode: SyncMode | None = None
        self._last_started_at: datetime | None = None
        self._last_result: SyncResult | None = None

    @property
    def running(self) -> SyncMode | None:
        """Mode of the sync in flight, if any."""
        with self._state_lock:
            return self._running

    @property
    def last_result(self) -> SyncResult | None:
        with self._state_lock:
            return self._last_result

    def run(self, mode: SyncMode) -> SyncResult:
        """Run a sync unless one is already in flight.

        Raises:
            SyncInProgressError: If another sync is running.
        """
        if not self._lock.acquire(blocking=False):
            raise SyncInProgressError("A sync is already running")

        try:
            self._cancel.clear()
            with self._state_lock:
                self._running = mode
                self._last_started_at = utcnow()

            client = self._client_factory()
            try:
                engine = SyncEngine(client, self._store, **self._engine_options)
                result = engine.run(mode, self._cancel)
            finally:
                client.close()

            with self._state_lock:
                self._last_mode = mode
                self._last_result = result
            return result
        finally:
            with self._state_lock:
                self._running = None
            self._lock.release()

    def cancel(self) -> bool:
        """Request cancellation of the running sync.

        Returns:
            True if a sync was running.
        """
        if self.running is None:
            return False
        logger.info("Cancellation requested for running sync")
        self._cancel.set()
        return True

    def status(self) -> dict[str, Any]:
        """Snapshot of the coordinator state for the status endpoint."""
        with self._state_lock:
            return {
                "running": self._running is not None,
                "mode": self._running.value if self._running else None,
                "last_mode": self._last_mode.value if self._last_mode else None,
                "last_started_at": (
                    self._last_started_at.isoformat() if self._last_started_at else None
                ),
                "last_result": self._last_result.to_dict() if self._last_result else None,
            }
