"""Scheduler for automatic synchronization.

This module provides:
- SyncScheduler: Runs a sync through the SyncCoordinator at a fixed interval
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from todosync.sync.types import SyncInProgressError, SyncMode

if TYPE_CHECKING:
    from todosync.sync.coordinator import SyncCoordinator

logger = logging.getLogger(__name__)


class SyncScheduler:
    """Periodic sync runner.

    An interval of 0 minutes disables the scheduler. A run that would
    overlap a sync already in flight is skipped.
    """

    def __init__(
        self,
        coordinator: SyncCoordinator,
        interval_minutes: int,
        mode: SyncMode = SyncMode.FULL,
    ) -> None:
        """Initialize the scheduler.

        Args:
            coordinator: Single-flight sync runner.
            interval_minutes: Minutes between runs (0 = disabled).
            mode: Sync mode of the scheduled runs.
        """
        self._coordinator = coordinator
        self._interval_minutes = interval_minutes
        self._mode = mode
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def _sync_job(self) -> None:
        """Job function for scheduled sync."""
        logger.info("Starting scheduled %s sync", self._mode.value)
        try:
            result = self._coordinator.run(self._mode)
        except SyncInProgressError:
            logger.info("Scheduled sync skipped: a sync is already running")
            return
        except Exception:
            logger.exception("Error during scheduled sync")
            return

        if result.successful:
            logger.info("Scheduled sync completed")
        else:
            logger.warning("Scheduled sync completed with %d errors", len(result.errors))

    def start(self) -> None:
        """Start the scheduler."""
        if self._scheduler is not None:
            return  # Already running
        if self._interval_minutes <= 0:
            logger.info("Scheduled sync disabled")
            return

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._sync_job,
            trigger=IntervalTrigger(minutes=self._interval_minutes),
            id="scheduled_sync",
            name=f"Scheduled {self._mode.value} sync",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info("Sync scheduler started (every %d minutes)", self._interval_minutes)

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Sync scheduler stopped")

    def run_now(self) -> None:
        """Run the scheduled sync immediately (manual trigger)."""
        self._sync_job()
