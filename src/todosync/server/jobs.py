"""Background job pipeline for completing all pending items of a list.

This module provides:
- JobState, JobStatus: Job lifecycle and progress snapshot
- JobRegistry: Thread-safe job id -> status map
- JobQueue: Bounded FIFO of CompleteAllJob (raises QueueFullError when full)
- JobProcessor: Worker thread completing items in batches

Architecture:
    API ──enqueue──► JobQueue ──► JobProcessor ──► Database
                        │               │
                   JobRegistry ◄────────┤
                                        └──publish(status)──► ProgressHub
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from todosync.core.types import utcnow

if TYPE_CHECKING:
    from todosync.server.database import Database

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_QUEUE_SIZE = 100


class JobState(str, Enum):
    """State of a background job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class JobStatus:
    """Progress snapshot of a job.

    Attributes:
        job_id: Unique job id.
        state: Current state.
        processed_count: Items completed so far.
        total_count: Items pending when processing started.
        error_message: Failure reason (FAILED only).
        created_at: When the job was enqueued.
        completed_at: When the job completed or failed.
    """

    job_id: str
    state: JobState = JobState.QUEUED
    processed_count: int = 0
    total_count: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "job_id": self.job_id,
            "state": self.state.value,
            "processed_count": self.processed_count,
            "total_count": self.total_count,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(frozen=True)
class CompleteAllJob:
    """Request to complete every pending item of a list."""

    job_id: str
    todo_list_id: int


class QueueFullError(Exception):
    """The job queue reached its capacity."""


class JobRegistry:
    """Thread-safe map of job id to the latest status.

    Statuses are copied on the way in and out so callers never share
    a mutable snapshot with the worker thread.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[str, JobStatus] = {}

    def set(self, status: JobStatus) -> None:
        with self._lock:
            self._statuses[status.job_id] = replace(status)

    def get(self, job_id: str) -> JobStatus | None:
        with self._lock:
            status = self._statuses.get(job_id)
            return replace(status) if status else None

    def remove(self, job_id: str) -> None:
        with self._lock:
            self._statuses.pop(job_id, None)


class JobQueue:
    """Bounded FIFO of complete-all jobs with their status registry."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        """Initialize the queue.

        Args:
            maxsize: Maximum number of jobs waiting to be processed.
        """
        self._queue: queue.Queue[CompleteAllJob] = queue.Queue(maxsize=maxsize)
        self.registry = JobRegistry()

    def enqueue(self, todo_list_id: int) -> CompleteAllJob:
        """Queue a complete-all job for a list.

        Returns:
            The queued job.

        Raises:
            QueueFullError: If the queue is at capacity.
        """
        job = CompleteAllJob(job_id=str(uuid.uuid4()), todo_list_id=todo_list_id)
        self.registry.set(JobStatus(job_id=job.job_id))
        try:
            self._queue.put_nowait(job)
        except queue.Full:
            self.registry.remove(job.job_id)
            raise QueueFullError("Job queue is full") from None
        logger.info("Queued job %s for todo list %d", job.job_id, todo_list_id)
        return job

    def dequeue(self, timeout: float | None = None) -> CompleteAllJob | None:
        """Take the next job, or None if none arrived within timeout."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def qsize(self) -> int:
        return self._queue.qsize()

    def get_status(self, job_id: str) -> JobStatus | None:
        return self.registry.get(job_id)

    def update_status(self, status: JobStatus) -> None:
        self.registry.set(status)


PublishCallback = Callable[[JobStatus], None]


class JobProcessor:
    """Worker thread that processes complete-all jobs one at a time."""

    def __init__(
        self,
        job_queue: JobQueue,
        db: Database,
        publish: PublishCallback | None = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = 0.0,
    ) -> None:
        """Initialize the processor.

        Args:
            job_queue: Queue to consume.
            db: Database holding the items.
            publish: Called with a status snapshot after every step.
            batch_size: Items completed per transaction.
            batch_delay: Pause between batches in seconds.
        """
        self._queue = job_queue
        self._db = db
        self._publish = publish
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread."""
        if self.running:
            logger.warning("Job processor already running")
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker_loop, name="JobProcessor", daemon=True
        )
        self._thread.start()
        logger.info("Job processor started (batch size %d)", self._batch_size)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the worker thread after the current job."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
            logger.info("Job processor stopped")

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            job = self._queue.dequeue(timeout=0.5)
            if job is None:
                continue
            try:
                self.process(job)
            except Exception:
                logger.exception("Unexpected error processing job %s", job.job_id)

    def process(self, job: CompleteAllJob) -> JobStatus:
        """Process one job synchronously.

        Returns:
            Final status (COMPLETED or FAILED).
        """
        previous = self._queue.get_status(job.job_id)
        status = JobStatus(
            job_id=job.job_id,
            state=JobState.PROCESSING,
            created_at=previous.created_at if previous else utcnow(),
        )
        logger.info("Processing job %s for todo list %d", job.job_id, job.todo_list_id)
        self._report(status)

        try:
            status.total_count = self._db.count_pending_items(job.todo_list_id)
            self._report(status)

            while True:
                completed = self._db.complete_pending_items(job.todo_list_id, self._batch_size)
                if completed == 0:
                    break
                status.processed_count += completed
                self._report(status)
                logger.info(
                    "Job %s: processed %d/%d",
                    job.job_id,
                    status.processed_count,
                    status.total_count,
                )
                if self._batch_delay and self._stop_event.wait(self._batch_delay):
                    raise RuntimeError("Job processor stopped before the job finished")

            status.state = JobState.COMPLETED
            logger.info("Job %s completed", job.job_id)
        except Exception as e:
            logger.exception("Error processing job %s", job.job_id)
            status.state = JobState.FAILED
            status.error_message = str(e)

        status.completed_at = utcnow()
        self._report(status)
        return status

    def _report(self, status: JobStatus) -> None:
        self._queue.update_status(status)
        if self._publish is None:
            return
        try:
            self._publish(replace(status))
        except Exception:
            logger.exception("Failed to publish status of job %s", status.job_id)
