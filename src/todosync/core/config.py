"""Shared configuration classes for todosync.

This module defines the configuration used by the server, the CLI and the
remote API client. Values come from environment variables with defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

ENV_PREFIX = "TODOSYNC_"


@dataclass
class RemoteApiConfig:
    """Configuration for connecting to the external todo API.

    Attributes:
        base_url: Base URL of the external API (e.g., "https://todos.example.com").
        timeout: Request timeout in seconds.
        retry_count: Number of retries for transient failures.
        retry_delay: Base delay in seconds for exponential backoff.
    """

    base_url: str
    timeout: float = 30.0
    retry_count: int = 3
    retry_delay: float = 2.0

    def __post_init__(self) -> None:
        """Normalize base URL."""
        self.base_url = self.base_url.rstrip("/")


@dataclass
class Settings:
    """Application settings.

    Attributes:
        db_path: SQLite database file.
        log_path: Server log file.
        remote: External API configuration, or None when sync is disabled.
        sync_interval_minutes: Scheduled full sync interval (0 = disabled).
        job_batch_size: Items completed per batch by the complete-all job.
        job_queue_size: Maximum number of queued background jobs.
        cors_origins: Allowed CORS origins for the frontend.
    """

    db_path: Path = Path("todosync.db")
    log_path: Path = Path("todosync-server.log")
    remote: RemoteApiConfig | None = None
    sync_interval_minutes: int = 0
    job_batch_size: int = 5
    job_queue_size: int = 100
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Load settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Settings instance.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str) -> str:
            value = env.get(ENV_PREFIX + name, "")
            return value.strip() or default

        remote = None
        base_url = get("REMOTE_BASE_URL", "")
        if base_url:
            remote = RemoteApiConfig(
                base_url=base_url,
                timeout=float(get("REMOTE_TIMEOUT", "30")),
                retry_count=int(get("REMOTE_RETRY_COUNT", "3")),
                retry_delay=float(get("REMOTE_RETRY_DELAY", "2")),
            )

        origins = get("CORS_ORIGINS", "http://localhost:5173")

        return cls(
            db_path=Path(get("DB_PATH", "todosync.db")),
            log_path=Path(get("LOG_PATH", "todosync-server.log")),
            remote=remote,
            sync_interval_minutes=int(get("SYNC_INTERVAL_MINUTES", "0")),
            job_batch_size=int(get("JOB_BATCH_SIZE", "5")),
            job_queue_size=int(get("JOB_QUEUE_SIZE", "100")),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
