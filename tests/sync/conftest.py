"""Pytest fixtures for sync engine tests.

The local side is a real SQLite Database in tmp_path; the remote side is a
MagicMock constrained to the RemoteTodoClient interface.
"""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tests.sync.helpers import NOW
from todosync.client.api import RemoteTodoClient
from todosync.server.database import Database
from todosync.sync.engine import SyncEngine


@pytest.fixture
def db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a test database."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def client() -> MagicMock:
    """Create a mock remote client with an empty remote side."""
    mock = MagicMock(spec=RemoteTodoClient)
    mock.list_all.return_value = []
    return mock


@pytest.fixture
def engine(client: MagicMock, db: Database) -> SyncEngine:
    """Create a sync engine with a fixed clock."""
    return SyncEngine(client, db, clock=lambda: NOW)
