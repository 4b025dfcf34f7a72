"""Core module - Shared configuration and domain records."""

from todosync.core.config import RemoteApiConfig, Settings
from todosync.core.types import (
    DeletedEntity,
    EntityType,
    TodoItem,
    TodoList,
    as_utc,
    utcnow,
)

__all__ = [
    # Config
    "RemoteApiConfig",
    "Settings",
    # Types
    "DeletedEntity",
    "EntityType",
    "TodoItem",
    "TodoList",
    "as_utc",
    "utcnow",
]
