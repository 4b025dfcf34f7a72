"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, StringConstraints

from todosync.core.types import TodoItem, TodoList
from todosync.server.jobs import JobStatus

NonEmptyText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

# === Todo list schemas ===


class TodoListCreateRequest(BaseModel):
    """Request body for list creation."""

    name: NonEmptyText


class TodoListUpdateRequest(BaseModel):
    """Request body for list rename."""

    name: NonEmptyText


class TodoListSummary(BaseModel):
    """List entry in the collection response."""

    id: int
    name: str
    incomplete_item_count: int


class TodoItemResponse(BaseModel):
    """Todo item data in responses."""

    id: int
    todo_list_id: int
    description: str
    completed: bool
    remote_id: str | None
    created_at: datetime
    updated_at: datetime
    last_synced_at: datetime | None


class TodoListResponse(BaseModel):
    """Todo list with its items."""

    id: int
    name: str
    remote_id: str | None
    source_id: str | None
    created_at: datetime
    updated_at: datetime
    last_synced_at: datetime | None
    items: list[TodoItemResponse]


# === Todo item schemas ===


class TodoItemCreateRequest(BaseModel):
    """Request body for item creation."""

    description: NonEmptyText
    completed: bool = False


class TodoItemUpdateRequest(BaseModel):
    """Request body for item update."""

    description: NonEmptyText
    completed: bool


# === Job schemas ===


class CompleteAllResponse(BaseModel):
    """Response for an accepted complete-all job."""

    job_id: str


class JobStatusResponse(BaseModel):
    """Job status in responses."""

    job_id: str
    state: str
    processed_count: int
    total_count: int
    error_message: str | None
    created_at: datetime
    completed_at: datetime | None


# === Sync schemas ===


class SyncResultResponse(BaseModel):
    """Outcome of a sync run."""

    lists_created: int
    lists_updated: int
    lists_skipped: int
    lists_deleted: int
    items_created: int
    items_updated: int
    items_skipped: int
    items_deleted: int
    errors: list[str]
    successful: bool
    completed_at: datetime | None


class SyncStatusResponse(BaseModel):
    """Sync coordinator state."""

    enabled: bool
    running: bool
    mode: str | None = None
    last_mode: str | None = None
    last_started_at: datetime | None = None
    last_result: SyncResultResponse | None = None


class SyncCancelResponse(BaseModel):
    """Outcome of a cancellation request."""

    cancelled: bool


# === Health schema ===


class HealthResponse(BaseModel):
    """Health check response."""

    status: str


# === Converters ===


def item_to_response(item: TodoItem) -> TodoItemResponse:
    """Convert a TodoItem to its response schema."""
    return TodoItemResponse(
        id=item.id,  # type: ignore[arg-type]
        todo_list_id=item.todo_list_id,  # type: ignore[arg-type]
        description=item.description,
        completed=item.completed,
        remote_id=item.remote_id,
        created_at=item.created_at,
        updated_at=item.updated_at,
        last_synced_at=item.last_synced_at,
    )


def list_to_response(todo_list: TodoList) -> TodoListResponse:
    """Convert a TodoList to its response schema."""
    return TodoListResponse(
        id=todo_list.id,  # type: ignore[arg-type]
        name=todo_list.name,
        remote_id=todo_list.remote_id,
        source_id=todo_list.source_id,
        created_at=todo_list.created_at,
        updated_at=todo_list.updated_at,
        last_synced_at=todo_list.last_synced_at,
        items=[item_to_response(i) for i in todo_list.items],
    )


def list_to_summary(todo_list: TodoList) -> TodoListSummary:
    return TodoListSummary(
        id=todo_list.id,  # type: ignore[arg-type]
        name=todo_list.name,
        incomplete_item_count=todo_list.incomplete_count,
    )


def job_to_response(status: JobStatus) -> JobStatusResponse:
    return JobStatusResponse(**status.to_dict())
