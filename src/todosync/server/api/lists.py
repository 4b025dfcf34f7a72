"""Todo list API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from todosync.server.api.deps import get_db
from todosync.server.database import Database
from todosync.server.schemas import (
    TodoListCreateRequest,
    TodoListResponse,
    TodoListSummary,
    TodoListUpdateRequest,
    list_to_response,
    list_to_summary,
)

router = APIRouter(prefix="/api/todolists", tags=["todolists"])


def _not_found(list_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Todo list not found: {list_id}",
    )


@router.get("", response_model=list[TodoListSummary])
def list_todo_lists(db: Database = Depends(get_db)) -> list[TodoListSummary]:
    """List todo lists with their incomplete item count."""
    return [list_to_summary(lst) for lst in db.list_lists()]


@router.post("", response_model=TodoListResponse, status_code=status.HTTP_201_CREATED)
def create_todo_list(
    request: TodoListCreateRequest,
    db: Database = Depends(get_db),
) -> TodoListResponse:
    """Create a todo list."""
    return list_to_response(db.create_list(request.name))


@router.get("/{list_id}", response_model=TodoListResponse)
def get_todo_list(list_id: int, db: Database = Depends(get_db)) -> TodoListResponse:
    """Get a todo list with its items."""
    todo_list = db.get_list(list_id)
    if todo_list is None:
        raise _not_found(list_id)
    return list_to_response(todo_list)


@router.put("/{list_id}", response_model=TodoListResponse)
def update_todo_list(
    list_id: int,
    request: TodoListUpdateRequest,
    db: Database = Depends(get_db),
) -> TodoListResponse:
    """Rename a todo list."""
    todo_list = db.rename_list(list_id, request.name)
    if todo_list is None:
        raise _not_found(list_id)
    return list_to_response(todo_list)


@router.delete("/{list_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_todo_list(list_id: int, db: Database = Depends(get_db)) -> Response:
    """Delete a todo list and its items.

    Synced entities leave a tombstone so the deletion reaches the remote
    API on the next push.
    """
    if not db.remove_list(list_id):
        raise _not_found(list_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
