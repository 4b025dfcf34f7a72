"""Todo item API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from todosync.server.api.deps import get_db
from todosync.server.database import Database
from todosync.server.schemas import (
    TodoItemCreateRequest,
    TodoItemResponse,
    TodoItemUpdateRequest,
    item_to_response,
)

router = APIRouter(prefix="/api/todolists/{list_id}/todos", tags=["todos"])


@router.get("", response_model=list[TodoItemResponse])
def list_todo_items(list_id: int, db: Database = Depends(get_db)) -> list[TodoItemResponse]:
    """List items of a todo list."""
    items = db.list_items(list_id)
    if items is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Todo list not found: {list_id}",
        )
    return [item_to_response(i) for i in items]


@router.post("", response_model=TodoItemResponse, status_code=status.HTTP_201_CREATED)
def create_todo_item(
    list_id: int,
    request: TodoItemCreateRequest,
    db: Database = Depends(get_db),
) -> TodoItemResponse:
    """Add an item to a todo list."""
    item = db.create_item(list_id, request.description, request.completed)
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Todo list not found: {list_id}",
        )
    return item_to_response(item)


@router.put("/{item_id}", response_model=TodoItemResponse)
def update_todo_item(
    list_id: int,
    item_id: int,
    request: TodoItemUpdateRequest,
    db: Database = Depends(get_db),
) -> TodoItemResponse:
    """Update description and completion of an item."""
    item = db.update_item(
        list_id, item_id, description=request.description, completed=request.completed
    )
    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Todo item not found: {item_id}",
        )
    return item_to_response(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_todo_item(list_id: int, item_id: int, db: Database = Depends(get_db)) -> Response:
    """Delete an item."""
    if not db.remove_item(list_id, item_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Todo item not found: {item_id}",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
