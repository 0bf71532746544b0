"""
Todo endpoints.

`/task/{task_id}` is declared before `/{todo_id}` so the literal segment wins.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from uuid import UUID

from core.auth import Identity, get_current_identity
from core.cache import CacheStore, get_cache
from core.database import get_db
from core.pagination import ListParams, list_params
from schemas import TaskPatch, TodoCreate, TodoResponse, TodoUpdate, to_payload
from services import todos as todo_service

router = APIRouter(prefix="/api/v1/todo", tags=["todo"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_todo(
    data: TodoCreate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    todo = todo_service.create_todo(db, cache, identity, data)
    return {
        "success": True,
        "message": "Todo created successfully",
        "savedTodo": to_payload(TodoResponse, todo),
    }


@router.get("")
def list_todos(
    params: ListParams = Depends(list_params),
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    """An empty list is a normal 200."""
    todos, from_cache = todo_service.list_todos(db, cache, identity, params)
    message = "Todos retrieved from cache successfully" if from_cache else "Todos retrieved successfully"
    return {"success": True, "message": message, "todos": todos}


@router.delete("/task/{task_id}")
def delete_task(
    task_id: UUID,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    todo_deleted = todo_service.delete_task(db, cache, identity, task_id)
    if todo_deleted:
        return {"success": True, "message": "Task deleted. Todo removed as it had no remaining tasks"}
    return {"success": True, "message": "Task deleted successfully"}


@router.put("/{todo_id}")
def update_todo(
    todo_id: UUID,
    changes: TodoUpdate,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    todo = todo_service.update_todo(db, cache, identity, todo_id, changes)
    return {
        "success": True,
        "message": "Todo updated successfully",
        "todoData": to_payload(TodoResponse, todo),
    }


@router.patch("/{todo_id}")
def update_task(
    todo_id: UUID,
    patch: TaskPatch,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    todo = todo_service.update_task(db, cache, identity, todo_id, patch)
    return {
        "success": True,
        "message": "Task updated successfully",
        "todoData": to_payload(TodoResponse, todo),
    }


@router.delete("/{todo_id}")
def delete_todo(
    todo_id: UUID,
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
    cache: CacheStore = Depends(get_cache),
):
    todo_service.delete_todo(db, cache, identity, todo_id)
    return {"success": True, "message": "Todo deleted successfully"}
