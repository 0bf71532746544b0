"""
Todo service.

A todo owns an ordered list of subtasks. Removing the last subtask removes
the todo itself, in the same transaction.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.auth import Identity
from core.cache import CacheStore, todo_cache_key
from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from core.pagination import ListParams
from core.permissions import can_manage_todo
from models import Todo, TodoTask, utcnow
from schemas import TaskCreate, TaskPatch, TodoCreate, TodoResponse, TodoUpdate, to_payload

logger = logging.getLogger(__name__)

DEFAULT_SORT = "createdAt"
SORTABLE = {
    "createdAt": Todo.created_at,
    "dueDate": Todo.due_date,
    "priority": Todo.priority,
    "title": Todo.title,
}


def _clean_title(title: Optional[str]) -> Optional[str]:
    if title is None:
        return None
    return title.strip()


def _build_tasks(tasks: List[TaskCreate], start: int = 0) -> List[TodoTask]:
    built = []
    for offset, task in enumerate(tasks):
        title = _clean_title(task.title)
        if not title:
            raise ValidationError("Every task needs a title", field="tasks")
        built.append(TodoTask(title=title, completed=task.completed, position=start + offset))
    return built


def create_todo(db: Session, cache: CacheStore, identity: Identity, data: TodoCreate) -> Todo:
    todo = Todo(
        user_id=identity.id,
        title=_clean_title(data.title),
        due_date=data.due_date,
        priority=data.priority or "medium",
    )
    todo.tasks = _build_tasks(data.tasks or [])

    db.add(todo)
    db.commit()
    db.refresh(todo)

    cache.invalidate(todo_cache_key(identity.id))
    return todo


def list_todos(
    db: Session, cache: CacheStore, identity: Identity, params: ListParams
) -> Tuple[List[dict], bool]:
    def load() -> List[dict]:
        query = db.query(Todo).filter(Todo.user_id == identity.id)
        query = params.apply(query, SORTABLE, DEFAULT_SORT, tiebreak=Todo.id)
        return [to_payload(TodoResponse, todo) for todo in query.all()]

    return cache.read_through(todo_cache_key(identity.id), params.variant(DEFAULT_SORT), load)


def _get_owned(db: Session, identity: Identity, todo_id: UUID, missing: str = "Todo not found") -> Todo:
    todo = db.get(Todo, todo_id)
    if not todo:
        raise NotFoundError(missing)
    if not can_manage_todo(identity, todo):
        raise ForbiddenError("You can only modify your own todos")
    return todo


def update_todo(
    db: Session, cache: CacheStore, identity: Identity, todo_id: UUID, changes: TodoUpdate
) -> Todo:
    """Set title/dueDate/priority when given; append any supplied tasks."""
    title = _clean_title(changes.title)
    if not title and changes.due_date is None and changes.priority is None and not changes.tasks:
        raise ValidationError("At least one field is required to update")

    todo = _get_owned(db, identity, todo_id)
    new_tasks = _build_tasks(changes.tasks or [], start=len(todo.tasks))

    if title:
        todo.title = title
    if changes.due_date is not None:
        todo.due_date = changes.due_date
    if changes.priority is not None:
        todo.priority = changes.priority
    if new_tasks:
        todo.tasks.extend(new_tasks)
    todo.updated_at = utcnow()

    db.commit()
    db.refresh(todo)

    cache.invalidate(todo_cache_key(todo.user_id))
    return todo


def update_task(
    db: Session, cache: CacheStore, identity: Identity, todo_id: UUID, patch: TaskPatch
) -> Todo:
    """Rename a subtask and/or flip its completion flag."""
    task_title = _clean_title(patch.task_title)
    if patch.task_id is None or (not task_title and patch.completed is None):
        raise ValidationError("Task ID and at least one field (taskTitle or completed) are required")

    todo = _get_owned(db, identity, todo_id, missing="Todo or task not found")
    task = next((t for t in todo.tasks if t.id == patch.task_id), None)
    if task is None:
        raise NotFoundError("Todo or task not found")

    if task_title:
        task.title = task_title
    if patch.completed is not None:
        task.completed = patch.completed
    todo.updated_at = utcnow()

    db.commit()
    db.refresh(todo)

    cache.invalidate(todo_cache_key(todo.user_id))
    return todo


def delete_todo(db: Session, cache: CacheStore, identity: Identity, todo_id: UUID) -> None:
    todo = _get_owned(db, identity, todo_id)
    owner_id = todo.user_id
    db.delete(todo)
    db.commit()

    cache.invalidate(todo_cache_key(owner_id))


def delete_task(db: Session, cache: CacheStore, identity: Identity, task_id: UUID) -> bool:
    """
    Remove one subtask. Returns True if that emptied the todo, which is
    then deleted as well.
    """
    task = db.get(TodoTask, task_id)
    if task is None:
        raise NotFoundError("Task not found")

    todo = task.todo
    if not can_manage_todo(identity, todo):
        raise ForbiddenError("You can only modify your own todos")

    owner_id = todo.user_id
    todo.tasks.remove(task)
    todo_deleted = len(todo.tasks) == 0
    if todo_deleted:
        db.delete(todo)
        logger.info(f"Todo {todo.id} deleted after its last task was removed")
    else:
        todo.updated_at = utcnow()
    db.commit()

    cache.invalidate(todo_cache_key(owner_id))
    return todo_deleted
