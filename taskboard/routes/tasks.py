# taskboard/routes/tasks.py
"""Task endpoints: CRUD, reordering and analytics for the calling user."""

from functools import partial

from fastapi import APIRouter, Depends
from sqlmodel import Session

from taskboard.auth import get_current_user
from taskboard.database import get_session
from taskboard.models import (
    ReorderRequest,
    TaskAnalytics,
    TaskCreate,
    TaskRead,
    TaskUpdate,
    User,
    utcnow,
)
from taskboard.reorder import delete_task, move_task
from taskboard.store import TaskStore
from taskboard.validation import validate_create, validate_update

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def get_store(session: Session = Depends(get_session)) -> TaskStore:
    return TaskStore(session)


@router.get("")
def list_tasks(
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> list[TaskRead]:
    """List the caller's tasks in position order."""
    return [TaskRead.from_task(task) for task in store.list_ordered(user.id)]


@router.post("", status_code=201)
def create_task(
    body: TaskCreate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> TaskRead:
    """Create a task at the end of the caller's list."""
    body = validate_create(body, utcnow())
    return TaskRead.from_task(store.append(user.id, body))


@router.get("/analytics")
def task_analytics(
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> TaskAnalytics:
    """Counts by status, priority and category."""
    return store.analytics(user.id)


@router.put("/reorder")
def reorder_tasks(
    body: ReorderRequest,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> list[TaskRead]:
    """Move one task to a new position and return the re-sorted list."""
    tasks = move_task(store, user.id, body.task_id, body.new_position)
    return [TaskRead.from_task(task) for task in tasks]


@router.get("/{task_id}")
def get_task(
    task_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> TaskRead:
    """Get a single task by ID."""
    return TaskRead.from_task(store.get(user.id, task_id))


@router.put("/{task_id}")
def update_task(
    task_id: int,
    body: TaskUpdate,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> TaskRead:
    """Update an existing task. Only provided fields are changed.

    Sending a ``reminder`` block re-arms the reminder.
    """
    check = partial(validate_update, now=utcnow())
    task = store.update(user.id, task_id, body, validate=check)
    return TaskRead.from_task(task)


@router.delete("/{task_id}")
def remove_task(
    task_id: int,
    user: User = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> dict:
    """Delete a task and close the gap in the caller's positions."""
    delete_task(store, user.id, task_id)
    return {"message": "Task deleted"}
