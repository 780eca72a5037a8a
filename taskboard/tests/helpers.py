"""Helpers shared by the test modules."""

from sqlmodel import Session

from taskboard.models import Task, User
from taskboard.store import TaskStore


def titles_in_order(store: TaskStore, owner_id: int) -> list[str]:
    return [task.title for task in store.list_ordered(owner_id)]


def positions(store: TaskStore, owner_id: int) -> list[int]:
    return sorted(task.position for task in store.list_ordered(owner_id))


def add_task(session: Session, owner: User, title: str, position: int, **fields) -> Task:
    """Insert a task row directly, bypassing request validation."""
    task = Task(owner_id=owner.id, title=title, position=position, **fields)
    session.add(task)
    session.commit()
    session.refresh(task)
    return task
