# taskboard/store.py
"""Ordered task store.

Keeps each owner's tasks at dense, zero-based positions. Every
owner-scoped mutation (append, shift, delete, set position) runs inside
:meth:`TaskStore.transaction`, which serializes work for one owner and
commits exactly once, so a shift sequence is either fully applied or not
at all.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from taskboard.errors import NotFound, PersistenceFailure
from taskboard.models import (
    RecurrenceFrequency,
    Task,
    TaskAnalytics,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    User,
    utcnow,
)

logger = logging.getLogger(__name__)


class OwnerLocks:
    """Thread-safe map of owner id -> lock.

    Work for different owners never contends; work for the same owner is
    serialized for the duration of a store transaction.
    """

    def __init__(self) -> None:
        self._locks: dict[int, threading.Lock] = {}
        self._lock = threading.Lock()

    def for_owner(self, owner_id: int) -> threading.Lock:
        with self._lock:
            lock = self._locks.get(owner_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[owner_id] = lock
            return lock


owner_locks = OwnerLocks()


def apply_update(task: Task, body: TaskUpdate) -> bool:
    """Merge the fields set in *body* into *task*.

    Only allow-listed fields are copied. Returns True when the reminder
    block was part of the update, in which case delivery state is reset.
    """
    data = body.model_dump(exclude_unset=True)

    for key in ("title", "description", "status", "priority", "category", "due_date", "tags"):
        if key in data:
            setattr(task, key, getattr(body, key))

    if "recurring" in data:
        recurring = body.recurring
        if recurring is None:
            task.is_recurring = False
            task.recurrence_frequency = RecurrenceFrequency.none
            task.recurrence_end_date = None
        else:
            task.is_recurring = recurring.is_recurring
            task.recurrence_frequency = recurring.frequency
            task.recurrence_end_date = recurring.end_date

    reminder_changed = "reminder" in data
    if reminder_changed:
        reminder = body.reminder
        task.reminder_enabled = bool(reminder and reminder.enabled)
        task.reminder_time = reminder.time if reminder else None
        task.reminder_sent = False
        task.reminder_attempts = 0

    task.updated_at = utcnow()
    return reminder_changed


class TaskStore:
    """Task persistence bound to one SQLModel session."""

    def __init__(self, session: Session, locks: OwnerLocks = owner_locks) -> None:
        self._session = session
        self._locks = locks

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def transaction(self, owner_id: int) -> Iterator[None]:
        """Hold the owner's lock and commit once when the block succeeds.

        Any error rolls the whole block back. Database errors surface as
        PersistenceFailure.
        """
        with self._locks.for_owner(owner_id):
            try:
                yield
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                logger.exception("Transaction failed owner_id=%s", owner_id)
                raise PersistenceFailure("Database error") from exc
            except Exception:
                self._session.rollback()
                raise

    # -- reads ---------------------------------------------------------------

    def count(self, owner_id: int) -> int:
        statement = select(func.count()).select_from(Task).where(Task.owner_id == owner_id)
        return int(self._session.exec(statement).one())

    def get(self, owner_id: int, task_id: int) -> Task:
        """Return the owner's task or raise NotFound."""
        statement = select(Task).where(Task.id == task_id, Task.owner_id == owner_id)
        task = self._session.exec(statement).first()
        if task is None:
            raise NotFound("Task not found")
        return task

    def list_ordered(self, owner_id: int) -> list[Task]:
        statement = (
            select(Task)
            .where(Task.owner_id == owner_id)
            .order_by(col(Task.position).asc(), col(Task.id).asc())
        )
        return list(self._session.exec(statement).all())

    def analytics(self, owner_id: int) -> TaskAnalytics:
        """Aggregate counts by status, priority and category for one owner."""
        by_status = {status.value: 0 for status in TaskStatus}
        by_priority = {priority.value: 0 for priority in TaskPriority}
        by_category: dict[str, int] = {}

        rows = self._session.exec(
            select(Task.status, Task.priority, Task.category).where(Task.owner_id == owner_id)
        ).all()
        for status, priority, category in rows:
            by_status[TaskStatus(status).value] += 1
            by_priority[TaskPriority(priority).value] += 1
            if category:
                by_category[category] = by_category.get(category, 0) + 1

        return TaskAnalytics(
            total=len(rows),
            by_status=by_status,
            by_priority=by_priority,
            by_category=by_category,
        )

    # -- owner-scoped mutations -----------------------------------------------

    def append(self, owner_id: int, body: TaskCreate) -> Task:
        """Insert a task at the end of the owner's list."""
        with self.transaction(owner_id):
            position = self.count(owner_id)
            task = Task(
                owner_id=owner_id,
                title=body.title,
                description=body.description,
                status=body.status,
                priority=body.priority,
                category=body.category,
                due_date=body.due_date,
                position=position,
                tags=list(body.tags),
                is_recurring=body.recurring.is_recurring,
                recurrence_frequency=body.recurring.frequency,
                recurrence_end_date=body.recurring.end_date,
                reminder_enabled=body.reminder.enabled,
                reminder_time=body.reminder.time,
            )
            self._session.add(task)
        self._session.refresh(task)
        logger.info("Task created id=%s owner_id=%s position=%s", task.id, owner_id, position)
        return task

    def update(
        self,
        owner_id: int,
        task_id: int,
        body: TaskUpdate,
        validate: Optional[Callable[[Task, TaskUpdate], TaskUpdate]] = None,
    ) -> Task:
        """Merge *body* into the task.

        *validate* sees the task as loaded under the owner's lock and may
        return a rewritten body or raise to abort the update.
        """
        with self.transaction(owner_id):
            task = self.get(owner_id, task_id)
            if validate is not None:
                body = validate(task, body)
            if apply_update(task, body):
                logger.debug("Reminder re-armed task_id=%s time=%s", task_id, task.reminder_time)
            self._session.add(task)
        self._session.refresh(task)
        return task

    def shift_range(
        self,
        owner_id: int,
        low: int,
        high: Optional[int],
        delta: int,
        *,
        include_low: bool,
        include_high: bool,
    ) -> int:
        """Add *delta* to every position of the owner inside the bounds.

        ``high=None`` leaves the range open-ended. Must be called inside
        :meth:`transaction`. Returns the number of rows shifted.
        """
        position = col(Task.position)
        conditions = [
            Task.owner_id == owner_id,
            position >= low if include_low else position > low,
        ]
        if high is not None:
            conditions.append(position <= high if include_high else position < high)

        statement = (
            update(Task)
            .where(*conditions)
            .values(position=Task.position + delta)
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(statement)
        return result.rowcount or 0

    def set_position(self, owner_id: int, task_id: int, position: int) -> Task:
        """Assign a literal position. Must be called inside :meth:`transaction`."""
        task = self.get(owner_id, task_id)
        task.position = position
        task.updated_at = utcnow()
        self._session.add(task)
        self._session.flush()
        return task

    def remove(self, owner_id: int, task_id: int) -> int:
        """Delete the task and return the position it held.

        Must be called inside :meth:`transaction`; the caller compacts the
        remaining positions in the same unit.
        """
        task = self.get(owner_id, task_id)
        position = task.position
        self._session.delete(task)
        self._session.flush()
        return position

    # -- reminder scheduler API -----------------------------------------------

    def armed_reminders(self, *, until: datetime, max_attempts: int) -> list[tuple[Task, User]]:
        """Enabled, unsent reminders due at or before *until*, with their owner."""
        statement = (
            select(Task, User)
            .join(User, col(User.id) == col(Task.owner_id))
            .where(
                col(Task.reminder_enabled).is_(True),
                col(Task.reminder_sent).is_(False),
                col(Task.reminder_time).is_not(None),
                col(Task.reminder_time) <= until,
                col(Task.reminder_attempts) < max_attempts,
            )
            .order_by(col(Task.reminder_time).asc())
        )
        return [(task, user) for task, user in self._session.exec(statement).all()]

    def mark_reminder_sent(self, task_id: int, reminder_time: datetime) -> bool:
        """Move an armed reminder to sent.

        Conditional on the reminder still being armed for *reminder_time*:
        if a client edited the reminder while it was being delivered, the
        update matches nothing and the new arming is kept.
        """
        statement = (
            update(Task)
            .where(
                col(Task.id) == task_id,
                col(Task.reminder_enabled).is_(True),
                col(Task.reminder_sent).is_(False),
                col(Task.reminder_time) == reminder_time,
            )
            .values(reminder_sent=True)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self._session.execute(statement)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceFailure("Database error") from exc
        return (result.rowcount or 0) == 1

    def record_failed_attempt(self, task_id: int, reminder_time: datetime) -> None:
        statement = (
            update(Task)
            .where(
                col(Task.id) == task_id,
                col(Task.reminder_sent).is_(False),
                col(Task.reminder_time) == reminder_time,
            )
            .values(reminder_attempts=Task.reminder_attempts + 1)
            .execution_options(synchronize_session=False)
        )
        try:
            self._session.execute(statement)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise PersistenceFailure("Database error") from exc
