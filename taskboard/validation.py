# taskboard/validation.py
"""Request-level checks on reminder and due dates.

These run before the store is touched. The store itself never rejects a
reminder; it only persists what it is given.
"""

from datetime import datetime, timedelta
from typing import Optional

from taskboard.errors import InvalidArgument
from taskboard.models import ReminderInput, Task, TaskCreate, TaskUpdate

DEFAULT_REMINDER_LEAD = timedelta(hours=1)


def resolve_reminder(
    reminder: ReminderInput, due_date: Optional[datetime], now: datetime
) -> ReminderInput:
    """Fill in the default reminder time and check the reminder against *now*.

    An enabled reminder without a time fires one hour before the due date.
    A disabled reminder is accepted as-is.
    """
    if not reminder.enabled:
        return reminder

    time = reminder.time
    if time is None:
        if due_date is None:
            raise InvalidArgument("Reminder time is required when the task has no due date")
        time = due_date - DEFAULT_REMINDER_LEAD

    if time <= now:
        raise InvalidArgument("Reminder time must be in the future")
    if due_date is not None and time > due_date:
        raise InvalidArgument("Reminder time must be on or before the due date")

    return ReminderInput(enabled=True, time=time)


def validate_create(body: TaskCreate, now: datetime) -> TaskCreate:
    body.reminder = resolve_reminder(body.reminder, body.due_date, now)
    return body


def validate_update(task: Task, body: TaskUpdate, now: datetime) -> TaskUpdate:
    """Check an update against the task it will be merged into."""
    fields = body.model_fields_set
    due_date = body.due_date if "due_date" in fields else task.due_date

    if "reminder" in fields and body.reminder is not None:
        body.reminder = resolve_reminder(body.reminder, due_date, now)
    elif "due_date" in fields and due_date is not None:
        # Reminder untouched: it must still fit before the new due date.
        if (
            task.reminder_enabled
            and not task.reminder_sent
            and task.reminder_time is not None
            and task.reminder_time > due_date
        ):
            raise InvalidArgument("Reminder time must be on or before the due date")
    return body
