"""Tests for reminder/due-date request validation."""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard.errors import InvalidArgument
from taskboard.models import ReminderInput, Task, TaskCreate, TaskUpdate
from taskboard.validation import resolve_reminder, validate_create, validate_update

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestResolveReminder:
    def test_disabled_passes_through(self):
        reminder = ReminderInput(enabled=False, time=NOW - timedelta(days=1))
        assert resolve_reminder(reminder, None, NOW) is reminder

    def test_defaults_to_hour_before_due(self):
        due = NOW + timedelta(days=1)
        result = resolve_reminder(ReminderInput(enabled=True), due, NOW)
        assert result.time == due - timedelta(hours=1)

    def test_needs_time_or_due_date(self):
        with pytest.raises(InvalidArgument):
            resolve_reminder(ReminderInput(enabled=True), None, NOW)

    def test_past_time_rejected(self):
        with pytest.raises(InvalidArgument, match="future"):
            resolve_reminder(ReminderInput(enabled=True, time=NOW), None, NOW)

    def test_default_in_past_rejected(self):
        due = NOW + timedelta(minutes=30)
        with pytest.raises(InvalidArgument):
            resolve_reminder(ReminderInput(enabled=True), due, NOW)

    def test_after_due_rejected(self):
        reminder = ReminderInput(enabled=True, time=NOW + timedelta(hours=3))
        with pytest.raises(InvalidArgument, match="due date"):
            resolve_reminder(reminder, NOW + timedelta(hours=2), NOW)

    def test_equal_to_due_accepted(self):
        due = NOW + timedelta(hours=2)
        result = resolve_reminder(ReminderInput(enabled=True, time=due), due, NOW)
        assert result.time == due


def test_aware_times_are_stored_as_utc():
    body = TaskCreate(
        title="tz",
        due_date=datetime(2026, 10, 20, 14, 0, tzinfo=timezone(timedelta(hours=2))),
        reminder={"enabled": True, "time": "2026-10-20T13:00:00+02:00"},
    )
    body = validate_create(body, NOW)
    assert body.due_date == datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)
    assert body.reminder.time == datetime(2026, 10, 20, 11, 0, tzinfo=timezone.utc)


def test_naive_times_are_taken_as_utc():
    body = TaskCreate(title="tz", due_date="2026-10-20T12:00:00")
    assert body.due_date == datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)


class TestValidateUpdate:
    def _task(self, **fields) -> Task:
        return Task(id=1, owner_id=1, title="t", position=0, **fields)

    def test_reminder_checked_against_existing_due_date(self):
        task = self._task(due_date=NOW + timedelta(hours=1))
        body = TaskUpdate(reminder=ReminderInput(enabled=True, time=NOW + timedelta(hours=2)))
        with pytest.raises(InvalidArgument):
            validate_update(task, body, NOW)

    def test_reminder_checked_against_new_due_date(self):
        task = self._task(due_date=NOW + timedelta(hours=1))
        body = TaskUpdate(
            due_date=NOW + timedelta(hours=5),
            reminder=ReminderInput(enabled=True, time=NOW + timedelta(hours=2)),
        )
        assert validate_update(task, body, NOW).reminder.time == NOW + timedelta(hours=2)

    def test_moving_due_date_before_armed_reminder_rejected(self):
        task = self._task(
            due_date=NOW + timedelta(days=2),
            reminder_enabled=True,
            reminder_time=NOW + timedelta(days=1),
        )
        with pytest.raises(InvalidArgument):
            validate_update(task, TaskUpdate(due_date=NOW + timedelta(hours=12)), NOW)

    def test_unrelated_update_skips_reminder_checks(self):
        task = self._task(reminder_enabled=True, reminder_time=NOW - timedelta(days=1))
        body = TaskUpdate(title="renamed")
        assert validate_update(task, body, NOW) is body
