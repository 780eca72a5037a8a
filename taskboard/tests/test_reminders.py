"""Tests for the reminder scheduler."""

import asyncio
from datetime import timedelta

import pytest
from sqlmodel import Session

from taskboard.models import Task, User, utcnow
from taskboard.reminders import ReminderScheduler

from helpers import add_task


class FakeDelivery:
    """Records delivery attempts. Succeeds unless told otherwise."""

    def __init__(self, succeed: bool = True, on_deliver=None) -> None:
        self.succeed = succeed
        self.on_deliver = on_deliver
        self.calls: list[tuple[int, str]] = []

    def deliver(self, task: Task, owner: User) -> bool:
        self.calls.append((task.id, owner.email))
        if self.on_deliver is not None:
            self.on_deliver(task)
        return self.succeed


def _scheduler(engine, delivery, **kwargs) -> ReminderScheduler:
    kwargs.setdefault("poll_interval", 10.0)
    return ReminderScheduler(lambda: Session(engine), delivery, **kwargs)


def _armed(session: Session, user: User, title: str, fire_at, position: int = 0) -> Task:
    return add_task(
        session,
        user,
        title,
        position,
        reminder_enabled=True,
        reminder_time=fire_at,
    )


@pytest.mark.anyio
async def test_due_reminder_is_delivered_once(engine, session, user):
    now = utcnow()
    task = _armed(session, user, "Dentist", now + timedelta(seconds=5))
    delivery = FakeDelivery()
    scheduler = _scheduler(engine, delivery)

    assert await scheduler.poll_once(now) == 1
    assert delivery.calls == [(task.id, "alice@example.com")]

    session.refresh(task)
    assert task.reminder_sent is True

    assert await scheduler.poll_once(now + timedelta(seconds=10)) == 0
    assert len(delivery.calls) == 1


@pytest.mark.anyio
async def test_reminder_beyond_window_waits(engine, session, user):
    now = utcnow()
    task = _armed(session, user, "Later", now + timedelta(seconds=60))
    delivery = FakeDelivery()
    scheduler = _scheduler(engine, delivery)

    assert await scheduler.poll_once(now) == 0
    assert delivery.calls == []

    assert await scheduler.poll_once(now + timedelta(seconds=55)) == 1
    assert delivery.calls == [(task.id, "alice@example.com")]


@pytest.mark.anyio
async def test_overdue_reminder_fires_on_next_poll(engine, session, user):
    now = utcnow()
    _armed(session, user, "Missed during downtime", now - timedelta(minutes=30))
    delivery = FakeDelivery()

    assert await _scheduler(engine, delivery).poll_once(now) == 1
    assert len(delivery.calls) == 1


@pytest.mark.anyio
async def test_disabled_reminder_never_fires(engine, session, user):
    now = utcnow()
    add_task(
        session,
        user,
        "Quiet",
        0,
        reminder_enabled=False,
        reminder_time=now + timedelta(seconds=1),
    )
    delivery = FakeDelivery()

    assert await _scheduler(engine, delivery).poll_once(now) == 0
    assert delivery.calls == []


@pytest.mark.anyio
async def test_failed_delivery_stays_armed_and_retries(engine, session, user):
    now = utcnow()
    task = _armed(session, user, "Flaky", now + timedelta(seconds=3))
    delivery = FakeDelivery(succeed=False)
    scheduler = _scheduler(engine, delivery)

    assert await scheduler.poll_once(now) == 0
    session.refresh(task)
    assert task.reminder_sent is False
    assert task.reminder_attempts == 1

    delivery.succeed = True
    assert await scheduler.poll_once(now + timedelta(seconds=10)) == 1
    assert len(delivery.calls) == 2
    session.refresh(task)
    assert task.reminder_sent is True


@pytest.mark.anyio
async def test_gives_up_after_max_attempts(engine, session, user):
    now = utcnow()
    task = _armed(session, user, "Broken inbox", now + timedelta(seconds=3))
    delivery = FakeDelivery(succeed=False)
    scheduler = _scheduler(engine, delivery, max_attempts=2)

    await scheduler.poll_once(now)
    await scheduler.poll_once(now + timedelta(seconds=10))
    await scheduler.poll_once(now + timedelta(seconds=20))

    assert len(delivery.calls) == 2
    session.refresh(task)
    assert task.reminder_sent is False


@pytest.mark.anyio
async def test_one_failing_reminder_does_not_block_others(engine, session, user):
    now = utcnow()
    first = _armed(session, user, "first", now + timedelta(seconds=1), position=0)
    second = _armed(session, user, "second", now + timedelta(seconds=2), position=1)

    class ExplodingDelivery(FakeDelivery):
        def deliver(self, task, owner):
            if task.id == first.id:
                self.calls.append((task.id, owner.email))
                raise RuntimeError("transport blew up")
            return super().deliver(task, owner)

    delivery = ExplodingDelivery()
    assert await _scheduler(engine, delivery).poll_once(now) == 1
    assert [task_id for task_id, _ in delivery.calls] == [first.id, second.id]

    session.refresh(first)
    session.refresh(second)
    assert first.reminder_sent is False
    assert second.reminder_sent is True


@pytest.mark.anyio
async def test_edit_during_delivery_keeps_new_reminder_armed(engine, session, user):
    now = utcnow()
    task = _armed(session, user, "Moving target", now + timedelta(seconds=2))
    new_time = now + timedelta(hours=3)

    def edit_reminder(delivered: Task) -> None:
        with Session(engine) as other:
            row = other.get(Task, delivered.id)
            row.reminder_time = new_time
            row.reminder_sent = False
            other.add(row)
            other.commit()

    delivery = FakeDelivery(on_deliver=edit_reminder)
    assert await _scheduler(engine, delivery).poll_once(now) == 0

    session.refresh(task)
    assert task.reminder_sent is False
    assert task.reminder_time == new_time


@pytest.mark.anyio
async def test_start_and_stop(engine, session, user):
    _armed(session, user, "Background", utcnow() - timedelta(seconds=1))
    delivery = FakeDelivery()
    scheduler = _scheduler(engine, delivery, poll_interval=0.01)

    scheduler.start()
    assert scheduler.running
    await asyncio.sleep(0.2)
    await scheduler.stop()

    assert not scheduler.running
    assert len(delivery.calls) == 1
