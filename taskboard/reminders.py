# taskboard/reminders.py
"""Reminder scheduler.

A polling loop that:
- fetches armed reminders (enabled, unsent, due within the next interval),
- hands each one to the delivery adapter,
- marks it sent on success, or counts the failed attempt and leaves it
  armed for the next cycle.

A reminder whose time passed while the process was down is still armed
and fires on the next poll. Failed deliveries are retried every cycle
until ``max_attempts`` is reached; after that the reminder stays unsent
and is ignored until the user edits it.

The loop is owned by the application lifespan: ``start()`` inside a
running event loop, ``await stop()`` on shutdown.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session

from taskboard.mailer import ReminderDelivery
from taskboard.models import Task, User, utcnow
from taskboard.store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0


class ReminderScheduler:
    """Recurring background task that delivers due reminders."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        delivery: ReminderDelivery,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._delivery = delivery
        self._interval = max(0.01, float(poll_interval))
        self._max_attempts = max(1, int(max_attempts))
        self._clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def poll_interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -- lifecycle -------------------------------------------------------------

    def start(self) -> None:
        """Start polling. Must be called from a running event loop."""
        if self.running:
            return
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="reminder-scheduler")
        logger.info("Reminder scheduler started interval=%ss", self._interval)

    async def stop(self) -> None:
        """Cancel the polling loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Reminder scheduler stopped")

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Reminder poll failed")
            await asyncio.sleep(self._interval)

    # -- one cycle ---------------------------------------------------------------

    async def poll_once(self, now: Optional[datetime] = None) -> int:
        """Run one poll cycle. Returns the number of reminders marked sent."""
        now = now or self._clock()
        window_end = now + timedelta(seconds=self._interval)

        try:
            due = await asyncio.to_thread(self._load_due, window_end)
        except Exception:
            logger.exception("Loading due reminders failed")
            return 0

        if due:
            logger.info("Found %s due reminder(s)", len(due))

        delivered = 0
        for task, owner in due:
            if await self._process(task, owner):
                delivered += 1
        return delivered

    async def _process(self, task: Task, owner: User) -> bool:
        reminder_time = task.reminder_time
        try:
            ok = await asyncio.to_thread(self._delivery.deliver, task, owner)
        except Exception:
            logger.exception("Reminder delivery raised task_id=%s", task.id)
            ok = False

        try:
            if ok:
                marked = await asyncio.to_thread(self._mark_sent, task.id, reminder_time)
                if not marked:
                    logger.info("Reminder edited during delivery task_id=%s; left armed", task.id)
                return marked

            await asyncio.to_thread(self._record_failure, task.id, reminder_time)
            attempts = task.reminder_attempts + 1
            if attempts >= self._max_attempts:
                logger.warning(
                    "Giving up on reminder task_id=%s after %s attempts", task.id, attempts
                )
        except Exception:
            logger.exception("Updating reminder state failed task_id=%s", task.id)
        return False

    # -- store access (worker threads) ---------------------------------------------

    def _load_due(self, until: datetime) -> list[tuple[Task, User]]:
        with self._session_factory() as session:
            return TaskStore(session).armed_reminders(
                until=until, max_attempts=self._max_attempts
            )

    def _mark_sent(self, task_id: int, reminder_time: datetime) -> bool:
        with self._session_factory() as session:
            return TaskStore(session).mark_reminder_sent(task_id, reminder_time)

    def _record_failure(self, task_id: int, reminder_time: datetime) -> None:
        with self._session_factory() as session:
            TaskStore(session).record_failed_attempt(task_id, reminder_time)
