# taskboard/reorder.py
"""Reorder engine: moves tasks within an owner's dense position list.

Moving a task from ``old`` to ``new`` touches exactly ``|new - old|``
other rows:

- moving later shifts ``old < position <= new`` back by one,
- moving earlier shifts ``new <= position < old`` forward by one,

then the moved task takes ``new``. The bounds are asymmetric so the
boundary task is never shifted twice. Deleting a task is the same shift
with an open upper bound.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from taskboard.errors import InvalidArgument
from taskboard.models import Task
from taskboard.store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ShiftPlan:
    """One range shift: add ``delta`` to positions between ``low`` and ``high``."""
    low: int
    high: Optional[int]
    delta: int
    include_low: bool
    include_high: bool


def clamp_position(new_position: int, count: int) -> int:
    """Validate a requested position and clamp it into ``[0, count - 1]``."""
    if isinstance(new_position, bool) or not isinstance(new_position, int):
        raise InvalidArgument("Position must be an integer")
    if new_position < 0:
        raise InvalidArgument("Position must not be negative")
    return min(new_position, max(count - 1, 0))


def plan_move(old_position: int, new_position: int) -> Optional[ShiftPlan]:
    """Return the shift that makes room for a move, or None for a no-op."""
    if new_position == old_position:
        return None
    if new_position > old_position:
        return ShiftPlan(
            low=old_position,
            high=new_position,
            delta=-1,
            include_low=False,
            include_high=True,
        )
    return ShiftPlan(
        low=new_position,
        high=old_position,
        delta=1,
        include_low=True,
        include_high=False,
    )


def plan_compaction(removed_position: int) -> ShiftPlan:
    """Shift that closes the gap left by a deleted task."""
    return ShiftPlan(
        low=removed_position,
        high=None,
        delta=-1,
        include_low=False,
        include_high=False,
    )


def _apply(store: TaskStore, owner_id: int, plan: ShiftPlan) -> int:
    return store.shift_range(
        owner_id,
        plan.low,
        plan.high,
        plan.delta,
        include_low=plan.include_low,
        include_high=plan.include_high,
    )


def move_task(store: TaskStore, owner_id: int, task_id: int, new_position: int) -> list[Task]:
    """Move a task and return the owner's re-sorted list.

    Shift and final placement are applied in one owner transaction.

    Raises:
        NotFound: The task does not belong to the owner.
        InvalidArgument: The position is negative or not an integer.
    """
    with store.transaction(owner_id):
        task = store.get(owner_id, task_id)
        old_position = task.position
        target = clamp_position(new_position, store.count(owner_id))
        plan = plan_move(old_position, target)
        if plan is not None:
            shifted = _apply(store, owner_id, plan)
            store.set_position(owner_id, task_id, target)
            logger.info(
                "Task moved id=%s owner_id=%s %s -> %s (shifted %s)",
                task_id, owner_id, old_position, target, shifted,
            )
    return store.list_ordered(owner_id)


def delete_task(store: TaskStore, owner_id: int, task_id: int) -> int:
    """Delete a task and compact the positions after it.

    Returns the position the task held.
    """
    with store.transaction(owner_id):
        removed_position = store.remove(owner_id, task_id)
        shifted = _apply(store, owner_id, plan_compaction(removed_position))
    logger.info(
        "Task deleted id=%s owner_id=%s position=%s (shifted %s)",
        task_id, owner_id, removed_position, shifted,
    )
    return removed_position
