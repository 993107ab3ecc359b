# src/goalcore/engine/progress.py
"""
Progress Engine: one consistent state transition per action.

A "log progress" action runs, in this order:

1. Reset Tracker (close an elapsed sub-period),
2. Period Scaler (close an elapsed scaling period and rescale the target),
3. the increment itself,

so an increment always lands in the *new* period or sub-period and is
never counted toward one that has already closed. A manual scale closes
the current period immediately with a forced outcome.

Transitions are evaluated lazily: nothing ticks goals forward in the
background. Reads call :meth:`ProgressEngine.refresh` to apply any
transition that became due since the goal was last touched.

The module-level functions mutate a ``Goal`` in place and never touch
storage. :class:`ProgressEngine` applies them to a working copy and
persists the result with an optimistic version check, so a failed write
leaves the caller's goal untouched.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import TYPE_CHECKING, Optional, Union

from ..exceptions import GoalValidationError
from ..logging_config import log_display
from ..models import Goal, GoalDirection, HistoryEntry, ScaleDirection, ensure_utc, utc_now
from .periods import is_period_due
from .reset_tracker import check_reset
from .scaler import apply_auto_scaling

if TYPE_CHECKING:
    from ..storage.base import BaseGoalStorage

logger = logging.getLogger(__name__)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return ensure_utc(now) if now is not None else utc_now()


# =============================================================================
# Pure state transitions
# =============================================================================


def achieved_amount(goal: Goal) -> float:
    """What counts toward the target: progress, or resets completed for reset goals."""
    return goal.resets_completed if goal.tracks_resets else goal.progress


def is_goal_achieved(goal: Goal) -> bool:
    """Compare the achieved amount to the target, honouring the goal direction."""
    amount = achieved_amount(goal)
    if goal.goal_direction == GoalDirection.DECREASE:
        return amount <= goal.target
    return amount >= goal.target


def calculate_progress(goal: Goal) -> float:
    """Percentage complete for the current period; 0 when the target is 0."""
    if goal.target == 0:
        return 0.0
    return achieved_amount(goal) / goal.target * 100


def should_scale_period(goal: Goal, now: Optional[datetime] = None) -> bool:
    """True iff ``now`` is at or past the end of the goal's current scaling period."""
    return is_period_due(goal.current_period_start, goal.timeframe, _resolve_now(now))


def scale_period(
    goal: Goal,
    now: Optional[datetime] = None,
    achieved: Optional[bool] = None,
    manual: bool = False,
) -> HistoryEntry:
    """
    Close the current scaling period of ``goal``.

    Appends a history entry capturing the pre-scale state, applies the new
    target, starts the next period at ``now`` and zeroes the counters of
    the goal's tracking mode.

    Args:
        goal: Goal to mutate.
        now: Closing time (defaults to current UTC time).
        achieved: Forced outcome; evaluated from the goal when None.
        manual: Marks the entry as a manual scale.

    Returns:
        The appended history entry.
    """
    now = _resolve_now(now)
    if achieved is None:
        achieved = is_goal_achieved(goal)

    old_target = goal.target
    new_target = apply_auto_scaling(goal, achieved)

    entry = HistoryEntry(
        period_start=goal.current_period_start,
        period_end=now,
        target=old_target,
        achieved=achieved_amount(goal),
        success=achieved,
        scaled_to=new_target,
        manual=manual,
        reset_logs=tuple(goal.reset_logs) if goal.tracks_resets else None,
        reset_target=goal.reset_target if goal.tracks_resets else None,
    )
    goal.history.append(entry)

    goal.target = new_target
    goal.current_period_start = now
    if goal.tracks_resets:
        goal.current_reset_progress = 0
        goal.resets_completed = 0
        goal.reset_logs = []
    else:
        goal.progress = 0

    log_display(
        logger,
        logging.INFO,
        "Goal %s period closed (%s): target %s -> %s, success=%s",
        goal.id,
        "manual" if manual else goal.timeframe.value,
        old_target,
        new_target,
        achieved,
    )
    return entry


def advance(goal: Goal, now: Optional[datetime] = None) -> bool:
    """
    Apply every transition that is due at ``now``: sub-period reset, then period scaling.

    Returns:
        True if the goal changed.
    """
    now = _resolve_now(now)
    changed = check_reset(goal, now)
    if should_scale_period(goal, now):
        scale_period(goal, now)
        changed = True
    return changed


def apply_increment(goal: Goal, increment: float) -> None:
    """Add ``increment`` to the counter of the goal's tracking mode, floored at 0."""
    if isinstance(increment, bool) or not isinstance(increment, (int, float)) or not math.isfinite(increment):
        raise GoalValidationError(f"Increment must be a finite number, got {increment!r}.")
    if goal.tracks_resets:
        goal.current_reset_progress = max(0, goal.current_reset_progress + increment)
    else:
        goal.progress = max(0, goal.progress + increment)


def parse_scale_direction(direction: Union[str, ScaleDirection]) -> ScaleDirection:
    """Validate a manual scale direction."""
    try:
        return ScaleDirection(direction)
    except ValueError:
        raise GoalValidationError(
            f'Direction must be "up" or "down", got {direction!r}.',
            errors=[{"loc": ("direction",), "msg": "must be 'up' or 'down'"}],
        )


# =============================================================================
# Persisting engine
# =============================================================================


class ProgressEngine:
    """
    Runs progress actions against a goal and persists the resulting state.

    Args:
        storage: Goal storage backend used to persist transitions.

    Example:
        >>> engine = ProgressEngine(storage)
        >>> goal = await engine.log_progress(goal, increment=2)
        >>> goal = await engine.manual_scale(goal, "up")
    """

    def __init__(self, storage: BaseGoalStorage) -> None:
        self.storage = storage

    async def log_progress(
        self,
        goal: Goal,
        increment: float = 1,
        now: Optional[datetime] = None,
    ) -> Goal:
        """Reset check, period check, then increment; persist and return the new state."""
        now = _resolve_now(now)
        working = goal.model_copy(deep=True)
        advance(working, now)
        apply_increment(working, increment)
        logger.debug("Goal %s progress logged: +%s", goal.id, increment)
        return await self._persist(working, now)

    async def manual_scale(
        self,
        goal: Goal,
        direction: Union[str, ScaleDirection],
        now: Optional[datetime] = None,
    ) -> Goal:
        """Close the current period now, treating ``up`` as achieved and ``down`` as missed."""
        scale_direction = parse_scale_direction(direction)
        now = _resolve_now(now)
        working = goal.model_copy(deep=True)
        scale_period(working, now, achieved=scale_direction == ScaleDirection.UP, manual=True)
        return await self._persist(working, now)

    async def refresh(self, goal: Goal, now: Optional[datetime] = None) -> Goal:
        """Apply due transitions without an increment; persist only if something changed."""
        now = _resolve_now(now)
        working = goal.model_copy(deep=True)
        if not advance(working, now):
            return goal
        return await self._persist(working, now)

    async def _persist(self, working: Goal, now: datetime) -> Goal:
        working.updated = now
        return await self.storage.update(working, expected_version=working.version)
