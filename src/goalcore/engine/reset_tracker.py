# src/goalcore/engine/reset_tracker.py
"""
Reset Tracker for goals with a sub-period reset frequency.

A daily/weekly/monthly reset goal accumulates ``current_reset_progress``
within the current sub-period. When a sub-period elapses, its outcome is
written to ``reset_logs``, successful sub-periods increment
``resets_completed``, and a fresh sub-period starts at ``now``.
"""

import logging
from datetime import datetime
from typing import Optional

from ..models import Goal, ResetLog, ensure_utc, utc_now
from .periods import sub_period_elapsed

logger = logging.getLogger(__name__)

# Threshold used when a reset goal has no explicit reset_target.
DEFAULT_RESET_THRESHOLD = 1.0


def effective_reset_target(goal: Goal) -> float:
    """The amount a sub-period must reach to count as met."""
    if goal.reset_target is None:
        return DEFAULT_RESET_THRESHOLD
    return goal.reset_target


def check_reset(goal: Goal, now: Optional[datetime] = None) -> bool:
    """
    Close the current sub-period of ``goal`` if it has elapsed.

    Mutates the goal's reset bookkeeping in place. Goals with
    ``reset_frequency == never`` are never touched.

    Args:
        goal: The goal to check.
        now: Evaluation time (defaults to current UTC time).

    Returns:
        True if a reset occurred; the caller must persist the goal.
    """
    if not goal.tracks_resets:
        return False

    now = ensure_utc(now) if now is not None else utc_now()
    if not sub_period_elapsed(goal.last_reset, goal.reset_frequency, now):
        return False

    target_met = goal.current_reset_progress >= effective_reset_target(goal)
    had_activity = goal.current_reset_progress > 0 or bool(goal.reset_logs)

    if had_activity:
        goal.reset_logs.append(
            ResetLog(
                date=goal.last_reset,
                progress=goal.current_reset_progress,
                target_met=target_met,
            )
        )
        if target_met:
            goal.resets_completed += 1

    logger.debug(
        "Goal %s sub-period closed (%s): progress=%s met=%s logged=%s",
        goal.id,
        goal.reset_frequency.value,
        goal.current_reset_progress,
        target_met,
        had_activity,
    )

    goal.current_reset_progress = 0
    goal.last_reset = now
    return True
