# src/goalcore/engine/scaler.py
"""
Period Scaler: computes the next target from the outcome of a period.

The step is ``target * scale_percent / 100``. Which way the target moves
depends on the goal direction:

    +-----------+----------------------------+------------------------------+
    | direction | achieved and scale-up on   | missed and scale-down on     |
    +-----------+----------------------------+------------------------------+
    | increase  | grow (harder)              | shrink (easier)              |
    | decrease  | shrink (harder)            | grow (easier)                |
    +-----------+----------------------------+------------------------------+

Anything else leaves the target unchanged. The result is always clamped
to ``[min_target, max_target]``.
"""

import math
from typing import Protocol

from ..models import GoalDirection


class ScalingParameters(Protocol):
    """The goal attributes the scaler reads. ``Goal`` satisfies this."""

    target: float
    goal_direction: GoalDirection
    scale_percent: float
    scale_up_enabled: bool
    scale_down_enabled: bool
    round_up: bool
    min_target: float
    max_target: float


def _round(value: float, round_up: bool) -> int:
    # Strip float noise so that e.g. 10 + 10 * 0.1 ceils to 11, not 12.
    value = round(value, 9)
    return math.ceil(value) if round_up else math.floor(value)


def clamp_target(value: float, min_target: float, max_target: float) -> float:
    """Clamp ``value`` into ``[min_target, max_target]``."""
    return max(min_target, min(value, max_target))


def apply_auto_scaling(goal: ScalingParameters, achieved: bool) -> float:
    """
    Return the target for the next period.

    Pure: reads only the scaling parameters of ``goal`` and never mutates it.

    Args:
        goal: Object carrying the scaling parameters.
        achieved: Whether the closing period counted as a success.

    Returns:
        The new target, clamped to the goal's bounds.
    """
    delta = goal.target * (goal.scale_percent / 100)
    grow = _round(goal.target + delta, goal.round_up)
    shrink = _round(goal.target - delta, goal.round_up)

    new_target: float = goal.target
    if GoalDirection(goal.goal_direction) == GoalDirection.DECREASE:
        if achieved and goal.scale_up_enabled:
            new_target = shrink
        elif not achieved and goal.scale_down_enabled:
            new_target = grow
    else:
        if achieved and goal.scale_up_enabled:
            new_target = grow
        elif not achieved and goal.scale_down_enabled:
            new_target = shrink

    return clamp_target(new_target, goal.min_target, goal.max_target)
