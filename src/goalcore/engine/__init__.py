# src/goalcore/engine/__init__.py
"""
Goal Lifecycle Engine.

- ``scaler``        - Period Scaler (pure target rescaling)
- ``reset_tracker`` - sub-period reset bookkeeping
- ``periods``       - calendar arithmetic for periods and sub-periods
- ``progress``      - Progress Engine (log progress, manual scale, lazy refresh)
- ``hierarchy``     - Hierarchy Manager (trees and cascading delete)
"""

from .hierarchy import HierarchyManager
from .periods import is_period_due, period_end, sub_period_elapsed
from .progress import (
    ProgressEngine,
    advance,
    apply_increment,
    calculate_progress,
    is_goal_achieved,
    scale_period,
    should_scale_period,
)
from .reset_tracker import check_reset
from .scaler import apply_auto_scaling, clamp_target

__all__ = [
    "HierarchyManager",
    "ProgressEngine",
    "advance",
    "apply_auto_scaling",
    "apply_increment",
    "calculate_progress",
    "check_reset",
    "clamp_target",
    "is_goal_achieved",
    "is_period_due",
    "period_end",
    "scale_period",
    "should_scale_period",
    "sub_period_elapsed",
]
