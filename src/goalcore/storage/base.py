# src/goalcore/storage/base.py
"""
Abstract Base Class for goal storage backends.

This module defines the persistence interface the lifecycle engine
consumes: find-by-filter-with-sort, find-by-id, create, update-by-id,
delete-many-by-id-set and count. It also provides the in-process filter
and sort helpers shared by backends that keep goals as Python objects.
"""

import abc
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import Goal

# Fields that may appear in a filter or sort specification.
FILTERABLE_FIELDS = frozenset({
    "id",
    "user_id",
    "parent_id",
    "is_active",
    "is_archived",
    "timeframe",
    "goal_direction",
    "reset_frequency",
    "created",
    "updated",
})

Filters = Mapping[str, Any]
Sort = Sequence[Tuple[str, int]]


class BaseGoalStorage(abc.ABC):
    """
    Abstract Base Class for goal persistence.

    Filters map a field name to a value. A list, tuple or set value means
    membership; ``None`` matches a null field. Sort specifications are a
    sequence of ``(field, 1 | -1)`` pairs; ties keep insertion order.

    Every method is a single unit of suspension with no partial effect
    visible before it completes. Driver failures are raised as
    :class:`~goalcore.exceptions.StorageError`.
    """

    @abc.abstractmethod
    async def initialize(self) -> None:
        """
        Prepare the backend (open connections, create tables or directories).

        Safe to call more than once.
        """
        pass

    @abc.abstractmethod
    async def find(self, filters: Optional[Filters] = None, sort: Optional[Sort] = None) -> List[Goal]:
        """
        Return every goal matching ``filters``, ordered by ``sort``.

        Args:
            filters: Field/value constraints, all of which must hold.
            sort: Ordering specification.

        Raises:
            ValueError: If a filter or sort names an unsupported field.
        """
        pass

    @abc.abstractmethod
    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        """Return the goal with ``goal_id``, or None if absent."""
        pass

    @abc.abstractmethod
    async def create(self, goal: Goal) -> Goal:
        """
        Insert a new goal and return the stored copy.

        Raises:
            StorageError: If a goal with the same id already exists.
        """
        pass

    @abc.abstractmethod
    async def update(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        """
        Replace the stored goal with the same id and return the stored copy.

        The stored version is incremented on every successful update.

        Args:
            goal: New state of the goal.
            expected_version: If given, the update only applies when the
                stored version still equals it.

        Raises:
            GoalNotFoundError: If the goal does not exist.
            ConcurrentUpdateError: If the stored version differs from
                ``expected_version``.
        """
        pass

    @abc.abstractmethod
    async def delete_many(self, goal_ids: Iterable[str]) -> int:
        """Delete every goal whose id is in ``goal_ids``; return how many were deleted."""
        pass

    @abc.abstractmethod
    async def count(self, filters: Optional[Filters] = None) -> int:
        """Count goals matching ``filters``."""
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Release resources held by the backend."""
        pass


# --- helpers for object-based backends ---


def validate_fields(filters: Optional[Filters], sort: Optional[Sort]) -> None:
    """Reject filter or sort fields the interface does not support."""
    unknown = set(filters or {}) | {field for field, _ in (sort or [])}
    unknown -= FILTERABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported goal query field(s): {sorted(unknown)}")
    for field, direction in sort or []:
        if direction not in (1, -1):
            raise ValueError(f"Sort direction for '{field}' must be 1 or -1, got {direction!r}")


def normalize_value(value: Any) -> Any:
    """Reduce enums and datetimes to comparable primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(timespec="microseconds")
    return value


def matches(goal: Goal, filters: Optional[Filters]) -> bool:
    """True if ``goal`` satisfies every constraint in ``filters``."""
    for field, expected in (filters or {}).items():
        actual = normalize_value(getattr(goal, field))
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {normalize_value(v) for v in expected}:
                return False
        elif actual != normalize_value(expected):
            return False
    return True


def sort_goals(goals: List[Goal], sort: Optional[Sort]) -> List[Goal]:
    """Return ``goals`` ordered by ``sort``; stable, so ties keep input order."""
    ordered = list(goals)
    for field, direction in reversed(list(sort or [])):
        ordered.sort(key=lambda g: normalize_value(getattr(g, field)), reverse=direction == -1)
    return ordered


def select(goals: Iterable[Goal], filters: Optional[Filters], sort: Optional[Sort]) -> List[Goal]:
    """Filter then sort ``goals``, returning deep copies."""
    validate_fields(filters, sort)
    found = [g for g in goals if matches(g, filters)]
    return [g.model_copy(deep=True) for g in sort_goals(found, sort)]


def index_by_id(goals: Iterable[Goal]) -> Dict[str, Goal]:
    return {g.id: g for g in goals}
