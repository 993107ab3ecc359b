# src/goalcore/storage/memory.py
"""
In-process goal storage.

Keeps goals in a dictionary for the lifetime of the process. Goals are
copied on the way in and out, so callers never share mutable state with
the store. Useful for tests and single-process embedding.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import ConcurrentUpdateError, GoalNotFoundError, StorageError
from ..models import Goal
from .base import BaseGoalStorage, Filters, Sort, matches, select, validate_fields

logger = logging.getLogger(__name__)


class InMemoryGoalStorage(BaseGoalStorage):
    """Dictionary-backed implementation of :class:`BaseGoalStorage`."""

    def __init__(self) -> None:
        self._goals: Dict[str, Goal] = {}
        self._lock = asyncio.Lock()

    async def initialize(self) -> None:
        logger.debug("In-memory goal storage ready")

    async def find(self, filters: Optional[Filters] = None, sort: Optional[Sort] = None) -> List[Goal]:
        async with self._lock:
            return select(self._goals.values(), filters, sort)

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        async with self._lock:
            goal = self._goals.get(goal_id)
            return goal.model_copy(deep=True) if goal else None

    async def create(self, goal: Goal) -> Goal:
        async with self._lock:
            if goal.id in self._goals:
                raise StorageError(f"Goal '{goal.id}' already exists.")
            self._goals[goal.id] = goal.model_copy(deep=True)
            return goal.model_copy(deep=True)

    async def update(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        async with self._lock:
            stored = self._goals.get(goal.id)
            if stored is None:
                raise GoalNotFoundError(goal.id)
            if expected_version is not None and stored.version != expected_version:
                raise ConcurrentUpdateError(goal.id, expected_version, stored.version)
            new = goal.model_copy(deep=True, update={"version": stored.version + 1})
            self._goals[goal.id] = new
            return new.model_copy(deep=True)

    async def delete_many(self, goal_ids: Iterable[str]) -> int:
        async with self._lock:
            deleted = 0
            for goal_id in set(goal_ids):
                if self._goals.pop(goal_id, None) is not None:
                    deleted += 1
            return deleted

    async def count(self, filters: Optional[Filters] = None) -> int:
        validate_fields(filters, None)
        async with self._lock:
            return sum(1 for g in self._goals.values() if matches(g, filters))

    async def close(self) -> None:
        pass
