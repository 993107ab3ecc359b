# src/goalcore/storage/json_storage.py
"""
JSON file-based goal persistence.

Stores all goals in a single JSON document of the form
``{"goals": [...]}``. Atomic writes via write-to-temp-then-rename
protect against corruption; an asyncio lock serializes access within
the process.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError

from ..exceptions import ConcurrentUpdateError, GoalNotFoundError, StorageError
from ..models import Goal
from .base import BaseGoalStorage, Filters, Sort, index_by_id, matches, select, validate_fields

logger = logging.getLogger(__name__)


class JsonGoalStorage(BaseGoalStorage):
    """
    Goal storage in a single JSON file.

    Args:
        path: Path to the goals JSON file.

    Example:
        >>> store = JsonGoalStorage("~/.local/share/goalcore/goals.json")
        >>> await store.initialize()
        >>> goals = await store.find({"user_id": "u1"})
    """

    def __init__(self, path: str = "~/.local/share/goalcore/goals.json") -> None:
        self._path = Path(os.path.expanduser(path))
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create goal storage directory {self._path.parent}: {e}")
        logger.info("JSON goal storage initialized at: %s", self._path)

    async def find(self, filters: Optional[Filters] = None, sort: Optional[Sort] = None) -> List[Goal]:
        async with self._lock:
            goals = self._read_all()
        return select(goals.values(), filters, sort)

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        async with self._lock:
            return self._read_all().get(goal_id)

    async def create(self, goal: Goal) -> Goal:
        async with self._lock:
            goals = self._read_all()
            if goal.id in goals:
                raise StorageError(f"Goal '{goal.id}' already exists.")
            goals[goal.id] = goal
            self._write_all(goals)
        logger.debug("Goal '%s' created in %s", goal.id, self._path)
        return goal.model_copy(deep=True)

    async def update(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        async with self._lock:
            goals = self._read_all()
            stored = goals.get(goal.id)
            if stored is None:
                raise GoalNotFoundError(goal.id)
            if expected_version is not None and stored.version != expected_version:
                raise ConcurrentUpdateError(goal.id, expected_version, stored.version)
            new = goal.model_copy(deep=True, update={"version": stored.version + 1})
            goals[goal.id] = new
            self._write_all(goals)
        return new.model_copy(deep=True)

    async def delete_many(self, goal_ids: Iterable[str]) -> int:
        ids = set(goal_ids)
        async with self._lock:
            goals = self._read_all()
            remaining = {k: v for k, v in goals.items() if k not in ids}
            deleted = len(goals) - len(remaining)
            if deleted:
                self._write_all(remaining)
        logger.debug("Deleted %d goals from %s", deleted, self._path)
        return deleted

    async def count(self, filters: Optional[Filters] = None) -> int:
        validate_fields(filters, None)
        async with self._lock:
            goals = self._read_all()
        return sum(1 for g in goals.values() if matches(g, filters))

    async def close(self) -> None:
        pass

    def _read_all(self) -> Dict[str, Goal]:
        """Load every goal from disk, keyed by id, in file order."""
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return index_by_id(Goal.model_validate(g) for g in data.get("goals", []))
        except (OSError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.error("Failed to load goals from %s: %s", self._path, e)
            raise StorageError(f"Could not read goal storage file {self._path}: {e}")

    def _write_all(self, goals: Dict[str, Goal]) -> None:
        """Atomically write all goals to disk."""
        tmp_path = self._path.with_suffix(".tmp")
        data = {"goals": [g.model_dump(mode="json") for g in goals.values()]}
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as e:
            logger.error("Failed to write goals to %s: %s", self._path, e)
            raise StorageError(f"Could not write goal storage file {self._path}: {e}")
