# src/goalcore/service.py
"""
GoalService: the operation contracts exposed to an API layer.

The service validates typed input before touching storage, enforces
owner scoping when an owner id is supplied, serializes mutations per goal
id, and applies the lazy period/reset due-check on every read so that
callers never observe a goal whose period elapsed while it was untouched.

Example:
    from goalcore import GoalService, load_config

    service = GoalService.from_config(load_config(config_path="goalcore.toml"))
    await service.initialize()

    goal = await service.create_goal(
        "user-1",
        {"name": "Push-ups", "unit": "reps", "target": 50, "timeframe": "weekly"},
    )
    goal = await service.log_progress(goal.id, increment=20)
    tree = await service.find_goal_tree("user-1")
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .config import GoalCoreConfig, GoalDefaultsConfig
from .engine.hierarchy import HierarchyManager
from .engine.progress import ProgressEngine, parse_scale_direction
from .exceptions import (
    ConcurrentUpdateError,
    GoalNotFoundError,
    GoalValidationError,
    OwnershipError,
    ParentNotFoundError,
    ParentOwnershipError,
)
from .logging_config import configure_logging
from .models import (
    Goal,
    GoalCreate,
    GoalDirection,
    GoalTreeNode,
    GoalUpdate,
    ScaleDirection,
    Timeframe,
    utc_now,
)
from .storage.base import BaseGoalStorage
from .storage.manager import StorageManager

logger = logging.getLogger(__name__)

InputT = TypeVar("InputT", bound=BaseModel)


def _parse(model: Type[InputT], data: Union[InputT, Mapping[str, Any]]) -> InputT:
    """Validate loosely-typed input into ``model``, raising GoalValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise GoalValidationError(f"Invalid {model.__name__}: {e}", errors=e.errors(include_context=False))


def _build_goal(fields: Dict[str, Any]) -> Goal:
    try:
        return Goal.model_validate(fields)
    except ValidationError as e:
        raise GoalValidationError(f"Invalid goal: {e}", errors=e.errors(include_context=False))


class GoalService:
    """
    Goal operations for an already-authenticated caller.

    Args:
        storage: Goal storage backend.
        defaults: Default scaling parameters for new goals.
        clock: Source of "now"; injectable for deterministic tests.
    """

    def __init__(
        self,
        storage: BaseGoalStorage,
        defaults: Optional[GoalDefaultsConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.storage = storage
        self.defaults = defaults or GoalDefaultsConfig()
        self.engine = ProgressEngine(storage)
        self.hierarchy = HierarchyManager(storage)
        self._clock = clock or utc_now
        # goal id -> (lock, number of holders and waiters)
        self._locks: Dict[str, List[Any]] = {}

    # ----- factory / lifecycle ------------------------------------------------

    @classmethod
    def from_config(cls, config: Optional[GoalCoreConfig] = None) -> GoalService:
        """
        Build a service whose storage backend and defaults come from ``config``.

        A non-empty ``logging`` section also configures unified logging.
        """
        config = config or GoalCoreConfig()
        if config.logging:
            configure_logging(app_name="goalcore", config=config.logging)
        storage = StorageManager(config.storage).create_storage()
        return cls(storage, defaults=config.defaults)

    async def initialize(self) -> None:
        """Initialize the storage backend. Call before any other operation."""
        await self.storage.initialize()

    async def close(self) -> None:
        await self.storage.close()

    # ----- internals ----------------------------------------------------------

    @asynccontextmanager
    async def _goal_lock(self, goal_id: str) -> AsyncIterator[None]:
        """Serialize work on one goal id; the lock is dropped once nobody holds or awaits it."""
        entry = self._locks.setdefault(goal_id, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0 and self._locks.get(goal_id) is entry:
                del self._locks[goal_id]

    async def _load(self, goal_id: str, owner_id: Optional[str] = None) -> Goal:
        goal = await self.storage.get_by_id(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        if owner_id is not None and goal.user_id != owner_id:
            raise OwnershipError(goal_id, owner_id)
        return goal

    async def _check_parent(self, owner_id: str, parent_id: str) -> Goal:
        parent = await self.storage.get_by_id(parent_id)
        if parent is None:
            raise ParentNotFoundError(parent_id)
        if parent.user_id != owner_id:
            raise ParentOwnershipError(parent_id, owner_id)
        return parent

    async def _refreshed(self, goal: Goal) -> Optional[Goal]:
        """Apply due transitions to ``goal``; None if it vanished meanwhile."""
        async with self._goal_lock(goal.id):
            try:
                try:
                    return await self.engine.refresh(goal, self._clock())
                except ConcurrentUpdateError:
                    fresh = await self.storage.get_by_id(goal.id)
                    if fresh is None:
                        return None
                    return await self.engine.refresh(fresh, self._clock())
            except GoalNotFoundError:
                logger.debug("Goal %s deleted during read; omitted", goal.id)
                return None

    async def _refresh_all(self, goals: List[Goal]) -> List[Goal]:
        refreshed = [await self._refreshed(g) for g in goals]
        return [g for g in refreshed if g is not None]

    # ----- create / update ----------------------------------------------------

    async def create_goal(self, owner_id: str, data: Union[GoalCreate, Mapping[str, Any]]) -> Goal:
        """
        Create a goal owned by ``owner_id``.

        Raises:
            GoalValidationError: Bad enum, range or length.
            ParentNotFoundError: ``parent_id`` does not exist.
            ParentOwnershipError: The parent belongs to another user.
        """
        if not owner_id:
            raise GoalValidationError("An owner id is required to create a goal.")
        payload = _parse(GoalCreate, data)
        if payload.parent_id is not None:
            await self._check_parent(owner_id, payload.parent_id)

        fields = payload.model_dump()
        for key, value in self.defaults.model_dump().items():
            if fields.get(key) is None:
                fields[key] = value

        now = self._clock()
        goal = _build_goal({
            **fields,
            "user_id": owner_id,
            "current_period_start": now,
            "last_reset": now,
            "created": now,
            "updated": now,
        })
        created = await self.storage.create(goal)
        logger.info("Goal created: %s (id=%s, owner=%s)", created.name, created.id, owner_id)
        return created

    async def update_goal(
        self,
        goal_id: str,
        data: Union[GoalUpdate, Mapping[str, Any]],
        owner_id: Optional[str] = None,
    ) -> Goal:
        """
        Apply a partial update. The owner can never change.

        Changing ``reset_frequency`` starts a fresh sub-period with zeroed
        reset counters. Re-parenting is checked for existence, ownership
        and cycles.

        Raises:
            GoalNotFoundError, OwnershipError, GoalValidationError,
            ParentNotFoundError, ParentOwnershipError.
        """
        changes = _parse(GoalUpdate, data).changes()

        async with self._goal_lock(goal_id):
            goal = await self._load(goal_id, owner_id)
            now = self._clock()

            new_parent = changes.get("parent_id", goal.parent_id)
            if new_parent is not None and new_parent != goal.parent_id:
                await self._check_parent(goal.user_id, new_parent)
                if await self.hierarchy.is_in_subtree(goal.id, new_parent):
                    raise GoalValidationError(
                        f"Goal '{goal.id}' cannot be moved under itself or one of its subgoals.",
                        errors=[{"loc": ("parent_id",), "msg": "would create a cycle"}],
                    )

            merged = goal.model_dump()
            merged.update(changes)
            if "reset_frequency" in changes and changes["reset_frequency"] != goal.reset_frequency:
                merged.update(
                    progress=0,
                    current_reset_progress=0,
                    resets_completed=0,
                    reset_logs=[],
                    last_reset=now,
                )
            merged["updated"] = now

            updated = await self.storage.update(_build_goal(merged), expected_version=goal.version)
            logger.info("Goal %s updated: %s", goal_id, sorted(changes))
            return updated

    # ----- progress actions ---------------------------------------------------

    async def log_progress(self, goal_id: str, increment: float = 1, owner_id: Optional[str] = None) -> Goal:
        """
        Log progress on a goal, closing any elapsed sub-period and period first.

        Raises:
            GoalNotFoundError, OwnershipError, GoalValidationError (non-numeric increment).
        """
        async with self._goal_lock(goal_id):
            goal = await self._load(goal_id, owner_id)
            return await self.engine.log_progress(goal, increment, self._clock())

    async def manual_scale(
        self,
        goal_id: str,
        direction: Union[str, ScaleDirection],
        owner_id: Optional[str] = None,
    ) -> Goal:
        """
        Close the current period now, scaling ``up`` (as achieved) or ``down`` (as missed).

        Raises:
            GoalValidationError: ``direction`` is not ``up`` or ``down``.
            GoalNotFoundError, OwnershipError.
        """
        scale_direction = parse_scale_direction(direction)
        async with self._goal_lock(goal_id):
            goal = await self._load(goal_id, owner_id)
            return await self.engine.manual_scale(goal, scale_direction, self._clock())

    async def toggle_archive(self, goal_id: str, owner_id: Optional[str] = None) -> Goal:
        """Flip ``is_archived``. Descendants keep their own flags."""
        async with self._goal_lock(goal_id):
            goal = await self._load(goal_id, owner_id)
            toggled = goal.model_copy(update={"is_archived": not goal.is_archived, "updated": self._clock()})
            updated = await self.storage.update(toggled, expected_version=goal.version)
            logger.info("Goal %s %s", goal_id, "archived" if updated.is_archived else "unarchived")
            return updated

    # ----- delete -------------------------------------------------------------

    async def delete_goal_and_subgoals(self, goal_id: str, owner_id: Optional[str] = None) -> int:
        """
        Delete a goal and every transitive descendant.

        Returns:
            Number of goals deleted.

        Raises:
            GoalNotFoundError, OwnershipError, HierarchyIntegrityError.
        """
        async with self._goal_lock(goal_id):
            if owner_id is not None:
                await self._load(goal_id, owner_id)
            return await self.hierarchy.delete_goal_and_subgoals(goal_id)

    # ----- reads --------------------------------------------------------------

    async def get_goal(self, goal_id: str, owner_id: Optional[str] = None) -> Goal:
        """Return a goal with any due transitions applied."""
        async with self._goal_lock(goal_id):
            goal = await self._load(goal_id, owner_id)
            return await self.engine.refresh(goal, self._clock())

    async def get_user_goals(
        self,
        owner_id: str,
        include_archived: bool = False,
        timeframe: Optional[Union[str, Timeframe]] = None,
        goal_direction: Optional[Union[str, GoalDirection]] = None,
    ) -> List[Goal]:
        """
        All of an owner's goals, newest first, with due transitions applied.

        Archived goals are excluded unless ``include_archived`` is set.
        """
        filters: Dict[str, Any] = {"user_id": owner_id}
        if not include_archived:
            filters["is_archived"] = False
        try:
            if timeframe is not None:
                filters["timeframe"] = Timeframe(timeframe)
            if goal_direction is not None:
                filters["goal_direction"] = GoalDirection(goal_direction)
        except ValueError as e:
            raise GoalValidationError(str(e))

        goals = await self.storage.find(filters, sort=[("created", -1)])
        return await self._refresh_all(goals)

    async def find_root_goals(self, owner_id: str) -> List[Goal]:
        """Visible root goals of ``owner_id``, newest first."""
        return await self._refresh_all(await self.hierarchy.find_root_goals(owner_id))

    async def find_subgoals(self, parent_id: str) -> List[Goal]:
        """Visible direct children of ``parent_id``, oldest first."""
        return await self._refresh_all(await self.hierarchy.find_subgoals(parent_id))

    async def find_goal_tree(self, owner_id: str) -> List[GoalTreeNode]:
        """Visible root goals with every visible descendant attached."""
        tree = await self.hierarchy.find_goal_tree(owner_id)
        pending = list(tree)
        while pending:
            node = pending.pop()
            node.goal = await self._refreshed(node.goal) or node.goal
            pending.extend(node.subgoals)
        return tree
