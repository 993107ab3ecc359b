# src/goalcore/engine/hierarchy.py
"""
Hierarchy Manager: reads and destroys goal trees.

Goals reference their parent by id only; children are found with an
adjacency query on ``parent_id``. Traversals are breadth-first, issue one
storage read per tree level, and track visited ids so that malformed
data can never make them loop.

Visibility filtering applies to each goal's own flags only: archiving a
parent does not hide its children from ``find_subgoals``, although a tree
read cannot reach a child whose ancestor is hidden.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Optional, Set

from ..exceptions import GoalNotFoundError, HierarchyIntegrityError
from ..models import Goal, GoalTreeNode

if TYPE_CHECKING:
    from ..storage.base import BaseGoalStorage

logger = logging.getLogger(__name__)

VISIBLE = {"is_active": True, "is_archived": False}
NEWEST_FIRST = [("created", -1)]
OLDEST_FIRST = [("created", 1)]


class HierarchyManager:
    """
    Builds goal trees and performs cascading deletes.

    Args:
        storage: Goal storage backend.
    """

    def __init__(self, storage: BaseGoalStorage) -> None:
        self.storage = storage

    async def find_root_goals(self, owner_id: str) -> List[Goal]:
        """Visible goals without a parent for ``owner_id``, newest first."""
        return await self.storage.find(
            {"user_id": owner_id, "parent_id": None, **VISIBLE},
            sort=NEWEST_FIRST,
        )

    async def find_subgoals(self, parent_id: str) -> List[Goal]:
        """Visible direct children of ``parent_id``, oldest first."""
        return await self.storage.find({"parent_id": parent_id, **VISIBLE}, sort=OLDEST_FIRST)

    async def find_goal_tree(self, owner_id: str) -> List[GoalTreeNode]:
        """
        Return the owner's visible root goals with every visible descendant attached.

        Depth is unbounded. Children of each node are ordered oldest first.
        """
        roots = await self.find_root_goals(owner_id)
        tree = [GoalTreeNode(goal=g) for g in roots]
        nodes: Dict[str, GoalTreeNode] = {n.goal.id: n for n in tree}
        level = list(nodes)
        depth = 0

        while level:
            children = await self.storage.find({"parent_id": level, **VISIBLE}, sort=OLDEST_FIRST)
            next_level: List[str] = []
            for child in children:
                if child.id in nodes:
                    logger.warning("Goal %s reached twice while building tree; skipped", child.id)
                    continue
                node = GoalTreeNode(goal=child)
                nodes[child.id] = node
                nodes[child.parent_id].subgoals.append(node)  # type: ignore[index]
                next_level.append(child.id)
            level = next_level
            depth += 1

        logger.debug("Built goal tree for %s: %d goals, %d levels", owner_id, len(nodes), depth)
        return tree

    async def collect_descendant_ids(self, goal_id: str) -> List[str]:
        """
        Every transitive descendant of ``goal_id``, regardless of flags.

        Raises:
            HierarchyIntegrityError: If the traversal reaches a goal twice.
        """
        visited: Set[str] = {goal_id}
        descendants: List[str] = []
        frontier = [goal_id]

        while frontier:
            children = await self.storage.find({"parent_id": frontier})
            frontier = []
            for child in children:
                if child.id in visited:
                    raise HierarchyIntegrityError(child.id)
                visited.add(child.id)
                descendants.append(child.id)
                frontier.append(child.id)

        return descendants

    async def delete_goal_and_subgoals(self, goal_id: str) -> int:
        """
        Delete a goal and all of its transitive descendants in one batch.

        Returns:
            Number of goals deleted.

        Raises:
            GoalNotFoundError: If ``goal_id`` does not exist.
            HierarchyIntegrityError: If the subtree is cyclic; nothing is deleted.
        """
        goal = await self.storage.get_by_id(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)

        ids = [goal_id, *await self.collect_descendant_ids(goal_id)]
        deleted = await self.storage.delete_many(ids)
        logger.info("Deleted goal %s and %d subgoals", goal_id, len(ids) - 1)
        return deleted

    async def is_in_subtree(self, root_id: str, candidate_id: Optional[str]) -> bool:
        """
        True if ``candidate_id`` is ``root_id`` or one of its descendants.

        Walks up the parent chain from the candidate.
        """
        seen: Set[str] = set()
        current = candidate_id
        while current is not None:
            if current == root_id:
                return True
            if current in seen:
                raise HierarchyIntegrityError(current)
            seen.add(current)
            parent = await self.storage.get_by_id(current)
            current = parent.parent_id if parent else None
        return False
