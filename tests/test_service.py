# tests/test_service.py
"""
Tests for GoalService, the operation contracts exposed to an API layer.

Covers input validation and defaults, owner scoping, parent checks,
partial updates, progress actions, archive toggling, cascading delete,
lazy due-checks on reads and per-goal serialization of mutations.
"""

import asyncio

import pytest

from goalcore.config import GoalCoreConfig, GoalDefaultsConfig, StorageConfig
from goalcore.exceptions import (
    GoalNotFoundError,
    GoalValidationError,
    OwnershipError,
    ParentNotFoundError,
    ParentOwnershipError,
)
from goalcore.models import GoalCreate, GoalDirection, ResetFrequency
from goalcore.service import GoalService
from goalcore.storage import SqliteGoalStorage


def goal_fields(**overrides):
    fields = {"name": "Push-ups", "unit": "reps", "target": 10, "timeframe": "weekly"}
    fields.update(overrides)
    return fields


@pytest.fixture
def create(service, clock):
    """Create goals one minute apart so creation order is unambiguous."""

    async def _create(owner_id="user-1", **overrides):
        goal = await service.create_goal(owner_id, goal_fields(**overrides))
        clock.advance(minutes=1)
        return goal

    return _create


# =============================================================================
# createGoal
# =============================================================================


class TestCreateGoal:
    """Tests for GoalService.create_goal()."""

    @pytest.mark.asyncio
    async def test_creates_with_defaults(self, service, clock, memory_storage):
        goal = await service.create_goal("user-1", goal_fields())
        assert goal.user_id == "user-1"
        assert goal.scale_percent == 5
        assert goal.goal_direction == GoalDirection.INCREASE
        assert goal.current_period_start == clock.now
        assert goal.last_reset == clock.now
        assert goal.created == clock.now
        assert await memory_storage.get_by_id(goal.id) == goal

    @pytest.mark.asyncio
    async def test_configured_defaults_fill_gaps(self, memory_storage, clock):
        service = GoalService(
            memory_storage,
            defaults=GoalDefaultsConfig(scale_percent=20, round_up=False, max_target=500),
            clock=clock,
        )
        goal = await service.create_goal("user-1", goal_fields(round_up=True))
        assert goal.scale_percent == 20
        assert goal.round_up is True
        assert goal.max_target == 500

    @pytest.mark.asyncio
    async def test_accepts_typed_input(self, service):
        payload = GoalCreate(**goal_fields(reset_frequency="daily", reset_target=3))
        goal = await service.create_goal("user-1", payload)
        assert goal.reset_frequency == ResetFrequency.DAILY
        assert goal.reset_target == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"timeframe": "fortnightly"},
            {"target": -1},
            {"scale_percent": 0},
            {"name": ""},
            {"name": "x" * 201},
            {"user_id": "someone-else"},
            {"min_target": 50, "max_target": 10},
        ],
    )
    async def test_invalid_input(self, service, memory_storage, overrides):
        with pytest.raises(GoalValidationError) as exc_info:
            await service.create_goal("user-1", goal_fields(**overrides))
        assert exc_info.value.errors
        assert await memory_storage.count() == 0

    @pytest.mark.asyncio
    async def test_owner_required(self, service):
        with pytest.raises(GoalValidationError):
            await service.create_goal("", goal_fields())

    @pytest.mark.asyncio
    async def test_parent_must_exist(self, service, memory_storage):
        with pytest.raises(ParentNotFoundError):
            await service.create_goal("user-1", goal_fields(parent_id="goal_missing"))
        assert await memory_storage.count() == 0

    @pytest.mark.asyncio
    async def test_parent_must_share_owner(self, service, create):
        parent = await create(owner_id="user-2")
        with pytest.raises(ParentOwnershipError):
            await service.create_goal("user-1", goal_fields(parent_id=parent.id))

    @pytest.mark.asyncio
    async def test_child_of_own_parent(self, service, create):
        parent = await create()
        child = await service.create_goal("user-1", goal_fields(parent_id=parent.id))
        assert child.parent_id == parent.id


# =============================================================================
# updateGoal
# =============================================================================


class TestUpdateGoal:
    """Tests for GoalService.update_goal()."""

    @pytest.mark.asyncio
    async def test_partial_update(self, service, create, clock):
        goal = await create(description="old")
        updated = await service.update_goal(goal.id, {"name": "Pull-ups", "scale_percent": 15})
        assert updated.name == "Pull-ups"
        assert updated.scale_percent == 15
        assert updated.description == "old"
        assert updated.updated == clock.now
        assert updated.version == goal.version + 1

    @pytest.mark.asyncio
    async def test_clear_description(self, service, create):
        goal = await create(description="old")
        updated = await service.update_goal(goal.id, {"description": None})
        assert updated.description is None

    @pytest.mark.asyncio
    async def test_owner_immutable(self, service, create):
        goal = await create()
        with pytest.raises(GoalValidationError):
            await service.update_goal(goal.id, {"user_id": "user-2"})

    @pytest.mark.asyncio
    async def test_wrong_owner(self, service, create, memory_storage):
        goal = await create()
        with pytest.raises(OwnershipError):
            await service.update_goal(goal.id, {"name": "hijacked"}, owner_id="user-2")
        assert (await memory_storage.get_by_id(goal.id)).name == "Push-ups"

    @pytest.mark.asyncio
    async def test_missing(self, service):
        with pytest.raises(GoalNotFoundError):
            await service.update_goal("goal_missing", {"name": "x"})

    @pytest.mark.asyncio
    async def test_merged_bounds_validated(self, service, create):
        goal = await create()
        with pytest.raises(GoalValidationError):
            await service.update_goal(goal.id, {"min_target": 200})

    @pytest.mark.asyncio
    async def test_reparent(self, service, create):
        a = await create()
        b = await create()
        moved = await service.update_goal(b.id, {"parent_id": a.id})
        assert moved.parent_id == a.id
        root_again = await service.update_goal(b.id, {"parent_id": None})
        assert root_again.parent_id is None

    @pytest.mark.asyncio
    async def test_reparent_under_own_descendant_rejected(self, service, create):
        a = await create()
        b = await service.create_goal("user-1", goal_fields(parent_id=a.id))
        with pytest.raises(GoalValidationError, match="subgoals"):
            await service.update_goal(a.id, {"parent_id": b.id})
        with pytest.raises(GoalValidationError):
            await service.update_goal(a.id, {"parent_id": a.id})

    @pytest.mark.asyncio
    async def test_reparent_checks_parent(self, service, create):
        goal = await create()
        foreign = await create(owner_id="user-2")
        with pytest.raises(ParentNotFoundError):
            await service.update_goal(goal.id, {"parent_id": "goal_missing"})
        with pytest.raises(ParentOwnershipError):
            await service.update_goal(goal.id, {"parent_id": foreign.id})

    @pytest.mark.asyncio
    async def test_changing_reset_frequency_restarts_sub_period(self, service, create, clock):
        goal = await create(reset_frequency="daily")
        goal = await service.log_progress(goal.id, 3)
        clock.advance(hours=2)
        updated = await service.update_goal(goal.id, {"reset_frequency": "weekly"})
        assert updated.reset_frequency == ResetFrequency.WEEKLY
        assert updated.current_reset_progress == 0
        assert updated.reset_logs == []
        assert updated.last_reset == clock.now

    @pytest.mark.asyncio
    async def test_dropping_reset_frequency_zeroes_progress(self, service, create):
        goal = await create(reset_frequency="daily")
        goal = await service.log_progress(goal.id, 4)
        assert goal.progress == 4

        updated = await service.update_goal(goal.id, {"reset_frequency": "never"})
        assert updated.reset_frequency == ResetFrequency.NEVER
        assert updated.progress == 0
        assert updated.current_reset_progress == 0
        assert updated.resets_completed == 0


# =============================================================================
# Progress actions
# =============================================================================


class TestProgressActions:
    """Tests for log_progress() and manual_scale()."""

    @pytest.mark.asyncio
    async def test_log_progress_default_increment(self, service, create):
        goal = await create()
        assert (await service.log_progress(goal.id)).progress == 1
        assert (await service.log_progress(goal.id, 2.5)).progress == 3.5

    @pytest.mark.asyncio
    async def test_log_progress_missing(self, service):
        with pytest.raises(GoalNotFoundError):
            await service.log_progress("goal_missing")

    @pytest.mark.asyncio
    async def test_log_progress_wrong_owner(self, service, create, memory_storage):
        goal = await create()
        with pytest.raises(OwnershipError):
            await service.log_progress(goal.id, owner_id="user-2")
        assert (await memory_storage.get_by_id(goal.id)).progress == 0

    @pytest.mark.asyncio
    async def test_period_rollover(self, service, create, clock):
        goal = await create(target=10, scale_percent=10)
        await service.log_progress(goal.id, 10)
        clock.advance(days=7)
        updated = await service.log_progress(goal.id, 4)
        assert updated.target == 11
        assert updated.progress == 4
        assert updated.history[-1].success is True

    @pytest.mark.asyncio
    async def test_concurrent_logs_not_lost(self, service, create):
        goal = await create()
        await asyncio.gather(*(service.log_progress(goal.id) for _ in range(20)))
        assert (await service.get_goal(goal.id)).progress == 20

    @pytest.mark.asyncio
    async def test_manual_scale(self, service, create):
        goal = await create(target=10, scale_percent=10)
        updated = await service.manual_scale(goal.id, "UP")
        assert updated.target == 11
        assert updated.history[-1].manual is True

    @pytest.mark.asyncio
    async def test_manual_scale_invalid_direction(self, service, create):
        goal = await create()
        with pytest.raises(GoalValidationError):
            await service.manual_scale(goal.id, "left")

    @pytest.mark.asyncio
    async def test_manual_scale_missing(self, service):
        with pytest.raises(GoalNotFoundError):
            await service.manual_scale("goal_missing", "down")


# =============================================================================
# Archive / delete
# =============================================================================


class TestArchiveAndDelete:
    """Tests for toggle_archive() and delete_goal_and_subgoals()."""

    @pytest.mark.asyncio
    async def test_toggle_archive(self, service, create):
        goal = await create()
        assert (await service.toggle_archive(goal.id)).is_archived is True
        assert (await service.toggle_archive(goal.id)).is_archived is False

    @pytest.mark.asyncio
    async def test_archive_does_not_cascade(self, service, create):
        parent = await create()
        child = await service.create_goal("user-1", goal_fields(parent_id=parent.id))
        await service.toggle_archive(parent.id)

        assert (await service.get_goal(child.id)).is_archived is False
        assert [g.id for g in await service.find_subgoals(parent.id)] == [child.id]
        assert await service.find_goal_tree("user-1") == []

    @pytest.mark.asyncio
    async def test_toggle_missing(self, service):
        with pytest.raises(GoalNotFoundError):
            await service.toggle_archive("goal_missing")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, service, create, memory_storage):
        a = await create()
        b = await service.create_goal("user-1", goal_fields(parent_id=a.id))
        await service.create_goal("user-1", goal_fields(parent_id=b.id))
        await create()

        assert await service.delete_goal_and_subgoals(a.id, owner_id="user-1") == 3
        assert await memory_storage.count() == 1

    @pytest.mark.asyncio
    async def test_delete_wrong_owner(self, service, create, memory_storage):
        goal = await create()
        with pytest.raises(OwnershipError):
            await service.delete_goal_and_subgoals(goal.id, owner_id="user-2")
        assert await memory_storage.count() == 1

    @pytest.mark.asyncio
    async def test_delete_missing(self, service):
        with pytest.raises(GoalNotFoundError):
            await service.delete_goal_and_subgoals("goal_missing")

    @pytest.mark.asyncio
    async def test_locks_released_after_missing_reads(self, service):
        for i in range(500):
            with pytest.raises(GoalNotFoundError):
                await service.get_goal(f"goal_missing_{i}")
        assert service._locks == {}

    @pytest.mark.asyncio
    async def test_locks_released_after_cascade_delete(self, service, create):
        parent = await create()
        child = await service.create_goal("user-1", goal_fields(parent_id=parent.id))
        await service.get_goal(child.id)
        await service.log_progress(child.id)

        assert await service.delete_goal_and_subgoals(parent.id) == 2
        assert service._locks == {}

    @pytest.mark.asyncio
    async def test_locks_released_after_concurrent_logs(self, service, create):
        goal = await create()
        await asyncio.gather(*(service.log_progress(goal.id) for _ in range(10)))
        assert service._locks == {}


# =============================================================================
# Reads
# =============================================================================


class TestReads:
    """Tests for get_goal(), get_user_goals() and the hierarchy reads."""

    @pytest.mark.asyncio
    async def test_get_goal_applies_due_period(self, service, create, clock, memory_storage):
        goal = await create(target=10, scale_percent=10)
        await service.log_progress(goal.id, 10)
        clock.advance(days=8)

        fetched = await service.get_goal(goal.id)
        assert fetched.target == 11
        assert fetched.progress == 0
        assert len(fetched.history) == 1
        assert (await memory_storage.get_by_id(goal.id)).history == fetched.history

    @pytest.mark.asyncio
    async def test_get_goal_applies_due_reset(self, service, create, clock):
        goal = await create(reset_frequency="daily", reset_target=2)
        await service.log_progress(goal.id, 2)
        clock.advance(days=1)
        fetched = await service.get_goal(goal.id)
        assert fetched.resets_completed == 1
        assert fetched.current_reset_progress == 0
        assert fetched.reset_logs[-1].target_met is True

    @pytest.mark.asyncio
    async def test_get_goal_wrong_owner(self, service, create):
        goal = await create()
        with pytest.raises(OwnershipError):
            await service.get_goal(goal.id, owner_id="user-2")

    @pytest.mark.asyncio
    async def test_get_user_goals(self, service, create):
        first = await create()
        second = await create(timeframe="daily", goal_direction="decrease")
        archived = await create()
        await service.toggle_archive(archived.id)
        await create(owner_id="user-2")

        assert [g.id for g in await service.get_user_goals("user-1")] == [second.id, first.id]
        assert [g.id for g in await service.get_user_goals("user-1", include_archived=True)] == [
            archived.id,
            second.id,
            first.id,
        ]
        assert [g.id for g in await service.get_user_goals("user-1", timeframe="daily")] == [second.id]
        assert [g.id for g in await service.get_user_goals("user-1", goal_direction="increase")] == [first.id]

    @pytest.mark.asyncio
    async def test_get_user_goals_bad_filter(self, service):
        with pytest.raises(GoalValidationError):
            await service.get_user_goals("user-1", timeframe="hourly")

    @pytest.mark.asyncio
    async def test_tree_reads_are_refreshed(self, service, create, clock):
        root = await create()
        child = await service.create_goal("user-1", goal_fields(parent_id=root.id, target=10, scale_percent=10))
        await service.log_progress(child.id, 10)
        clock.advance(days=7)

        roots = await service.find_root_goals("user-1")
        assert [g.id for g in roots] == [root.id]
        assert len(roots[0].history) == 1

        tree = await service.find_goal_tree("user-1")
        refreshed_child = tree[0].subgoals[0].goal
        assert refreshed_child.id == child.id
        assert refreshed_child.target == 11

    @pytest.mark.asyncio
    async def test_goal_deleted_during_listing_is_omitted(self, service, create, clock, memory_storage, monkeypatch):
        kept = await create(target=10, scale_percent=10)
        gone = await create(target=10, scale_percent=10)
        clock.advance(days=8)

        list_roots = service.hierarchy.find_root_goals

        async def list_then_delete(owner_id):
            goals = await list_roots(owner_id)
            await memory_storage.delete_many([gone.id])
            return goals

        monkeypatch.setattr(service.hierarchy, "find_root_goals", list_then_delete)
        roots = await service.find_root_goals("user-1")
        assert [g.id for g in roots] == [kept.id]
        assert len(roots[0].history) == 1
        assert await memory_storage.get_by_id(gone.id) is None

    @pytest.mark.asyncio
    async def test_stale_listed_goal_refreshes_to_none(self, service, create, clock, memory_storage):
        goal = await create()
        listed = await service.get_user_goals("user-1")
        await memory_storage.delete_many([goal.id])
        clock.advance(days=8)
        assert await service._refreshed(listed[0]) is None
        # direct operations still report the missing goal
        with pytest.raises(GoalNotFoundError):
            await service.get_goal(goal.id)


# =============================================================================
# Configuration
# =============================================================================


class TestFromConfig:
    """Tests for GoalService.from_config()."""

    def test_default_config_uses_memory(self):
        service = GoalService.from_config()
        assert type(service.storage).__name__ == "InMemoryGoalStorage"

    @pytest.mark.asyncio
    async def test_sqlite_round_trip(self, tmp_path):
        config = GoalCoreConfig(
            storage=StorageConfig(type="sqlite", path=str(tmp_path / "goals.db")),
            defaults=GoalDefaultsConfig(scale_percent=25),
        )
        service = GoalService.from_config(config)
        assert isinstance(service.storage, SqliteGoalStorage)
        await service.initialize()
        goal = await service.create_goal("user-1", goal_fields())
        await service.close()

        reopened = GoalService.from_config(config)
        await reopened.initialize()
        try:
            fetched = await reopened.get_goal(goal.id)
            assert fetched.scale_percent == 25
        finally:
            await reopened.close()
