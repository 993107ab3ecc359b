# tests/engine/test_scaler.py
"""
Tests for the Period Scaler.

Covers the direction-dependent grow/shrink mapping, rounding, the
enable flags, clamping to the target bounds and purity.
"""

import pytest

from goalcore.engine.scaler import apply_auto_scaling, clamp_target


class TestIncreaseDirection:
    """Goals where success means reaching or exceeding the target."""

    def test_achieved_grows(self, make_goal):
        goal = make_goal(target=10, scale_percent=10)
        assert apply_auto_scaling(goal, achieved=True) == 11

    def test_missed_shrinks(self, make_goal):
        goal = make_goal(target=10, scale_percent=10)
        assert apply_auto_scaling(goal, achieved=False) == 9

    def test_round_up_uses_ceil(self, make_goal):
        goal = make_goal(target=10, scale_percent=5, round_up=True)
        assert apply_auto_scaling(goal, achieved=True) == 11
        assert apply_auto_scaling(goal, achieved=False) == 10

    def test_round_down_uses_floor(self, make_goal):
        goal = make_goal(target=10, scale_percent=5, round_up=False)
        assert apply_auto_scaling(goal, achieved=True) == 10
        assert apply_auto_scaling(goal, achieved=False) == 9

    def test_scale_up_disabled(self, make_goal):
        goal = make_goal(target=10, scale_percent=10, scale_up_enabled=False)
        assert apply_auto_scaling(goal, achieved=True) == 10
        assert apply_auto_scaling(goal, achieved=False) == 9

    def test_scale_down_disabled(self, make_goal):
        goal = make_goal(target=10, scale_percent=10, scale_down_enabled=False)
        assert apply_auto_scaling(goal, achieved=False) == 10


class TestDecreaseDirection:
    """Goals where success means staying at or under the target."""

    def test_achieved_shrinks(self, make_goal):
        goal = make_goal(target=50, scale_percent=5, goal_direction="decrease")
        assert apply_auto_scaling(goal, achieved=True) == 48

    def test_missed_grows(self, make_goal):
        goal = make_goal(target=50, scale_percent=5, goal_direction="decrease")
        assert apply_auto_scaling(goal, achieved=False) == 53

    def test_flags_follow_outcome_not_movement(self, make_goal):
        goal = make_goal(target=50, scale_percent=5, goal_direction="decrease", scale_up_enabled=False)
        assert apply_auto_scaling(goal, achieved=True) == 50
        assert apply_auto_scaling(goal, achieved=False) == 53


class TestClamping:
    """The result always lies within [min_target, max_target]."""

    def test_clamped_to_max(self, make_goal):
        goal = make_goal(target=99, scale_percent=10, max_target=100)
        assert apply_auto_scaling(goal, achieved=True) == 100

    def test_clamped_to_min(self, make_goal):
        goal = make_goal(target=1, scale_percent=10, round_up=False, min_target=1)
        assert apply_auto_scaling(goal, achieved=False) == 1

    def test_unchanged_target_is_still_clamped(self, make_goal):
        goal = make_goal(target=150, max_target=100, scale_up_enabled=False)
        assert apply_auto_scaling(goal, achieved=True) == 100

    @pytest.mark.parametrize("target", [0, 1, 7, 33, 99, 100, 250])
    @pytest.mark.parametrize("achieved", [True, False])
    @pytest.mark.parametrize("direction", ["increase", "decrease"])
    def test_bounds_hold(self, make_goal, target, achieved, direction):
        goal = make_goal(target=target, scale_percent=37, min_target=5, max_target=120, goal_direction=direction)
        assert 5 <= apply_auto_scaling(goal, achieved) <= 120

    def test_clamp_target(self):
        assert clamp_target(0, 1, 10) == 1
        assert clamp_target(5, 1, 10) == 5
        assert clamp_target(11, 1, 10) == 10


class TestPurity:
    """apply_auto_scaling has no side effects and is deterministic."""

    def test_goal_not_mutated(self, make_goal):
        goal = make_goal(target=10, scale_percent=10)
        before = goal.model_dump()
        apply_auto_scaling(goal, achieved=True)
        assert goal.model_dump() == before

    def test_repeated_calls_agree(self, make_goal):
        goal = make_goal(target=23, scale_percent=13)
        results = {apply_auto_scaling(goal, achieved=True) for _ in range(5)}
        assert len(results) == 1
