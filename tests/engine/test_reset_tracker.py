# tests/engine/test_reset_tracker.py
"""
Tests for the Reset Tracker.
"""

from datetime import datetime, timedelta, timezone

from goalcore.engine.reset_tracker import DEFAULT_RESET_THRESHOLD, check_reset, effective_reset_target
from goalcore.models import ResetLog

YESTERDAY = datetime(2024, 3, 14, 22, 0, tzinfo=timezone.utc)
TODAY = datetime(2024, 3, 15, 1, 0, tzinfo=timezone.utc)


class TestCheckReset:
    """Tests for check_reset()."""

    def test_never_goals_untouched(self, make_goal):
        goal = make_goal(last_reset=YESTERDAY)
        assert check_reset(goal, TODAY) is False
        assert goal.last_reset == YESTERDAY
        assert goal.reset_logs == []

    def test_not_elapsed(self, make_goal):
        goal = make_goal(reset_frequency="daily", last_reset=TODAY, current_reset_progress=3)
        assert check_reset(goal, TODAY + timedelta(hours=5)) is False
        assert goal.current_reset_progress == 3

    def test_met_sub_period_logged_and_counted(self, make_goal):
        goal = make_goal(reset_frequency="daily", reset_target=2, last_reset=YESTERDAY, current_reset_progress=3)
        assert check_reset(goal, TODAY) is True
        assert goal.reset_logs == [ResetLog(date=YESTERDAY, progress=3, target_met=True)]
        assert goal.resets_completed == 1
        assert goal.current_reset_progress == 0
        assert goal.last_reset == TODAY

    def test_missed_sub_period_logged_not_counted(self, make_goal):
        goal = make_goal(reset_frequency="daily", reset_target=2, last_reset=YESTERDAY, current_reset_progress=1)
        assert check_reset(goal, TODAY) is True
        assert goal.reset_logs[-1].target_met is False
        assert goal.resets_completed == 0

    def test_no_activity_not_logged(self, make_goal):
        goal = make_goal(reset_frequency="daily", last_reset=YESTERDAY)
        assert check_reset(goal, TODAY) is True
        assert goal.reset_logs == []
        assert goal.last_reset == TODAY

    def test_idle_sub_period_logged_once_history_exists(self, make_goal):
        earlier = ResetLog(date=YESTERDAY - timedelta(days=1), progress=2, target_met=True)
        goal = make_goal(
            reset_frequency="daily", last_reset=YESTERDAY, reset_logs=[earlier], resets_completed=1
        )
        assert check_reset(goal, TODAY) is True
        assert goal.reset_logs == [earlier, ResetLog(date=YESTERDAY, progress=0, target_met=False)]
        assert goal.resets_completed == 1

    def test_missing_reset_target_defaults_to_one(self, make_goal):
        goal = make_goal(reset_frequency="daily", last_reset=YESTERDAY, current_reset_progress=1)
        assert effective_reset_target(goal) == DEFAULT_RESET_THRESHOLD
        check_reset(goal, TODAY)
        assert goal.resets_completed == 1

    def test_resets_completed_never_decrements(self, make_goal):
        goal = make_goal(reset_frequency="daily", reset_target=5, last_reset=YESTERDAY, resets_completed=4)
        for day in range(3):
            check_reset(goal, TODAY + timedelta(days=day))
            assert goal.resets_completed == 4

    def test_weekly_requires_seven_days(self, make_goal):
        goal = make_goal(reset_frequency="weekly", last_reset=TODAY, current_reset_progress=2)
        assert check_reset(goal, TODAY + timedelta(days=6, hours=23)) is False
        assert check_reset(goal, TODAY + timedelta(days=7)) is True
        assert goal.resets_completed == 1

    def test_naive_now_treated_as_utc(self, make_goal):
        goal = make_goal(reset_frequency="daily", last_reset=YESTERDAY, current_reset_progress=1)
        assert check_reset(goal, TODAY.replace(tzinfo=None)) is True
        assert goal.last_reset == TODAY
