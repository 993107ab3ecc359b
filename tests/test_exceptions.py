# tests/test_exceptions.py
"""
Tests for the goalcore.exceptions module.

Covers inheritance (so callers can catch by category), attributes and
message formatting.
"""

import pytest

from goalcore.exceptions import (
    ConcurrentUpdateError,
    ConfigError,
    GoalCoreError,
    GoalNotFoundError,
    GoalValidationError,
    HierarchyIntegrityError,
    OwnershipError,
    ParentNotFoundError,
    ParentOwnershipError,
    StorageError,
)


class TestGoalCoreError:
    """Tests for the base GoalCoreError exception."""

    def test_default_message(self):
        assert "unspecified error" in str(GoalCoreError()).lower()

    def test_custom_message(self):
        assert str(GoalCoreError("Boom")) == "Boom"

    @pytest.mark.parametrize(
        "error",
        [
            ConfigError(),
            GoalValidationError(),
            GoalNotFoundError("g1"),
            OwnershipError("g1", "u1"),
            StorageError(),
            HierarchyIntegrityError("g1"),
        ],
    )
    def test_all_errors_share_base(self, error):
        assert isinstance(error, GoalCoreError)


class TestGoalValidationError:
    """Tests for GoalValidationError."""

    def test_errors_default_to_empty_list(self):
        assert GoalValidationError("bad").errors == []

    def test_errors_are_kept(self):
        details = [{"loc": ("target",), "msg": "must be >= 0"}]
        error = GoalValidationError("bad", errors=details)
        assert error.errors == details
        assert str(error) == "bad"


class TestNotFoundErrors:
    """Tests for GoalNotFoundError and ParentNotFoundError."""

    def test_goal_id_in_message(self):
        error = GoalNotFoundError("goal_abc")
        assert error.goal_id == "goal_abc"
        assert "goal_abc" in str(error)

    def test_parent_not_found_is_not_found(self):
        error = ParentNotFoundError("goal_parent")
        assert isinstance(error, GoalNotFoundError)
        assert error.goal_id == "goal_parent"
        assert "parent" in str(error).lower()


class TestOwnershipErrors:
    """Tests for OwnershipError and ParentOwnershipError."""

    def test_attributes(self):
        error = OwnershipError("goal_1", "user-2")
        assert error.goal_id == "goal_1"
        assert error.owner_id == "user-2"
        assert "user-2" in str(error)

    def test_parent_ownership_is_ownership(self):
        error = ParentOwnershipError("goal_parent", "user-2")
        assert isinstance(error, OwnershipError)
        assert "parent" in str(error).lower()


class TestStorageErrors:
    """Tests for StorageError and ConcurrentUpdateError."""

    def test_concurrent_update_is_storage_error(self):
        error = ConcurrentUpdateError("goal_1", expected_version=2, actual_version=3)
        assert isinstance(error, StorageError)
        assert error.expected_version == 2
        assert error.actual_version == 3
        assert "expected version 2" in str(error)

    def test_hierarchy_integrity_names_goal(self):
        error = HierarchyIntegrityError("goal_loop")
        assert error.goal_id == "goal_loop"
        assert "goal_loop" in str(error)
