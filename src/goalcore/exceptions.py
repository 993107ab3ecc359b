# src/goalcore/exceptions.py
"""
Custom exceptions for the GoalCore library.

This module defines a hierarchy of custom exception classes so that
callers (typically an API layer) can map validation problems, missing
records, ownership violations and infrastructure faults onto distinct
responses.
"""

from typing import Any, Dict, List, Optional


class GoalCoreError(Exception):
    """Base class for all GoalCore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in GoalCore."):
        super().__init__(message)

class ConfigError(GoalCoreError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class GoalValidationError(GoalCoreError):
    """
    Raised when goal input violates a schema, range or enum constraint.

    Always raised before any mutation is attempted.
    """
    def __init__(self, message: str = "Invalid goal input.", errors: Optional[List[Dict[str, Any]]] = None):
        self.errors = errors or []
        super().__init__(message)

class GoalNotFoundError(GoalCoreError):
    """Raised when a goal ID does not exist in storage."""
    def __init__(self, goal_id: str, message: str = "Goal not found."):
        self.goal_id = goal_id
        super().__init__(f"{message} Goal ID: '{goal_id}'")

class ParentNotFoundError(GoalNotFoundError):
    """Raised when a goal references a parent goal that does not exist."""
    def __init__(self, parent_id: str):
        super().__init__(parent_id, message="Parent goal not found.")

class OwnershipError(GoalCoreError):
    """Raised when a goal is accessed on behalf of a user who does not own it."""
    def __init__(self, goal_id: str, owner_id: str, message: str = "Goal is owned by another user."):
        self.goal_id = goal_id
        self.owner_id = owner_id
        super().__init__(f"{message} Goal ID: '{goal_id}', requested by: '{owner_id}'")

class ParentOwnershipError(OwnershipError):
    """Raised when a goal would be attached to a parent owned by a different user."""
    def __init__(self, parent_id: str, owner_id: str):
        super().__init__(parent_id, owner_id, message="Parent goal is owned by another user.")

class StorageError(GoalCoreError):
    """Base class for errors raised by a persistence backend."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class ConcurrentUpdateError(StorageError):
    """
    Raised when an update was based on a stale version of a goal.

    Another writer persisted a newer version between read and write.
    """
    def __init__(self, goal_id: str, expected_version: int, actual_version: Optional[int] = None):
        self.goal_id = goal_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Goal '{goal_id}' was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})."
        )

class HierarchyIntegrityError(GoalCoreError):
    """Raised when the parent/child graph revisits a goal (a cycle in stored data)."""
    def __init__(self, goal_id: str, message: str = "Goal hierarchy revisits a goal."):
        self.goal_id = goal_id
        super().__init__(f"{message} Goal ID: '{goal_id}'")
