# src/goalcore/storage/__init__.py
"""
Storage management module for the GoalCore library.

This package defines the persistence interface consumed by the goal
lifecycle engine and ships in-memory, JSON file and SQLite backends.
"""

from .base import BaseGoalStorage
from .json_storage import JsonGoalStorage
from .manager import GOAL_STORAGE_MAP, StorageManager
from .memory import InMemoryGoalStorage
from .sqlite_storage import SqliteGoalStorage

__all__ = [
    "BaseGoalStorage",
    "GOAL_STORAGE_MAP",
    "InMemoryGoalStorage",
    "JsonGoalStorage",
    "SqliteGoalStorage",
    "StorageManager",
]
