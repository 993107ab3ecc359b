# src/goalcore/config/__init__.py
"""
Configuration module for the GoalCore library.

Settings are plain Pydantic models that can be built directly, from a
dictionary, or from a TOML file with a ``[goalcore]`` table:

    [goalcore.storage]
    type = "sqlite"
    path = "~/.local/share/goalcore/goals.db"

    [goalcore.defaults]
    scale_percent = 10.0
"""

from .goals_config import GoalCoreConfig, GoalDefaultsConfig, StorageConfig, load_config

__all__ = ["GoalCoreConfig", "GoalDefaultsConfig", "StorageConfig", "load_config"]
