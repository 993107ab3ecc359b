# src/goalcore/__init__.py
"""
GoalCore - auto-scaling personal goals with sub-period resets and hierarchies.

Goals carry a numeric target over a recurring period (daily, weekly,
monthly or annually). When a period ends the target is rescaled up or
down by a percentage depending on whether it was met, and the outcome is
appended to an immutable history ledger. Optional reset frequencies track
progress in sub-periods, and goals nest into per-user trees.
"""

from importlib.metadata import PackageNotFoundError, version

from .config import GoalCoreConfig, GoalDefaultsConfig, StorageConfig, load_config
from .engine import HierarchyManager, ProgressEngine, apply_auto_scaling, calculate_progress
from .exceptions import (
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
from .models import (
    Goal,
    GoalCreate,
    GoalDirection,
    GoalTreeNode,
    GoalUpdate,
    HistoryEntry,
    ResetFrequency,
    ResetLog,
    ScaleDirection,
    Timeframe,
)
from .service import GoalService
from .storage import (
    BaseGoalStorage,
    InMemoryGoalStorage,
    JsonGoalStorage,
    SqliteGoalStorage,
    StorageManager,
)

try:
    __version__ = version("goalcore")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

__all__ = [
    "__version__",
    # Service
    "GoalService",
    # Engine
    "HierarchyManager",
    "ProgressEngine",
    "apply_auto_scaling",
    "calculate_progress",
    # Models
    "Goal",
    "GoalCreate",
    "GoalDirection",
    "GoalTreeNode",
    "GoalUpdate",
    "HistoryEntry",
    "ResetFrequency",
    "ResetLog",
    "ScaleDirection",
    "Timeframe",
    # Config
    "GoalCoreConfig",
    "GoalDefaultsConfig",
    "StorageConfig",
    "load_config",
    # Storage
    "BaseGoalStorage",
    "InMemoryGoalStorage",
    "JsonGoalStorage",
    "SqliteGoalStorage",
    "StorageManager",
    # Exceptions
    "ConcurrentUpdateError",
    "ConfigError",
    "GoalCoreError",
    "GoalNotFoundError",
    "GoalValidationError",
    "HierarchyIntegrityError",
    "OwnershipError",
    "ParentNotFoundError",
    "ParentOwnershipError",
    "StorageError",
]
