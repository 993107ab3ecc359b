# src/goalcore/storage/manager.py
"""
Storage Manager for GoalCore.

Builds the goal storage backend named by the configuration and owns its
lifecycle (initialize on open, close on shutdown).
"""

import logging
from typing import Dict, Optional, Type

from ..config import StorageConfig
from ..exceptions import ConfigError
from .base import BaseGoalStorage
from .json_storage import JsonGoalStorage
from .memory import InMemoryGoalStorage
from .sqlite_storage import SqliteGoalStorage

logger = logging.getLogger(__name__)

# --- Mapping from config type string to class ---
GOAL_STORAGE_MAP: Dict[str, Type[BaseGoalStorage]] = {
    "memory": InMemoryGoalStorage,
    "json": JsonGoalStorage,
    "sqlite": SqliteGoalStorage,
}


class StorageManager:
    """
    Creates and holds the configured goal storage backend.

    Example:
        >>> manager = StorageManager(StorageConfig(type="sqlite", path="/tmp/goals.db"))
        >>> storage = await manager.open()
        >>> ...
        >>> await manager.close()
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self._config = config or StorageConfig()
        self._storage: Optional[BaseGoalStorage] = None

    @property
    def storage(self) -> BaseGoalStorage:
        if self._storage is None:
            raise ConfigError("Goal storage has not been opened. Call open() first.")
        return self._storage

    def create_storage(self) -> BaseGoalStorage:
        """Instantiate (without initializing) the backend named by the configuration."""
        storage_cls = GOAL_STORAGE_MAP.get(self._config.type)
        if storage_cls is None:
            raise ConfigError(f"Unsupported goal storage type: '{self._config.type}'")
        if storage_cls is InMemoryGoalStorage:
            return InMemoryGoalStorage()
        if storage_cls is SqliteGoalStorage:
            return SqliteGoalStorage(path=self._config.path, table_name=self._config.table_name)
        return storage_cls(path=self._config.path)  # type: ignore[call-arg]

    async def open(self) -> BaseGoalStorage:
        """Create and initialize the backend. Safe to call more than once."""
        if self._storage is None:
            storage = self.create_storage()
            await storage.initialize()
            self._storage = storage
            logger.info("Goal storage opened (type: %s)", self._config.type)
        return self._storage

    async def close(self) -> None:
        if self._storage is not None:
            await self._storage.close()
            self._storage = None
            logger.info("Goal storage closed.")
