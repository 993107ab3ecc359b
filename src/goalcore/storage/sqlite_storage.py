# src/goalcore/storage/sqlite_storage.py
"""
SQLite database storage for Goal objects using aiosqlite.

Each goal is stored as one row: the queryable fields live in indexed
columns and the complete record (including its embedded history ledger
and reset logs) is stored as a JSON document in the ``data`` column.
"""

import logging
import os
import pathlib
from typing import Any, Iterable, List, Optional, Tuple

import aiosqlite
from pydantic import ValidationError

from ..exceptions import ConcurrentUpdateError, GoalCoreError, GoalNotFoundError, StorageError
from ..models import Goal
from .base import BaseGoalStorage, Filters, Sort, normalize_value, validate_fields

logger = logging.getLogger(__name__)

DEFAULT_GOALS_TABLE = "goals"

_COLUMNS = (
    "id", "user_id", "parent_id", "is_active", "is_archived", "timeframe",
    "goal_direction", "reset_frequency", "created", "updated", "version", "data",
)


def _column_value(value: Any) -> Any:
    value = normalize_value(value)
    if isinstance(value, bool):
        return int(value)
    return value


def _row_for(goal: Goal) -> Tuple[Any, ...]:
    return (
        goal.id,
        goal.user_id,
        goal.parent_id,
        int(goal.is_active),
        int(goal.is_archived),
        goal.timeframe.value,
        goal.goal_direction.value,
        goal.reset_frequency.value,
        _column_value(goal.created),
        _column_value(goal.updated),
        goal.version,
        goal.model_dump_json(),
    )


class SqliteGoalStorage(BaseGoalStorage):
    """
    Manages persistence of Goal objects in a SQLite database using aiosqlite.

    Args:
        path: Database file path.
        table_name: Name of the goals table.
    """

    def __init__(self, path: str = "~/.local/share/goalcore/goals.db", table_name: str = DEFAULT_GOALS_TABLE) -> None:
        self._db_path = pathlib.Path(os.path.expanduser(path))
        self._table = table_name
        self._conn: Optional[aiosqlite.Connection] = None

    async def initialize(self) -> None:
        """
        Open the database and create the goals table and indexes if needed.

        Raises:
            StorageError: If the database cannot be opened or the schema created.
        """
        if self._conn is not None:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path)
            self._conn.row_factory = aiosqlite.Row
            await self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    id TEXT PRIMARY KEY, user_id TEXT NOT NULL, parent_id TEXT,
                    is_active INTEGER NOT NULL, is_archived INTEGER NOT NULL,
                    timeframe TEXT NOT NULL, goal_direction TEXT NOT NULL,
                    reset_frequency TEXT NOT NULL, created TEXT NOT NULL,
                    updated TEXT NOT NULL, version INTEGER NOT NULL, data TEXT NOT NULL
                )
            """)
            await self._conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self._table}_user_parent ON {self._table} (user_id, parent_id);")
            await self._conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self._table}_parent ON {self._table} (parent_id);")
            await self._conn.execute(f"CREATE INDEX IF NOT EXISTS idx_{self._table}_flags ON {self._table} (user_id, is_active, is_archived);")
            await self._conn.commit()
            logger.info("SQLite goal storage initialized at: %s (table: %s)", self._db_path.resolve(), self._table)
        except (aiosqlite.Error, OSError) as e:
            logger.error("Failed to initialize SQLite goal storage at %s: %s", self._db_path, e)
            if self._conn:
                await self._conn.close()
                self._conn = None
            raise StorageError(f"Could not initialize SQLite database: {e}")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StorageError("Database connection not initialized.")
        return self._conn

    @staticmethod
    def _where(filters: Optional[Filters]) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for field, value in (filters or {}).items():
            if value is None:
                clauses.append(f"{field} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = [_column_value(v) for v in value]
                if not values:
                    clauses.append("0")
                    continue
                clauses.append(f"{field} IN ({', '.join('?' for _ in values)})")
                params.extend(values)
            else:
                clauses.append(f"{field} = ?")
                params.append(_column_value(value))
        return (" WHERE " + " AND ".join(clauses)) if clauses else "", params

    @staticmethod
    def _order_by(sort: Optional[Sort]) -> str:
        if not sort:
            return " ORDER BY rowid ASC"
        terms = [f"{field} {'ASC' if direction == 1 else 'DESC'}" for field, direction in sort]
        # Ties keep insertion order.
        terms.append("rowid ASC")
        return " ORDER BY " + ", ".join(terms)

    @staticmethod
    def _load(row: aiosqlite.Row) -> Goal:
        return Goal.model_validate_json(row["data"])

    async def find(self, filters: Optional[Filters] = None, sort: Optional[Sort] = None) -> List[Goal]:
        validate_fields(filters, sort)
        conn = self._require_conn()
        where, params = self._where(filters)
        try:
            async with conn.execute(f"SELECT data FROM {self._table}{where}{self._order_by(sort)}", params) as cursor:
                rows = await cursor.fetchall()
            return [self._load(row) for row in rows]
        except (aiosqlite.Error, ValidationError) as e:
            logger.error("SQLite error finding goals: %s", e)
            raise StorageError(f"Database error finding goals: {e}")

    async def get_by_id(self, goal_id: str) -> Optional[Goal]:
        conn = self._require_conn()
        try:
            async with conn.execute(f"SELECT data FROM {self._table} WHERE id = ?", (goal_id,)) as cursor:
                row = await cursor.fetchone()
            return self._load(row) if row else None
        except (aiosqlite.Error, ValidationError) as e:
            logger.error("SQLite error retrieving goal '%s': %s", goal_id, e)
            raise StorageError(f"Database error retrieving goal '{goal_id}': {e}")

    async def create(self, goal: Goal) -> Goal:
        conn = self._require_conn()
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            await conn.execute(
                f"INSERT INTO {self._table} ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                _row_for(goal),
            )
            await conn.commit()
        except aiosqlite.IntegrityError as e:
            await conn.rollback()
            raise StorageError(f"Goal '{goal.id}' already exists: {e}")
        except aiosqlite.Error as e:
            logger.error("SQLite error creating goal '%s': %s", goal.id, e)
            await conn.rollback()
            raise StorageError(f"Database error creating goal '{goal.id}': {e}")
        logger.debug("Goal '%s' saved to SQLite.", goal.id)
        return goal.model_copy(deep=True)

    async def update(self, goal: Goal, expected_version: Optional[int] = None) -> Goal:
        conn = self._require_conn()
        try:
            current = await self._current_version(conn, goal.id)
            if current is None:
                raise GoalNotFoundError(goal.id)
            if expected_version is not None and current != expected_version:
                raise ConcurrentUpdateError(goal.id, expected_version, current)

            new = goal.model_copy(deep=True, update={"version": current + 1})
            assignments = ", ".join(f"{c} = ?" for c in _COLUMNS[1:])
            cursor = await conn.execute(
                f"UPDATE {self._table} SET {assignments} WHERE id = ? AND version = ?",
                (*_row_for(new)[1:], goal.id, current),
            )
            if cursor.rowcount == 0:
                await conn.rollback()
                raise ConcurrentUpdateError(goal.id, current, await self._current_version(conn, goal.id))
            await conn.commit()
            return new
        except GoalCoreError:
            raise
        except aiosqlite.Error as e:
            logger.error("SQLite error updating goal '%s': %s", goal.id, e)
            await conn.rollback()
            raise StorageError(f"Database error updating goal '{goal.id}': {e}")

    async def _current_version(self, conn: aiosqlite.Connection, goal_id: str) -> Optional[int]:
        async with conn.execute(f"SELECT version FROM {self._table} WHERE id = ?", (goal_id,)) as cursor:
            row = await cursor.fetchone()
        return row["version"] if row else None

    async def delete_many(self, goal_ids: Iterable[str]) -> int:
        conn = self._require_conn()
        ids = list(set(goal_ids))
        if not ids:
            return 0
        try:
            cursor = await conn.execute(
                f"DELETE FROM {self._table} WHERE id IN ({', '.join('?' for _ in ids)})", ids
            )
            await conn.commit()
            logger.debug("Deleted %d goals from SQLite.", cursor.rowcount)
            return cursor.rowcount
        except aiosqlite.Error as e:
            logger.error("SQLite error deleting goals: %s", e)
            await conn.rollback()
            raise StorageError(f"Database error deleting goals: {e}")

    async def count(self, filters: Optional[Filters] = None) -> int:
        validate_fields(filters, None)
        conn = self._require_conn()
        where, params = self._where(filters)
        try:
            async with conn.execute(f"SELECT COUNT(*) AS n FROM {self._table}{where}", params) as cursor:
                row = await cursor.fetchone()
            return row["n"]
        except aiosqlite.Error as e:
            logger.error("SQLite error counting goals: %s", e)
            raise StorageError(f"Database error counting goals: {e}")

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite goal storage connection closed.")
