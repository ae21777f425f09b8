"""Database connection management.

Provides async database operations using aiosqlite for non-blocking
database access from the request handlers and background tasks.

All callers go through get_db(), which hands out connections from a small
bounded pool:

    async with get_db() as db:
        await db.execute(...)

Errors are translated at this layer so that nothing above it needs to know
about aiosqlite:

- failing to open a connection (or using a closed one) raises
  ``StoreUnavailable``;
- a statement that fails against an open connection raises
  ``StorageOperationFailed``.
"""

from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import cache
from pathlib import Path
from typing import Any, cast

import aiosqlite

from hermit.lib.config import get_settings
from hermit.lib.exceptions import StorageOperationFailed, StoreUnavailable
from hermit.lib.store.types import SQLParams
from hermit.logging import get_logger

_logger = get_logger("lib.store")

# SQL templates directory
_SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

_SCHEMA_TEMPLATES = (
    "init_config_table.sql",
    "init_current_stats_table.sql",
    "init_sensors_table.sql",
    "idx_sensors.sql",
)


@cache
def load_template(name: str) -> str:
    """Load and cache a SQL template file.

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _SQL_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"SQL template not found: {path}")
    return path.read_text()


def _dict_factory(
    cursor: aiosqlite.Cursor, row: tuple[Any, ...]
) -> dict[str, Any]:
    """Convert a row to a dictionary using column names."""
    desc: tuple[Any, ...] = cursor.description or ()
    return {col[0]: row[idx] for idx, col in enumerate(desc)}


class Database:
    """Async database connection wrapper."""

    def __init__(self, db_path: str | None = None):
        store = get_settings().store
        self._db_path = db_path or store.db_path
        self._timeout = store.timeout_sec
        self._connection: aiosqlite.Connection | None = None
        self._in_transaction = False

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the database connection."""
        if self._connection is not None:
            return
        try:
            self._connection = await aiosqlite.connect(
                self._db_path,
                timeout=self._timeout,
            )
        except (sqlite3.Error, OSError) as e:
            raise StoreUnavailable(f"Cannot open {self._db_path}: {e}") from e
        self._connection.row_factory = _dict_factory  # type: ignore[assignment]

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            connection, self._connection = self._connection, None
            try:
                await connection.close()
            except (sqlite3.Error, OSError) as e:
                _logger.warning("Error closing connection: %s", e)

    def _require(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise StoreUnavailable()
        return self._connection

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Context manager for database transactions.

        All operations within the context are committed together on success,
        or rolled back if an exception occurs.
        """
        connection = self._require()
        self._in_transaction = True
        try:
            await connection.execute("BEGIN")
            yield
            await connection.commit()
        except sqlite3.Error as e:
            await connection.rollback()
            raise StorageOperationFailed(str(e)) from e
        except BaseException:
            await connection.rollback()
            raise
        finally:
            self._in_transaction = False

    async def execute(self, sql: str, params: SQLParams = ()) -> int:
        """Execute a SQL statement.

        Auto-commits unless inside a transaction() context.

        Returns:
            Number of rows affected by the statement.
        """
        connection = self._require()
        try:
            cursor = await connection.execute(sql, params)
            if not self._in_transaction:
                await connection.commit()
        except sqlite3.Error as e:
            raise StorageOperationFailed(str(e)) from e
        return cursor.rowcount

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements."""
        connection = self._require()
        try:
            await connection.executescript(sql)
        except sqlite3.Error as e:
            raise StorageOperationFailed(str(e)) from e

    async def fetchone(
        self, sql: str, params: SQLParams = ()
    ) -> dict[str, Any] | None:
        """Fetch a single row."""
        connection = self._require()
        try:
            async with connection.execute(sql, params) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageOperationFailed(str(e)) from e
        return cast(dict[str, Any] | None, row)


class ConnectionPool:
    """Async connection pool with bounded concurrency.

    Limits concurrent database connections using a semaphore. Connections
    are reused when available, created on demand up to max_size.
    """

    def __init__(self, max_size: int = 5) -> None:
        self._max_size = max_size
        self._connections: list[Database] = []
        self._semaphore: asyncio.Semaphore | None = None
        self._closed = False

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Lazy init: asyncio.Semaphore requires running event loop
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self._max_size)
        return self._semaphore

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Database]:
        """Acquire a connection from the pool."""
        if self._closed:
            raise StoreUnavailable("Connection pool is closed")
        async with self._get_semaphore():
            conn = self._connections.pop() if self._connections else Database()
            try:
                if not conn.is_connected:
                    await conn.connect()
                yield conn
            except StoreUnavailable:
                await conn.close()
                raise
            finally:
                # A connection that never opened is not worth keeping
                if conn.is_connected:
                    self._connections.append(conn)

    async def close(self) -> None:
        """Close all pooled connections."""
        self._closed = True
        for conn in self._connections:
            await conn.close()
        count = len(self._connections)
        self._connections = []
        self._semaphore = None
        self._closed = False  # Allow pool reuse after close
        if count:
            _logger.info("Closed %d pooled connections", count)


_pool: ConnectionPool | None = None


def _get_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool(max_size=get_settings().store.pool_size)
    return _pool


@asynccontextmanager
async def get_db() -> AsyncIterator[Database]:
    """Get a pooled database connection.

    Usage:
        async with get_db() as db:
            await db.execute("INSERT INTO ...")
    """
    async with _get_pool().acquire() as db:
        yield db


async def init_store() -> None:
    """Open a connection and make sure the schema exists.

    Raises:
        StoreUnavailable: If the database cannot be opened.
    """
    async with get_db() as db:
        await db.execute("PRAGMA journal_mode=WAL")
        for name in _SCHEMA_TEMPLATES:
            await db.executescript(load_template(name))
    _logger.info("Storage ready: %s", get_settings().store.db_path)


async def close_store() -> None:
    """Close every pooled connection."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
