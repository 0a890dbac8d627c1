"""
Chirper Database Connection Management
======================================

Async connection pool over SQLite (aiosqlite) shared by every repository.
The pool is created once at start-up and reused for the process lifetime;
each repository call borrows one connection for its query.
"""

import asyncio
import logging
import sqlite3
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, AsyncIterator, Any, List, Dict, Sequence

import aiosqlite

from ..utils.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Async SQLite connection manager with pooling."""

    def __init__(
        self,
        db_path: str = "data/chirper.db",
        pool_size: int = 5,
        acquire_timeout: float = 10.0,
    ):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Maximum number of connections in pool
            acquire_timeout: Seconds to wait for a free connection before
                opening an overflow connection
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.acquire_timeout = acquire_timeout
        self.pool: "asyncio.Queue[aiosqlite.Connection]" = asyncio.Queue(maxsize=pool_size)
        self.lock = asyncio.Lock()
        self._total_connections = 0
        self._initialized = False

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    async def initialize(self) -> None:
        """Open the pooled connections. Safe to call more than once."""
        if self._initialized:
            return

        async with self.lock:
            # Another task may have filled the pool while we waited
            if self._initialized:
                return

            opened = []
            try:
                for _ in range(self.pool_size):
                    opened.append(await self._create_connection())
            except BaseException:
                for conn in opened:
                    await conn.close()
                self._total_connections -= len(opened)
                raise

            for conn in opened:
                self.pool.put_nowait(conn)
            self._initialized = True

        logger.info(f"Database pool ready: {self.db_path} ({self.pool_size} connections)")

    async def _create_connection(self) -> aiosqlite.Connection:
        """Create a new configured SQLite connection."""
        try:
            conn = await aiosqlite.connect(self.db_path, timeout=30.0)
        except sqlite3.Error as e:
            raise StorageUnavailable(
                f"Cannot open database {self.db_path}: {e}",
                context={"db_path": str(self.db_path)},
            ) from e

        try:
            await conn.execute("PRAGMA foreign_keys = ON")
            await conn.execute("PRAGMA journal_mode = WAL")
            await conn.execute("PRAGMA synchronous = NORMAL")
        except sqlite3.Error as e:
            await conn.close()
            raise StorageUnavailable(
                f"Cannot open database {self.db_path}: {e}",
                context={"db_path": str(self.db_path)},
            ) from e

        conn.row_factory = aiosqlite.Row
        self._total_connections += 1

        logger.debug(f"Created database connection #{self._total_connections}")
        return conn

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection from the pool with automatic return.

        Usage:
            async with db.get_connection() as conn:
                cursor = await conn.execute("SELECT * FROM users")
                rows = await cursor.fetchall()
        """
        if not self._initialized:
            await self.initialize()

        start_time = time.monotonic()
        try:
            conn = await asyncio.wait_for(self.pool.get(), timeout=self.acquire_timeout)
        except asyncio.TimeoutError:
            logger.warning("Connection pool exhausted, creating new connection")
            conn = await self._create_connection()

        acquisition_time = time.monotonic() - start_time
        if acquisition_time > 1.0:
            logger.warning(f"Database connection acquisition took {acquisition_time:.2f}s")

        try:
            yield conn
        except BaseException:
            # Cancellation included; the pool only holds connections
            # outside a transaction
            await conn.rollback()
            raise
        finally:
            await self._release(conn)

    async def _release(self, conn: aiosqlite.Connection) -> None:
        """Return a connection to the pool, closing overflow connections."""
        if self.pool.full():
            await conn.close()
            self._total_connections -= 1
        else:
            self.pool.put_nowait(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Run statements in one transaction.

        Usage:
            async with db.transaction() as conn:
                await conn.execute("INSERT INTO users ...")
                await conn.execute("INSERT INTO posts ...")
                # commit on success, rollback on exception
        """
        async with self.get_connection() as conn:
            try:
                await conn.execute("BEGIN IMMEDIATE")
                yield conn
                await conn.commit()
            except Exception as e:
                await conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    async def fetch_all(self, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return rows as dictionaries."""
        async with self.get_connection() as conn:
            async with conn.execute(query, params) as cursor:
                rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Execute a query and return the first row, or None."""
        async with self.get_connection() as conn:
            async with conn.execute(query, params) as cursor:
                row = await cursor.fetchone()
        return dict(row) if row else None

    async def write_returning(
        self, query: str, params: Sequence[Any] = ()
    ) -> Optional[Dict[str, Any]]:
        """Execute an INSERT/UPDATE/DELETE ... RETURNING and commit.

        Returns:
            The returned row, or None when the statement matched nothing
        """
        async with self.get_connection() as conn:
            async with conn.execute(query, params) as cursor:
                row = await cursor.fetchone()
            await conn.commit()
        return dict(row) if row else None

    async def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE and commit.

        Returns:
            Number of affected rows
        """
        async with self.get_connection() as conn:
            cursor = await conn.execute(query, params)
            await conn.commit()
            rowcount = cursor.rowcount
            await cursor.close()
        return rowcount

    async def get_database_info(self) -> Dict[str, Any]:
        """Get database size and per-table row counts."""
        async with self.get_connection() as conn:
            async with conn.execute("PRAGMA page_count") as cursor:
                page_count = (await cursor.fetchone())[0]
            async with conn.execute("PRAGMA page_size") as cursor:
                page_size = (await cursor.fetchone())[0]

            table_counts = {}
            for table in ("users", "posts", "retweets", "likes"):
                try:
                    async with conn.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                        table_counts[table] = (await cursor.fetchone())[0]
                except sqlite3.OperationalError:
                    table_counts[table] = 0

        return {
            "database_size_mb": page_count * page_size / (1024 * 1024),
            "page_count": page_count,
            "page_size": page_size,
            "table_counts": table_counts,
            "connection_pool_size": self.pool.qsize(),
            "total_connections": self._total_connections,
        }

    async def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        logger.info("Closing all database connections")

        while not self.pool.empty():
            conn = self.pool.get_nowait()
            try:
                await conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing connection: {e}")

        self._total_connections = 0
        self._initialized = False


_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(
    db_path: Optional[str] = None,
    pool_size: Optional[int] = None,
) -> DatabaseConnection:
    """Get the process-wide database manager (singleton pattern).

    Repositories take their connection explicitly; this is only the
    instance the application wires them with at start-up.

    Args:
        db_path: Path to database file, defaults to the configured path
        pool_size: Pool size, defaults to the configured size

    Returns:
        Database connection manager instance
    """
    global _db_manager

    if _db_manager is None:
        from ..config.settings import get_settings

        settings = get_settings()
        _db_manager = DatabaseConnection(
            db_path or settings.database.path,
            pool_size=pool_size or settings.database.pool_size,
            acquire_timeout=settings.database.acquire_timeout,
        )

    return _db_manager
