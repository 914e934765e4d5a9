# peerpair/db/pool.py
"""
Async PostgreSQL pool shared by the repositories.

Statements run on autocommit connections; request/session workflows that
read and then write several rows go through transaction().
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import IsolationLevel, sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from peerpair.config import settings
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 30.0


class DatabasePoolManager:
    """Lifecycle and checkout for the psycopg pool."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._initialized = False
        self._closed = False

    async def initialize(self) -> None:
        """Open the pool at startup and verify one round trip."""
        if self._initialized:
            logger.warning("Database pool already initialized")
            return
        if self._closed:
            raise RuntimeError("Cannot reinitialize closed pool")

        pool_kwargs = settings.get_db_pool_config()
        logger.info(
            "Opening database pool",
            min_size=pool_kwargs["min_size"],
            max_size=pool_kwargs["max_size"],
        )
        self.pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=self._configure_connection,
            **pool_kwargs,
        )

        try:
            await self.pool.open()
            await self.pool.wait()
            # connection() refuses to hand out connections until this is set
            self._initialized = True
            if not await self._ping():
                raise RuntimeError("SELECT 1 returned an unexpected row")
        except Exception as e:
            logger.error("Database pool failed to open", error=str(e))
            self._initialized = False
            await self.pool.close()
            self.pool = None
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready")

    async def _configure_connection(self, conn: psycopg.AsyncConnection) -> None:
        """Per-connection session settings: dict rows, UTC, statement timeout."""
        conn.row_factory = dict_row
        await conn.set_autocommit(True)
        await conn.execute(
            sql.SQL("SET application_name = {}").format(
                sql.Literal(f"peerpair-{settings.environment}")
            )
        )
        await conn.execute("SET timezone = 'UTC'")
        await conn.execute("SET statement_timeout = '30s'")

    async def _ping(self) -> bool:
        async with self.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1 AS ok")
                row = await cur.fetchone()
        return bool(row) and row["ok"] == 1

    async def close(self) -> None:
        """Drain and close the pool at shutdown. Safe to call twice."""
        if not self._initialized or self._closed:
            return

        self._initialized = False
        self._closed = True
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out")
            return
        logger.info("Database pool closed")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Check out an autocommit connection."""
        if self._closed:
            raise RuntimeError("Database pool is closed")
        if not self._initialized:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")

        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(
        self, isolation_level: IsolationLevel = IsolationLevel.SERIALIZABLE
    ) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """
        Check out a connection inside one transaction block.

        Commits when the block exits cleanly and rolls back on exception.
        The connection's previous isolation level is restored before it
        returns to the pool.
        """
        async with self.connection() as conn:
            previous = conn.isolation_level
            await conn.set_isolation_level(isolation_level)
            try:
                async with conn.transaction():
                    yield conn
            finally:
                await conn.set_isolation_level(previous)

    async def health_check(self) -> dict[str, Any]:
        """Readiness view: can we run SELECT 1, and how full is the pool."""
        if self._closed:
            return {"healthy": False, "error": "Pool is closed"}
        if not self._initialized:
            return {"healthy": False, "error": "Pool not initialized"}

        try:
            ok = await self._ping()
        except Exception as e:
            logger.error("Database readiness check failed", error=str(e))
            return {"healthy": False, "error": str(e)}
        if not ok:
            return {"healthy": False, "error": "SELECT 1 returned an unexpected row"}

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


db_pool = DatabasePoolManager()


async def get_db_connection():
    """Autocommit connection context manager from the shared pool."""
    return db_pool.connection()


async def get_db_transaction():
    """SERIALIZABLE transaction context manager from the shared pool."""
    return db_pool.transaction()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
