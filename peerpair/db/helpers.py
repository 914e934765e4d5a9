# peerpair/db/helpers.py
"""
Database helper functions for common patterns.
Reduces boilerplate in the repository layer.
"""

import asyncio
import functools
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import psycopg
from psycopg import errors as pg_errors

from peerpair.config import settings
from peerpair.db.pool import get_db_connection, get_db_transaction
from peerpair.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Contention errors Postgres expects the client to retry
RETRYABLE_TXN_ERRORS = (pg_errors.SerializationFailure, pg_errors.DeadlockDetected)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> dict[str, Any] | None:
    """
    Execute query and return single row as dict.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection (e.g. inside a transaction)

    Returns:
        Dict with row data or None if no results
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchone()
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchone()

    except RETRYABLE_TXN_ERRORS:
        raise
    except psycopg.Error as e:
        logger.error("Database fetch_one error", query=query[:100], error=str(e))
        raise DatabaseError(
            f"Query failed: {e}",
            operation="fetch_one",
            recoverable=isinstance(e, psycopg.OperationalError),
        ) from e


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        List of dicts with row data
    """
    try:
        if connection:
            async with connection.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()
        else:
            async with await get_db_connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    return await cur.fetchall()

    except RETRYABLE_TXN_ERRORS:
        raise
    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=query[:100], error=str(e))
        raise DatabaseError(
            f"Query failed: {e}",
            operation="fetch_all",
            recoverable=isinstance(e, psycopg.OperationalError),
        ) from e


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """
    Execute query and return number of affected rows.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters
        connection: Optional existing connection

    Returns:
        Number of affected rows
    """
    try:
        if connection:
            cursor = await connection.execute(query, params)
            return cursor.rowcount
        else:
            async with await get_db_connection() as conn:
                cursor = await conn.execute(query, params)
                return cursor.rowcount

    except RETRYABLE_TXN_ERRORS:
        raise
    except psycopg.Error as e:
        logger.error("Database execute error", query=query[:100], error=str(e))
        raise DatabaseError(
            f"Query failed: {e}",
            operation="execute",
            recoverable=isinstance(e, psycopg.OperationalError),
        ) from e


async def run_in_transaction(
    work: Callable[[psycopg.AsyncConnection], Awaitable[T]],
    *,
    operation: str,
    max_retries: int | None = None,
    base_delay: float | None = None,
) -> T:
    """
    Run ``work(conn)`` inside one SERIALIZABLE transaction, retrying on contention.

    Each attempt gets a fresh transaction, so ``work`` re-reads every document it
    depends on. Exceptions raised by ``work`` itself roll the attempt back and
    propagate unchanged; only serialization failures and deadlocks are retried.

    Args:
        work: Coroutine function receiving the transaction connection
        operation: Name used in logs and errors
        max_retries: Retry attempts after the first (default settings.TXN_MAX_RETRIES)
        base_delay: Backoff base in seconds (default settings.TXN_BASE_DELAY)

    Returns:
        Whatever ``work`` returns from the committed attempt

    Raises:
        DatabaseError: Retries exhausted or a non-retryable driver error
    """
    max_retries = settings.TXN_MAX_RETRIES if max_retries is None else max_retries
    base_delay = settings.TXN_BASE_DELAY if base_delay is None else base_delay

    for attempt in range(max_retries + 1):
        try:
            async with await get_db_transaction() as conn:
                result = await work(conn)
            if attempt:
                logger.info("Transaction committed after retry", operation=operation, attempt=attempt + 1)
            return result

        except RETRYABLE_TXN_ERRORS as e:
            if attempt >= max_retries:
                logger.error(
                    "Transaction conflict retries exhausted",
                    operation=operation,
                    attempts=attempt + 1,
                    error=str(e),
                )
                raise DatabaseError(
                    f"Transaction {operation} failed after {attempt + 1} attempts: {e}",
                    operation=operation,
                    recoverable=False,
                ) from e

            delay = base_delay * (2**attempt)
            logger.warning(
                "Transaction conflict, retrying",
                operation=operation,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay=delay,
            )
            await asyncio.sleep(delay)

        except psycopg.Error as e:
            logger.error("Transaction failed", operation=operation, error=str(e))
            raise DatabaseError(f"Transaction failed: {e}", operation=operation) from e

    raise DatabaseError(f"Transaction {operation} did not run", operation=operation)


def with_db_retry(max_retries: int = 3, base_delay: float = 0.1):
    """
    Decorator to retry database operations on temporary failures.

    Only DatabaseError marked recoverable (connection drops, timeouts) is
    retried; anything else propagates on the first failure.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Base delay between retries (exponential backoff)
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                except DatabaseError as e:
                    if not e.recoverable or attempt >= max_retries:
                        logger.error(
                            "Database operation failed",
                            operation=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise

                    delay = base_delay * (2**attempt)
                    logger.warning(
                        "Database operation failed, retrying",
                        operation=func.__name__,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


def is_valid_uuid(value: str) -> bool:
    """True when ``value`` parses as a UUID; ids that don't can never match a row."""
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True
