from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import psycopg
import pytest
from psycopg import errors as pg_errors

from peerpair.db import helpers
from peerpair.db.helpers import (
    DatabaseError,
    fetch_one,
    is_valid_uuid,
    run_in_transaction,
    with_db_retry,
)
from peerpair.features.pairing.domain.errors import ConflictError


class FakeTransactions:
    """Stands in for get_db_transaction; counts attempts and commits."""

    def __init__(self, commit_errors=()):
        self.commit_errors = list(commit_errors)
        self.attempts = 0
        self.commits = 0

    async def __call__(self):
        return self._transaction()

    @asynccontextmanager
    async def _transaction(self):
        self.attempts += 1
        yield f"conn-{self.attempts}"
        if self.commit_errors:
            raise self.commit_errors.pop(0)
        self.commits += 1


class FailingCursor:
    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params):
        raise self.error


class FailingConnection:
    def __init__(self, error):
        self.error = error

    def cursor(self):
        return FailingCursor(self.error)


@pytest.fixture
def no_sleep(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("peerpair.db.helpers.asyncio.sleep", sleep)
    return sleep


@pytest.mark.asyncio
async def test_run_in_transaction_commits_work_result(monkeypatch, no_sleep):
    transactions = FakeTransactions()
    monkeypatch.setattr(helpers, "get_db_transaction", transactions)

    result = await run_in_transaction(AsyncMock(return_value="done"), operation="test")

    assert result == "done"
    assert transactions.commits == 1
    no_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_run_in_transaction_retries_serialization_failures(monkeypatch, no_sleep):
    transactions = FakeTransactions(
        commit_errors=[pg_errors.SerializationFailure("conflict"), pg_errors.DeadlockDetected("deadlock")]
    )
    monkeypatch.setattr(helpers, "get_db_transaction", transactions)
    seen = []

    async def work(conn):
        seen.append(conn)
        return len(seen)

    result = await run_in_transaction(work, operation="test", max_retries=3, base_delay=0.01)

    assert result == 3
    assert seen == ["conn-1", "conn-2", "conn-3"]
    assert [call.args[0] for call in no_sleep.await_args_list] == [0.01, 0.02]


@pytest.mark.asyncio
async def test_run_in_transaction_gives_up_after_max_retries(monkeypatch, no_sleep):
    transactions = FakeTransactions(
        commit_errors=[pg_errors.SerializationFailure("conflict") for _ in range(3)]
    )
    monkeypatch.setattr(helpers, "get_db_transaction", transactions)

    with pytest.raises(DatabaseError) as exc_info:
        await run_in_transaction(AsyncMock(), operation="respond", max_retries=2, base_delay=0.01)

    assert exc_info.value.operation == "respond"
    assert exc_info.value.recoverable is False
    assert transactions.attempts == 3
    assert transactions.commits == 0


@pytest.mark.asyncio
async def test_run_in_transaction_propagates_business_errors_without_retry(monkeypatch, no_sleep):
    transactions = FakeTransactions()
    monkeypatch.setattr(helpers, "get_db_transaction", transactions)

    with pytest.raises(ConflictError):
        await run_in_transaction(
            AsyncMock(side_effect=ConflictError("already responded")), operation="test"
        )

    assert transactions.attempts == 1
    assert transactions.commits == 0


@pytest.mark.asyncio
async def test_run_in_transaction_wraps_driver_errors(monkeypatch, no_sleep):
    transactions = FakeTransactions()
    monkeypatch.setattr(helpers, "get_db_transaction", transactions)

    with pytest.raises(DatabaseError):
        await run_in_transaction(
            AsyncMock(side_effect=psycopg.OperationalError("server closed")), operation="test"
        )
    assert transactions.attempts == 1


@pytest.mark.asyncio
async def test_fetch_one_wraps_errors_and_marks_recoverability():
    with pytest.raises(DatabaseError) as exc_info:
        await fetch_one("SELECT 1", connection=FailingConnection(psycopg.OperationalError("gone")))
    assert exc_info.value.recoverable is True

    with pytest.raises(DatabaseError) as exc_info:
        await fetch_one("SELECT 1", connection=FailingConnection(psycopg.ProgrammingError("bad sql")))
    assert exc_info.value.recoverable is False


@pytest.mark.asyncio
async def test_fetch_one_reraises_serialization_failures_unwrapped():
    with pytest.raises(pg_errors.SerializationFailure):
        await fetch_one(
            "SELECT 1", connection=FailingConnection(pg_errors.SerializationFailure("conflict"))
        )


@pytest.mark.asyncio
async def test_with_db_retry_only_retries_recoverable_errors(no_sleep):
    calls = {"flaky": 0, "broken": 0}

    @with_db_retry(max_retries=2, base_delay=0.1)
    async def flaky():
        calls["flaky"] += 1
        if calls["flaky"] == 1:
            raise DatabaseError("timeout")
        return "ok"

    @with_db_retry(max_retries=2, base_delay=0.1)
    async def broken():
        calls["broken"] += 1
        raise DatabaseError("bad sql", recoverable=False)

    assert await flaky() == "ok"
    with pytest.raises(DatabaseError):
        await broken()

    assert calls == {"flaky": 2, "broken": 1}
    no_sleep.assert_awaited_once_with(0.1)


def test_is_valid_uuid():
    assert is_valid_uuid("2f1b6a8e-3c4d-4e5f-9a0b-1c2d3e4f5a6b")
    assert not is_valid_uuid("not-a-uuid")
    assert not is_valid_uuid("")
