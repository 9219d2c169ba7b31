from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import psycopg
import pytest
from psycopg.rows import dict_row

from flagquery.errors import DatabaseConnectionError, QueryError, QueryTimeoutError, StatementError
from flagquery.infrastructure.executor import QueryExecutor, count_placeholders

SAMPLE_ROWS = [
    {"flag_id": 1, "flag_code": "a", "state": 0, "flag_data": "{}", "last_update": None},
    {"flag_id": 2, "flag_code": "b", "state": 1, "flag_data": "{}", "last_update": None},
    {"flag_id": 3, "flag_code": "c", "state": 2, "flag_data": "{}", "last_update": None},
]


class _FakeCursor:
    def __init__(self, conn: _FakeConnection) -> None:
        self._conn = conn
        self.description: list[tuple[str]] | None = None

    async def __aenter__(self) -> _FakeCursor:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        return False

    async def execute(self, sql: str, params: tuple[Any, ...]) -> None:
        self._conn.executed.append((sql, params))
        if self._conn.delay:
            await asyncio.sleep(self._conn.delay)
        if self._conn.statement_error is not None:
            raise self._conn.statement_error
        if self._conn.rows is not None:
            self.description = [("flag_id",)]

    async def fetchall(self) -> list[dict[str, Any]]:
        return [dict(row) for row in self._conn.rows or []]


class _FakeConnection:
    def __init__(
        self,
        rows: list[dict[str, Any]] | None = None,
        statement_error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        self.rows = rows
        self.statement_error = statement_error
        self.delay = delay
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.row_factories: list[Any] = []

    def cursor(self, row_factory: Any = None) -> _FakeCursor:
        self.row_factories.append(row_factory)
        return _FakeCursor(self)


class _CountingProvider:
    def __init__(self, conn: _FakeConnection, connect_error: BaseException | None = None) -> None:
        self.conn = conn
        self.connect_error = connect_error
        self.acquire_calls = 0
        self.release_calls = 0

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[_FakeConnection]:
        if self.connect_error is not None:
            raise self.connect_error
        self.acquire_calls += 1
        try:
            yield self.conn
        finally:
            self.release_calls += 1

    async def close(self) -> None:
        return None


def test_count_placeholders_ignores_escaped_percent() -> None:
    assert count_placeholders("SELECT 1") == 0
    assert count_placeholders("SELECT * FROM flag WHERE flag_id = %s") == 1
    assert count_placeholders("SELECT '100%%' WHERE a = %s AND b = %s") == 2
    assert count_placeholders("SELECT '%%s'") == 0
    assert count_placeholders("SELECT * FROM flag WHERE flag_data = %b") == 1
    assert count_placeholders("SELECT * FROM flag WHERE flag_code = %t") == 1
    assert count_placeholders("SELECT %s, %b, %t") == 3
    assert count_placeholders("SELECT '%%b', '%%t'") == 0


@pytest.mark.asyncio
async def test_execute_accepts_binary_and_text_placeholders() -> None:
    provider = _CountingProvider(_FakeConnection(rows=SAMPLE_ROWS[:1]))
    executor = QueryExecutor(provider)

    rows = await executor.execute("SELECT * FROM flag WHERE flag_id = %b AND flag_code = %t", [1, "dark_mode"])

    assert len(rows) == 1
    assert provider.acquire_calls == 1
    assert provider.release_calls == 1


@pytest.mark.asyncio
async def test_execute_returns_all_rows_and_releases_once() -> None:
    provider = _CountingProvider(_FakeConnection(rows=SAMPLE_ROWS))
    executor = QueryExecutor(provider, timeout_seconds=1.0)

    rows = await executor.execute("SELECT * FROM flag WHERE state >= %s", [0])

    assert len(rows) == len(SAMPLE_ROWS)
    assert [row["flag_id"] for row in rows] == [1, 2, 3]
    assert provider.acquire_calls == 1
    assert provider.release_calls == 1
    assert provider.conn.executed == [("SELECT * FROM flag WHERE state >= %s", (0,))]
    assert provider.conn.row_factories == [dict_row]


@pytest.mark.asyncio
async def test_execute_statement_without_result_set_returns_empty_list() -> None:
    provider = _CountingProvider(_FakeConnection(rows=None))
    executor = QueryExecutor(provider)

    assert await executor.execute("SET TIME ZONE 'UTC'") == []
    assert provider.release_calls == 1


@pytest.mark.asyncio
async def test_statement_failure_still_releases_connection() -> None:
    failure = psycopg.errors.UndefinedTable('relation "flag" does not exist')
    provider = _CountingProvider(_FakeConnection(statement_error=failure))
    executor = QueryExecutor(provider)

    with pytest.raises(StatementError) as excinfo:
        await executor.execute("SELECT * FROM flag")

    assert excinfo.value.cause is failure
    assert isinstance(excinfo.value, QueryError)
    assert provider.acquire_calls == 1
    assert provider.release_calls == 1


@pytest.mark.asyncio
async def test_connection_failure_is_reported_as_connection_error() -> None:
    failure = psycopg.OperationalError("connection refused")
    provider = _CountingProvider(_FakeConnection(rows=[]), connect_error=failure)
    executor = QueryExecutor(provider)

    with pytest.raises(DatabaseConnectionError) as excinfo:
        await executor.execute("SELECT * FROM flag")

    assert excinfo.value.cause is failure
    assert provider.acquire_calls == 0
    assert provider.release_calls == 0


@pytest.mark.asyncio
async def test_unexpected_failure_propagates_and_releases() -> None:
    provider = _CountingProvider(_FakeConnection(statement_error=RuntimeError("boom")))
    executor = QueryExecutor(provider)

    with pytest.raises(RuntimeError, match="boom"):
        await executor.execute("SELECT * FROM flag")

    assert provider.release_calls == 1


@pytest.mark.asyncio
async def test_deadline_raises_timeout_and_releases() -> None:
    provider = _CountingProvider(_FakeConnection(rows=SAMPLE_ROWS, delay=1.0))
    executor = QueryExecutor(provider, timeout_seconds=0.05)

    with pytest.raises(QueryTimeoutError):
        await executor.execute("SELECT pg_sleep(1)")

    assert provider.acquire_calls == 1
    assert provider.release_calls == 1


@pytest.mark.asyncio
async def test_parameter_count_mismatch_is_rejected_before_acquiring() -> None:
    provider = _CountingProvider(_FakeConnection(rows=SAMPLE_ROWS))
    executor = QueryExecutor(provider)

    with pytest.raises(ValueError, match="expects 1 parameter"):
        await executor.execute("SELECT * FROM flag WHERE flag_id = %s", [])

    assert provider.acquire_calls == 0


def test_non_positive_timeout_disables_deadline() -> None:
    provider = _CountingProvider(_FakeConnection(rows=[]))
    assert QueryExecutor(provider, timeout_seconds=0).timeout_seconds is None
    assert QueryExecutor(provider, timeout_seconds=None).timeout_seconds is None
    assert QueryExecutor(provider, timeout_seconds=2.5).timeout_seconds == 2.5
