"""
Per-call statement execution with scoped connection acquisition.

`QueryExecutor.execute` borrows exactly one connection from its provider for
the duration of the call, runs a single parameterized statement, and returns
the rows as dicts. The connection is handed back on every exit path because
acquisition happens inside `async with`; errors are wrapped into the
`QueryError` family and never retried.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import Any, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row

from flagquery.domain.models import FlagRow
from flagquery.errors import DatabaseConnectionError, QueryTimeoutError, StatementError
from flagquery.infrastructure.db_factory import ConnectionProvider
from flagquery.utils.logging import get_logger

log = get_logger(__name__)

_PLACEHOLDER_TOKENS = re.compile(r"%%|%[sbt]")


def count_placeholders(statement: str) -> int:
    """Count positional `%s`, `%b` and `%t` placeholders, ignoring escaped `%%`."""
    return sum(1 for token in _PLACEHOLDER_TOKENS.findall(statement) if token != "%%")


class QueryExecutor:
    """
    Execute single read statements against connections from a provider.

    Parameters
    ----------
    provider : ConnectionProvider
        Source of scoped connections (pooled or direct).
    timeout_seconds : float | None
        Deadline for acquire + execute + fetch. None or a non-positive value
        disables the deadline.
    """

    def __init__(self, provider: ConnectionProvider, timeout_seconds: Optional[float] = 10.0) -> None:
        self._provider = provider
        self.timeout_seconds = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None

    async def execute(self, statement: str, parameters: Sequence[Any] = ()) -> List[FlagRow]:
        """
        Run `statement` with `parameters` bound positionally and return its rows.

        Raises
        ------
        ValueError
            If the parameter count does not match the placeholder count.
        DatabaseConnectionError
            If no connection could be acquired.
        StatementError
            If the database failed the statement.
        QueryTimeoutError
            If the call exceeded `timeout_seconds`.
        """
        params = tuple(parameters)
        expected = count_placeholders(statement)
        if expected != len(params):
            raise ValueError(
                f"Statement expects {expected} parameter(s) but {len(params)} were supplied"
            )

        start = time.perf_counter()
        try:
            rows = await asyncio.wait_for(self._run(statement, params), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            log.error(
                "Query timed out",
                extra={"statement": statement, "timeout_seconds": self.timeout_seconds},
            )
            raise QueryTimeoutError(
                f"Query exceeded {self.timeout_seconds}s deadline", cause=exc
            ) from exc

        log.debug(
            "Query completed",
            extra={
                "statement": statement,
                "rows": len(rows),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return rows

    async def _run(self, statement: str, params: tuple) -> List[FlagRow]:
        acquired = False
        try:
            async with self._provider.connection() as conn:
                acquired = True
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(statement, params)
                    if cur.description is None:
                        return []
                    return await cur.fetchall()
        except (psycopg.Error, OSError) as exc:
            if not acquired:
                log.error("Database connection failed", extra={"error": str(exc)})
                raise DatabaseConnectionError(
                    f"Could not acquire a database connection: {exc}", cause=exc
                ) from exc
            log.error("Statement failed", extra={"statement": statement, "error": str(exc)})
            raise StatementError(f"Statement failed: {exc}", cause=exc) from exc


__all__ = ["QueryExecutor", "count_placeholders"]
