"""
Database connection factory utilities for flagquery.

Provides the scoped-acquisition contract used by the QueryExecutor: a provider
exposes `connection()` as an async context manager that always hands the
connection back (to the pool, or closes it) on exit. Two providers exist:

- PooledConnectionProvider: psycopg_pool AsyncConnectionPool (default).
- DirectConnectionProvider: a fresh AsyncConnection per call.

Also includes a tenacity-backed readiness probe for CLI and seeding use.
The query path itself never retries.
"""

from __future__ import annotations

import asyncio
import math
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional, Protocol, runtime_checkable

import psycopg
from psycopg import AsyncConnection
from psycopg.conninfo import make_conninfo
from psycopg_pool import AsyncConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from flagquery.config import Settings, get_settings
from flagquery.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a libpq connection string from settings."""
    settings = settings or get_settings()
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_user,
        password=settings.db_password,
        dbname=settings.db_name,
    )


def connection_kwargs(settings: Optional[Settings] = None) -> Dict[str, Any]:
    """
    Keyword arguments applied to every connection opened by a provider.

    Connections run in autocommit since every call is a single read statement.
    A positive `db_statement_timeout_ms` becomes a server-side statement_timeout.
    """
    settings = settings or get_settings()
    kwargs: Dict[str, Any] = {
        "autocommit": True,
        "connect_timeout": max(1, math.ceil(settings.db_connect_timeout_seconds)),
    }
    if settings.db_statement_timeout_ms > 0:
        kwargs["options"] = f"-c statement_timeout={settings.db_statement_timeout_ms}"
    return kwargs


@runtime_checkable
class ConnectionProvider(Protocol):
    """Hands out connections scoped to an `async with` block."""

    def connection(self) -> AbstractAsyncContextManager[AsyncConnection]:
        ...

    async def close(self) -> None:
        ...


class PooledConnectionProvider:
    """
    Scoped connections borrowed from a psycopg AsyncConnectionPool.

    The pool is opened lazily on first use so the provider can be built outside
    a running event loop. Acquisition waits at most `timeout` seconds and then
    fails with psycopg_pool.PoolTimeout. A closed provider cannot be reopened.
    """

    def __init__(
        self,
        conninfo: str,
        min_size: int = 1,
        max_size: int = 10,
        timeout: float = 5.0,
        kwargs: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.conninfo = conninfo
        self.min_size = min_size
        self.max_size = max_size
        self._pool = AsyncConnectionPool(
            conninfo=conninfo,
            min_size=min_size,
            max_size=max_size,
            timeout=timeout,
            kwargs=kwargs or {},
            open=False,
        )
        self._opened = False
        self._closed = False
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        async with self._lock:
            if self._closed:
                raise RuntimeError("Connection provider is closed and cannot be reopened")
            if not self._opened:
                await self._pool.open()
                self._opened = True
                log.debug(
                    "Connection pool opened",
                    extra={"min_size": self.min_size, "max_size": self.max_size},
                )

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        await self.open()
        async with self._pool.connection() as conn:
            yield conn

    async def close(self) -> None:
        async with self._lock:
            if self._opened:
                await self._pool.close()
                log.debug("Connection pool closed")
            self._closed = True


class DirectConnectionProvider:
    """A dedicated connection per call, closed when the block exits."""

    def __init__(self, conninfo: str, kwargs: Optional[Dict[str, Any]] = None) -> None:
        self.conninfo = conninfo
        self._kwargs = kwargs or {}

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        conn = await AsyncConnection.connect(self.conninfo, **self._kwargs)
        try:
            yield conn
        finally:
            await conn.close()

    async def close(self) -> None:
        return None


def create_provider(settings: Optional[Settings] = None) -> ConnectionProvider:
    """Build the provider selected by `db_pooling`."""
    settings = settings or get_settings()
    conninfo = build_dsn(settings)
    kwargs = connection_kwargs(settings)
    if settings.db_pooling:
        return PooledConnectionProvider(
            conninfo,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            timeout=settings.db_pool_timeout_seconds,
            kwargs=kwargs,
        )
    return DirectConnectionProvider(conninfo, kwargs=kwargs)


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def wait_for_database(conninfo: Optional[str] = None, settings: Optional[Settings] = None) -> None:
    """
    Block until the database answers `SELECT 1`.

    Retries up to 5 times with exponential backoff for transient connection
    errors. Meant for startup checks and seeding, not for the query path.
    Each attempt honours `db_connect_timeout_seconds`.

    Raises
    ------
    psycopg.OperationalError
        If the database is still unreachable after all attempts.
    """
    settings = settings or get_settings()
    connect_timeout = connection_kwargs(settings)["connect_timeout"]
    with psycopg.connect(conninfo or build_dsn(settings), connect_timeout=connect_timeout) as conn:
        conn.execute("SELECT 1")


__all__ = [
    "ConnectionProvider",
    "DirectConnectionProvider",
    "PooledConnectionProvider",
    "build_dsn",
    "connection_kwargs",
    "create_provider",
    "wait_for_database",
]
