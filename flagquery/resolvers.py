"""
Flag resolvers: the two read operations exposed to a transport layer.

Usage:
    from flagquery.resolvers import FlagResolver

    async with FlagResolver.from_settings() as resolver:
        flags = await resolver.list_all()
        flag = await resolver.get_by_id(1)

`list_all` backs `flags: [Flag]` and `get_by_id` backs `getFlag(id: ID): Flag`.
Database failures follow the configured QueryErrorPolicy: under
`return-empty` they are logged and degrade to None, under `propagate` the
QueryError is re-raised.
"""

from __future__ import annotations

from typing import Any, List, Optional

from flagquery.config import QueryErrorPolicy, Settings, get_settings
from flagquery.domain.mapping import FLAG_COLUMNS, to_flag_record
from flagquery.domain.models import FlagRecord, FlagRow
from flagquery.errors import AmbiguousResultError, QueryError
from flagquery.infrastructure.db_factory import ConnectionProvider, create_provider
from flagquery.infrastructure.executor import QueryExecutor
from flagquery.utils.logging import get_logger

log = get_logger(__name__)

_SELECT = f"SELECT {', '.join(FLAG_COLUMNS)} FROM flag"
LIST_ALL_SQL = f"{_SELECT} ORDER BY flag_id ASC"
# LIMIT 2 is enough to tell "one" from "more than one".
GET_BY_ID_SQL = f"{_SELECT} WHERE flag_id = %s LIMIT 2"


class FlagResolver:
    """
    Resolve flag queries through a QueryExecutor.

    The resolver owns its connection provider when built via `from_settings`
    and releases it on `close()` / `async with` exit.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        on_query_error: QueryErrorPolicy = QueryErrorPolicy.RETURN_EMPTY,
        provider: Optional[ConnectionProvider] = None,
    ) -> None:
        self.executor = executor
        self.on_query_error = QueryErrorPolicy(on_query_error)
        self._provider = provider

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "FlagResolver":
        settings = settings or get_settings()
        provider = create_provider(settings)
        executor = QueryExecutor(provider, timeout_seconds=settings.query_timeout_seconds)
        return cls(executor, on_query_error=settings.on_query_error, provider=provider)

    async def close(self) -> None:
        if self._provider is not None:
            await self._provider.close()

    async def __aenter__(self) -> "FlagResolver":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _fetch(self, operation: str, statement: str, parameters: tuple = ()) -> Optional[List[FlagRow]]:
        try:
            return await self.executor.execute(statement, parameters)
        except QueryError:
            if self.on_query_error is QueryErrorPolicy.PROPAGATE:
                raise
            log.exception(
                f"[{operation}] query failed, returning no result",
                extra={"operation": operation},
            )
            return None

    async def list_all(self) -> Optional[List[FlagRecord]]:
        """
        Return every flag ordered by identifier, or None if the query failed
        under the `return-empty` policy.
        """
        rows = await self._fetch("list_all", LIST_ALL_SQL)
        if rows is None:
            return None
        return [to_flag_record(row) for row in rows]

    async def get_by_id(self, flag_id: Any) -> Optional[FlagRecord]:
        """
        Return the flag with `flag_id`, or None when it does not exist.

        Raises AmbiguousResultError if more than one row matches, regardless of
        the error policy.
        """
        rows = await self._fetch("get_by_id", GET_BY_ID_SQL, (flag_id,))
        if not rows:
            if rows is not None:
                log.info("Flag not found", extra={"flag_id": flag_id})
            return None
        if len(rows) > 1:
            log.error("Duplicate flag identifier", extra={"flag_id": flag_id})
            raise AmbiguousResultError(flag_id, len(rows))
        return to_flag_record(rows[0])


__all__ = ["FlagResolver", "GET_BY_ID_SQL", "LIST_ALL_SQL"]
