"""
Error taxonomy for flagquery.

`QueryError` and its subclasses wrap failures coming from the database layer
and always carry the underlying exception as `cause`. Resolvers decide, based
on the configured `QueryErrorPolicy`, whether these degrade to an absent result
or propagate. `AmbiguousResultError` is a data-integrity failure and is never
degraded.
"""

from __future__ import annotations

from typing import Any, Optional


class FlagQueryError(Exception):
    """Base class for every error raised by flagquery."""


class QueryError(FlagQueryError):
    """A statement could not be executed against the database."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class DatabaseConnectionError(QueryError):
    """A connection could not be acquired or opened."""


class StatementError(QueryError):
    """The database rejected or failed the statement."""


class QueryTimeoutError(QueryError):
    """The statement did not complete before its deadline."""


class AmbiguousResultError(FlagQueryError):
    """A single-record lookup matched more than one row."""

    def __init__(self, identifier: Any, count: int) -> None:
        super().__init__(f"Lookup for id={identifier!r} matched at least {count} rows, expected at most 1")
        self.identifier = identifier
        self.count = count


__all__ = [
    "AmbiguousResultError",
    "DatabaseConnectionError",
    "FlagQueryError",
    "QueryError",
    "QueryTimeoutError",
    "StatementError",
]
