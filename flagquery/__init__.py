"""
flagquery - read-only, database-backed resolution layer for the `flag` table.

Each query borrows one scoped PostgreSQL connection, runs a single
parameterized statement, maps rows onto immutable FlagRecord objects and hands
the connection back on every exit path. The package provides:

- A QueryExecutor with per-call deadlines and typed query errors
- Pooled (psycopg_pool) and connection-per-call providers
- FlagResolver with `list_all` / `get_by_id` and a configurable error policy
- Settings, structured logging and a small CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from flagquery.config import QueryErrorPolicy, Settings, get_settings
from flagquery.domain import FlagRecord, format_instant, parse_instant, to_flag_record
from flagquery.errors import (
    AmbiguousResultError,
    DatabaseConnectionError,
    FlagQueryError,
    QueryError,
    QueryTimeoutError,
    StatementError,
)
from flagquery.infrastructure import (
    DirectConnectionProvider,
    PooledConnectionProvider,
    QueryExecutor,
    create_provider,
)
from flagquery.resolvers import FlagResolver
from flagquery.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "QueryErrorPolicy",
    "Settings",
    "get_settings",
    # Domain
    "FlagRecord",
    "format_instant",
    "parse_instant",
    "to_flag_record",
    # Errors
    "AmbiguousResultError",
    "DatabaseConnectionError",
    "FlagQueryError",
    "QueryError",
    "QueryTimeoutError",
    "StatementError",
    # Execution
    "DirectConnectionProvider",
    "PooledConnectionProvider",
    "QueryExecutor",
    "create_provider",
    # Resolvers
    "FlagResolver",
    # Logging
    "configure_logging",
    "get_logger",
]
