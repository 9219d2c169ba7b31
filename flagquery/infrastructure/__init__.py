"""
Infrastructure package for flagquery.

Centralizes database connectivity concerns (connection providers, pooling,
statement execution). Keep this layer focused on I/O and resource management,
decoupled from the flag resolvers.
"""

from flagquery.infrastructure.db_factory import (
    ConnectionProvider,
    DirectConnectionProvider,
    PooledConnectionProvider,
    build_dsn,
    create_provider,
    wait_for_database,
)
from flagquery.infrastructure.executor import QueryExecutor

__all__ = [
    "ConnectionProvider",
    "DirectConnectionProvider",
    "PooledConnectionProvider",
    "QueryExecutor",
    "build_dsn",
    "create_provider",
    "wait_for_database",
]
