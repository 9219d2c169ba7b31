"""
Pytest configuration for flagquery.

Provides fixtures for:
- Settings override for integration tests
- Database connection management
- Flag table schema and seeding
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import psycopg
import pytest

from flagquery.config import Settings
from flagquery.infrastructure.db_factory import build_dsn

SCHEMA_PATH = Path(__file__).parent.parent / "db" / "init.sql"

# Inserted out of order on purpose; list_all must return them sorted.
SEED_FLAGS = [
    (3, "rate_limit", 2, '{"rollout": 10}', datetime(2021, 6, 1, 12, 0, 0, tzinfo=UTC)),
    (1, "dark_mode", 1, '{"rollout": 50}', datetime(2020, 1, 2, 3, 4, 5, tzinfo=UTC)),
    (2, "beta_ui", 0, None, datetime(2020, 5, 17, 8, 30, 0, tzinfo=UTC)),
]


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        _env_file=None,
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "flags"),
        db_pool_max_size=4,
        query_timeout_seconds=5.0,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return build_dsn(test_settings)


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the flag table exists by applying db/init.sql.
    """
    db_connection.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
    db_connection.commit()
    return True


@pytest.fixture(scope="function")
def clean_flag_table(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty the flag table before and after each test function.
    """
    db_connection.execute("TRUNCATE TABLE public.flag;")
    db_connection.commit()
    yield
    db_connection.execute("TRUNCATE TABLE public.flag;")
    db_connection.commit()


@pytest.fixture(scope="function")
def seeded_flags(db_connection: psycopg.Connection, clean_flag_table) -> list[tuple]:
    """
    Seed three flags with identifiers {3, 1, 2}.

    Returns the seeded rows in insertion order.
    """
    with db_connection.cursor() as cur:
        cur.executemany(
            "INSERT INTO public.flag (flag_id, flag_code, state, flag_data, last_update) "
            "VALUES (%s, %s, %s, %s, %s)",
            SEED_FLAGS,
        )
    db_connection.commit()
    return SEED_FLAGS
