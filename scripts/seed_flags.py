"""
Seed script for the flag table.

Creates the schema from `db/init.sql` and inserts deterministic pseudo-random
flags, so local runs and integration tests see the same data for a given seed.
"""

from __future__ import annotations

import json
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import psycopg
import typer

from flagquery.infrastructure.db_factory import build_dsn, wait_for_database

app = typer.Typer(help="Create the flag table and load deterministic sample flags.")

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "db" / "init.sql"
INSERT_SQL = (
    "INSERT INTO public.flag (flag_id, flag_code, state, flag_data, last_update) "
    "VALUES (%s, %s, %s, %s, %s)"
)
_EPOCH = datetime(2020, 1, 1, tzinfo=UTC)


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _generate_flags(count: int, seed: int) -> list[tuple[Any, ...]]:
    rng = random.Random(seed)
    codes = ["maintenance", "beta_ui", "dark_mode", "new_checkout", "rate_limit"]
    rows: list[tuple[Any, ...]] = []
    for flag_id in range(1, count + 1):
        payload = {
            "rollout": rng.randint(0, 100),
            "owner": rng.choice(["web", "mobile", "platform"]),
        }
        rows.append(
            (
                flag_id,
                f"{rng.choice(codes)}_{flag_id}",
                rng.choice([0, 1, 2]),
                json.dumps(payload),
                _EPOCH + timedelta(minutes=rng.randint(0, 500_000)),
            )
        )
    return rows


def _apply_schema(conn: psycopg.Connection) -> None:
    conn.execute(SCHEMA_PATH.read_text(encoding="utf-8"))


def _insert_flags(dsn: str, rows: list[tuple[Any, ...]], reset: bool) -> int:
    with psycopg.connect(dsn) as conn:
        _apply_schema(conn)
        with conn.cursor() as cur:
            if reset:
                cur.execute("TRUNCATE TABLE public.flag")
            cur.executemany(INSERT_SQL, rows)
        conn.commit()
    return len(rows)


@app.command()
def main(
    count: int = typer.Option(
        10,
        "--count",
        "-n",
        help="Number of flags to generate.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Truncate the flag table before inserting.",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print the generated flags instead of inserting them.",
    ),
) -> None:
    """
    Generate sample flags and insert them into Postgres.
    """
    rows = _generate_flags(count, seed)
    if dry_run:
        for row in rows:
            typer.echo(" | ".join(str(value) for value in row))
        return

    conn_dsn = _build_dsn(dsn)
    typer.echo("Waiting for database...")
    wait_for_database(conn_dsn)
    inserted = _insert_flags(conn_dsn, rows, reset=reset)
    typer.echo(f"Inserted {inserted} flag(s) (seed={seed}, reset={reset}).")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
