from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, TypeVar

import psycopg
import typer

from flagquery.config import get_settings
from flagquery.errors import FlagQueryError
from flagquery.infrastructure.db_factory import wait_for_database
from flagquery.resolvers import FlagResolver
from flagquery.utils.logging import configure_logging

app = typer.Typer(help="Read-only queries over the flag table.")

T = TypeVar("T")


def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _resolve(call: Callable[[FlagResolver], Awaitable[T]]) -> T:
    async def _run() -> T:
        async with FlagResolver.from_settings() as resolver:
            return await call(resolver)

    try:
        return asyncio.run(_run())
    except FlagQueryError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _dump(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    mode = "pool" if settings.db_pooling else "direct"
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"connections={mode} pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"timeout={settings.query_timeout_seconds}s on_query_error={settings.on_query_error.value}"
    )


@app.command()
def check() -> None:
    """
    Wait for the database to accept connections.
    """
    _setup()
    try:
        wait_for_database(settings=get_settings())
    except psycopg.OperationalError as exc:
        typer.echo(f"Database unreachable: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo("Database is ready.")


@app.command("list")
def list_flags() -> None:
    """
    Print every flag as JSON, ordered by id.
    """
    _setup()
    records = _resolve(lambda resolver: resolver.list_all())
    if records is None:
        _dump(None)
        return
    _dump([record.model_dump(by_alias=True) for record in records])


@app.command("get")
def get_flag(flag_id: str = typer.Argument(..., help="Identifier of the flag.")) -> None:
    """
    Print a single flag as JSON.
    """
    _setup()
    record = _resolve(lambda resolver: resolver.get_by_id(flag_id))
    if record is None:
        typer.echo(f"Flag {flag_id} not found.", err=True)
        raise typer.Exit(code=1)
    _dump(record.model_dump(by_alias=True))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
