from __future__ import annotations

import asyncio
import importlib
import sys
from typing import List, Optional, Type

import typer

from libsql_orm.config import get_settings
from libsql_orm.database import Database, ExecuteResult
from libsql_orm.errors import OrmError
from libsql_orm.migrations import MigrationManager, generate_migration
from libsql_orm.model import Model
from libsql_orm.reporter import print_execute_result, print_migrations, print_result_set
from libsql_orm.utils.logging import configure_logging

app = typer.Typer(help="libsql-orm CLI.")

def _mask_token(token: Optional[str]) -> str:
    if not token:
        return "<none>"
    return token[:4] + "..." if len(token) > 8 else "****"


def _load_model(target: str) -> Type[Model]:
    """Resolve ``package.module:ClassName`` to a Model subclass."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:Model', got {target!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {exc}") from exc
    model = getattr(module, attr, None)
    if not (isinstance(model, type) and issubclass(model, Model)):
        raise typer.BadParameter(f"{target!r} is not a Model subclass")
    return model


def _setup_logging() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"URL={settings.database_url} | token={_mask_token(settings.auth_token)} | "
        f"timeout={settings.http_timeout_seconds} | per_page={settings.default_per_page} | "
        f"env={settings.app_env} log={settings.log_level}"
    )


@app.command()
def migrate(
    models: List[str] = typer.Argument(..., help="Models to migrate, as 'package.module:ClassName'."),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Database URL (default from settings)."),
) -> None:
    """
    Create tables for the given models, skipping migrations already applied.
    """
    _setup_logging()
    model_types = [_load_model(target) for target in models]
    migrations = [generate_migration(model) for model in model_types]

    async def _run():
        async with await Database.connect(url) as db:
            manager = MigrationManager(db)
            await manager.init()
            return await manager.run_migrations(migrations)

    try:
        applied = asyncio.run(_run())
    except OrmError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    applied_names = {m.name for m in applied}
    skipped = [m.name for m in migrations if m.name not in applied_names]
    print_migrations(applied, skipped)


@app.command()
def sql(
    statement: str = typer.Argument(..., help="SQL statement to run."),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Database URL (default from settings)."),
) -> None:
    """
    Run one SQL statement and print its rows or its affected-row count.
    """
    _setup_logging()

    async def _run():
        async with await Database.connect(url) as db:
            rows = await db.query(statement)
            if rows.columns:
                return rows
            # No projection: report the write counters of the same connection.
            counters = await db.query("SELECT changes() AS affected, last_insert_rowid() AS rowid")
            row = counters.rows[0]
            return ExecuteResult(
                rows_affected=row["affected"].payload,
                last_insert_rowid=row["rowid"].payload or None,
            )

    try:
        result = asyncio.run(_run())
    except OrmError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    if isinstance(result, ExecuteResult):
        print_execute_result(result)
    else:
        print_result_set(result)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
