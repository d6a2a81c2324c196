from __future__ import annotations

from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from libsql_orm.database import ExecuteResult, ResultSet
from libsql_orm.migrations import Migration
from libsql_orm.types import Value, ValueType

_VALUE_STYLES = {
    ValueType.NULL: "dim",
    ValueType.INTEGER: "magenta",
    ValueType.REAL: "magenta",
    ValueType.BOOLEAN: "blue",
    ValueType.BLOB: "yellow",
}


def format_value(value: Value) -> str:
    """Render one cell for display; blobs are summarized by size."""
    if value.type is ValueType.NULL:
        return "NULL"
    if value.type is ValueType.BLOB:
        return f"<blob {len(value.payload)} bytes>"
    return str(value.payload)


def build_result_table(result: ResultSet, title: Optional[str] = None) -> Table:
    table = Table(
        title=title,
        box=box.ROUNDED,
        caption=f"{len(result)} row(s)",
    )
    for column in result.columns:
        table.add_column(column, style="cyan" if column == "id" else None, no_wrap=True)

    for row in result.rows:
        cells = []
        for column in result.columns:
            value = row.get(column, Value.null())
            style = _VALUE_STYLES.get(value.type)
            text = format_value(value)
            cells.append(f"[{style}]{text}[/{style}]" if style else text)
        table.add_row(*cells)
    return table


def print_result_set(result: ResultSet, title: Optional[str] = None, console: Optional[Console] = None) -> None:
    """
    Render query rows as a rich table.

    A statement that returned no columns (DDL/DML) prints a short notice instead.
    """
    console = console or Console()
    if not result.columns:
        console.print("[yellow]Statement returned no rows.[/yellow]")
        return
    console.print(build_result_table(result, title))


def print_execute_result(result: ExecuteResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    line = f"[green]OK[/green] rows affected: {result.rows_affected}"
    if result.last_insert_rowid is not None:
        line += f", last insert rowid: {result.last_insert_rowid}"
    console.print(line)


def print_migrations(
    applied: Sequence[Migration], skipped: Sequence[str] = (), console: Optional[Console] = None
) -> None:
    console = console or Console()
    if not applied and not skipped:
        console.print("[yellow]No migrations to run.[/yellow]")
        return

    table = Table(title="Migrations", box=box.ROUNDED)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Executed at", style="green")

    rows: List[tuple] = []
    for migration in applied:
        executed = migration.executed_at.isoformat(timespec="seconds") if migration.executed_at else "-"
        rows.append((migration.name, "[bold green]applied[/bold green]", executed))
    for name in skipped:
        rows.append((name, "[dim]skipped[/dim]", "-"))

    for row in rows:
        table.add_row(*row)
    console.print(table)


__all__ = [
    "format_value",
    "build_result_table",
    "print_result_set",
    "print_execute_result",
    "print_migrations",
]
