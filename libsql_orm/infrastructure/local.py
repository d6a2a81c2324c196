"""
Embedded SQLite driver for ``file:`` and ``:memory:`` URLs, built on aiosqlite.

The connection runs in autocommit mode (``isolation_level=None``) so explicit
BEGIN / COMMIT / ROLLBACK statements behave as they do on the remote engine.
"""

from __future__ import annotations

import sqlite3
from typing import Any, List, Optional, Sequence

import aiosqlite

from libsql_orm.errors import OrmConnectionError, SqlError
from libsql_orm.infrastructure.base import AbstractDriver, DriverResult


def split_script(sql: str) -> List[str]:
    """Split a script into complete statements; semicolons inside literals are kept."""
    statements: List[str] = []
    buffer = ""
    for piece in sql.split(";"):
        buffer += piece + ";"
        if sqlite3.complete_statement(buffer):
            if buffer.strip().rstrip(";").strip():
                statements.append(buffer.strip())
            buffer = ""
    tail = buffer.strip().rstrip(";").strip()
    if tail:
        statements.append(tail)
    return statements


class LocalDriver(AbstractDriver):
    """One aiosqlite connection."""

    name: str = "local"

    def __init__(self, conn: aiosqlite.Connection, path: str) -> None:
        self._conn = conn
        self.path = path

    @classmethod
    async def open(cls, path: str, timeout: Optional[float] = None) -> "LocalDriver":
        kwargs: dict = {"isolation_level": None}
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            conn = await aiosqlite.connect(path, **kwargs)
        except sqlite3.Error as exc:
            raise OrmConnectionError(f"Cannot open database {path!r}: {exc}") from exc
        return cls(conn, path)

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> DriverResult:
        try:
            async with self._conn.execute(sql, tuple(params)) as cursor:
                rows = await cursor.fetchall()
                columns = [d[0] for d in cursor.description] if cursor.description else []
                return DriverResult(
                    columns=columns,
                    rows=[tuple(row) for row in rows],
                    rows_affected=max(cursor.rowcount, 0),
                    last_insert_rowid=cursor.lastrowid,
                )
        except sqlite3.Error as exc:
            raise SqlError(str(exc)) from exc

    async def execute_batch(self, sql: str) -> None:
        # One statement at a time: executescript() commits any open transaction.
        for statement in split_script(sql):
            await self.execute(statement)

    async def close(self) -> None:
        await self._conn.close()


__all__ = ["LocalDriver", "split_script"]
