"""
The live database handle.

`Database` owns one driver (one logical connection) and exposes the two
primitives everything else is built on:

- `execute(sql, params)` for statements, returning the affected-row count and
  the last insert identity;
- `query(sql, params)` for row-returning statements, returning a `ResultSet`
  of column-name to `Value` maps.

Parameters may be `Value` objects or plain Python values; both are bound as
positional ``?`` parameters. There is no pool and no retry, and access is not
serialized: callers sharing a `Database` across tasks must coordinate
themselves (e.g. with an `asyncio.Lock`).

Usage:
    async with await Database.connect("file::memory:") as db:
        await db.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        await db.execute("INSERT INTO t (name) VALUES (?)", ["a"])
        rows = (await db.query("SELECT * FROM t")).rows
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Iterator, List, Optional, Sequence

from libsql_orm.config import Settings, get_settings
from libsql_orm.errors import OrmConnectionError, OrmError, QueryError
from libsql_orm.infrastructure.base import AbstractDriver
from libsql_orm.infrastructure.db_factory import open_driver
from libsql_orm.types import Row, Value, ValueType
from libsql_orm.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class ExecuteResult:
    rows_affected: int = 0
    last_insert_rowid: Optional[int] = None


@dataclass
class ResultSet:
    """Rows returned by `Database.query`, in engine order."""

    columns: List[str] = field(default_factory=list)
    rows: List[Row] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def first(self) -> Optional[Row]:
        return self.rows[0] if self.rows else None

    def scalar(self) -> Value:
        """First cell of the first row; NULL when there are no rows."""
        row = self.first()
        if not row or not self.columns:
            return Value.null()
        return row[self.columns[0]]

    def scalar_int(self) -> int:
        value = self.scalar()
        if value.type is ValueType.INTEGER:
            return value.payload
        if value.type is ValueType.REAL:
            return int(value.payload)
        raise QueryError(f"Expected an integer result, got {value!r}")


def _bind(params: Sequence[Any]) -> List[Any]:
    return [Value.of(p).to_storage() for p in params]


class Database:
    """One logical connection to a libSQL / SQLite engine."""

    def __init__(self, driver: AbstractDriver, url: Optional[str] = None) -> None:
        self._driver = driver
        self.url = url
        self._closed = False
        self._in_transaction = False

    @classmethod
    async def connect(
        cls,
        url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "Database":
        """
        Open a connection and verify it with ``SELECT 1``.

        Raises
        ------
        OrmConnectionError
            When the URL is unsupported or the probe fails.
        """
        url = url or get_settings().database_url
        driver = await open_driver(url, auth_token=auth_token, timeout=timeout)
        db = cls(driver, url)
        try:
            await db.query("SELECT 1")
        except OrmError as exc:
            await driver.close()
            if isinstance(exc, OrmConnectionError):
                raise
            raise OrmConnectionError(f"Probe query failed: {exc.message}") from exc
        log.info("Connected using %s driver", driver.name)
        return db

    @classmethod
    async def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return await cls.connect(
            settings.database_url,
            auth_token=settings.auth_token,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def driver(self) -> AbstractDriver:
        return self._driver

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def _ensure_open(self) -> None:
        if self._closed:
            raise OrmConnectionError("Database connection is closed")

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        """Run a statement; returns affected rows and the last insert identity."""
        self._ensure_open()
        log.debug("execute: %s", sql)
        result = await self._driver.execute(sql, _bind(params))
        return ExecuteResult(result.rows_affected, result.last_insert_rowid)

    async def execute_batch(self, sql: str) -> None:
        """Run a multi-statement script; no parameters, no results."""
        self._ensure_open()
        log.debug("batch: %s", sql)
        await self._driver.execute_batch(sql)

    async def query(self, sql: str, params: Sequence[Any] = ()) -> ResultSet:
        """Run a row-returning statement; every cell becomes a `Value`."""
        self._ensure_open()
        log.debug("query: %s", sql)
        result = await self._driver.execute(sql, _bind(params))
        rows = [
            {column: Value.from_storage(cell) for column, cell in zip(result.columns, raw)}
            for raw in result.rows
        ]
        return ResultSet(columns=list(result.columns), rows=rows)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """
        BEGIN on entry, COMMIT on success, ROLLBACK and re-raise on error.

        A failing COMMIT is rolled back as well, so the connection never stays
        inside a half-finished transaction. Nested use joins the outer
        transaction instead of opening a new one.
        """
        if self._in_transaction:
            yield self
            return

        await self.execute("BEGIN")
        self._in_transaction = True
        try:
            try:
                yield self
            except BaseException:
                await self._rollback()
                raise
            try:
                await self.execute("COMMIT")
            except OrmError:
                # A failed COMMIT (deferred constraint, busy engine) leaves the transaction open.
                await self._rollback()
                raise
        finally:
            self._in_transaction = False

    async def _rollback(self) -> None:
        try:
            await self.execute("ROLLBACK")
        except OrmError as rollback_exc:
            log.error("ROLLBACK failed: %s", rollback_exc)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._driver.close()

    async def __aenter__(self) -> "Database":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


__all__ = ["Database", "ExecuteResult", "ResultSet"]
