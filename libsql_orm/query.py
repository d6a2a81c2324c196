"""
Fluent SELECT / COUNT / DELETE builder.

The builder accumulates a table, projection, predicate tree, sort list,
window (LIMIT/OFFSET), optional aggregate, joins and GROUP BY columns, then
compiles them to SQL text plus the positional parameter list. Every builder
method mutates the instance and returns it, so calls chain:

    sql, params = (
        QueryBuilder("users")
        .select(["id", "email"])
        .where(Filter.eq("is_active", True))
        .order_by(Sort.desc("id"))
        .limit(10)
        .build()
    )

Column and table names are inserted as given; only values are parameterized.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from libsql_orm.errors import QueryError
from libsql_orm.filters import FilterLike, FilterOperator, Sort, as_operator
from libsql_orm.pagination import PaginatedResult, Pagination
from libsql_orm.types import Aggregate, JoinType, Value
from libsql_orm.utils.logging import get_logger

if TYPE_CHECKING:
    from libsql_orm.database import Database, ResultSet
    from libsql_orm.model import Model

M = TypeVar("M", bound="Model")

log = get_logger(__name__)


@dataclass(frozen=True)
class AggregateSpec:
    function: Aggregate
    column: str
    alias: Optional[str] = None

    def to_sql(self) -> str:
        expr = f"{self.function}({self.column})"
        return f"{expr} AS {self.alias}" if self.alias else expr


@dataclass(frozen=True)
class Join:
    join_type: JoinType
    table: str
    on: str

    def to_sql(self) -> str:
        return f"{self.join_type} {self.table} ON {self.on}"


class QueryBuilder:
    """Accumulates query state for one table and compiles it to SQL."""

    def __init__(self, table: str) -> None:
        self.table = table
        self.columns: List[str] = ["*"]
        self.predicate: Optional[FilterOperator] = None
        self.sorts: List[Sort] = []
        self.limit_value: Optional[int] = None
        self.offset_value: Optional[int] = None
        self.aggregate_spec: Optional[AggregateSpec] = None
        self.joins: List[Join] = []
        self.group_by_columns: List[str] = []
        self.distinct_flag = False

    # Builder methods

    def select(self, columns: Union[str, Sequence[str]]) -> "QueryBuilder":
        if isinstance(columns, str):
            columns = [columns]
        self.columns = list(columns) or ["*"]
        return self

    def where(self, condition: FilterLike) -> "QueryBuilder":
        """Set the predicate; a second call AND-combines with the first."""
        node = as_operator(condition)
        self.predicate = node if self.predicate is None else self.predicate.and_with(node)
        return self

    def order_by(self, sort: Sort) -> "QueryBuilder":
        self.sorts.append(sort)
        return self

    def order_by_multiple(self, sorts: Sequence[Sort]) -> "QueryBuilder":
        self.sorts.extend(sorts)
        return self

    def limit(self, count: int) -> "QueryBuilder":
        if count < 0:
            raise QueryError(f"LIMIT must be >= 0, got {count}")
        self.limit_value = int(count)
        return self

    def offset(self, count: int) -> "QueryBuilder":
        if count < 0:
            raise QueryError(f"OFFSET must be >= 0, got {count}")
        self.offset_value = int(count)
        return self

    def aggregate(
        self, function: Aggregate, column: str = "*", alias: Optional[str] = None
    ) -> "QueryBuilder":
        self.aggregate_spec = AggregateSpec(function, column, alias)
        return self

    def join(self, join_type: JoinType, table: str, on: str) -> "QueryBuilder":
        self.joins.append(Join(join_type, table, on))
        return self

    def group_by(self, columns: Union[str, Sequence[str]]) -> "QueryBuilder":
        if isinstance(columns, str):
            columns = [columns]
        self.group_by_columns.extend(columns)
        return self

    def distinct(self, flag: bool = True) -> "QueryBuilder":
        self.distinct_flag = flag
        return self

    def clone(self) -> "QueryBuilder":
        cloned = copy.copy(self)
        cloned.columns = list(self.columns)
        cloned.sorts = list(self.sorts)
        cloned.joins = list(self.joins)
        cloned.group_by_columns = list(self.group_by_columns)
        return cloned

    # Compilation

    def _projection(self) -> str:
        if self.aggregate_spec is None:
            return ", ".join(self.columns)
        # Plain columns only accompany an aggregate when they are explicit.
        parts = [c for c in self.columns if c != "*"]
        parts.append(self.aggregate_spec.to_sql())
        return ", ".join(parts)

    def _from_where(self) -> Tuple[str, List[Value]]:
        sql = f" FROM {self.table}"
        for join in self.joins:
            sql += f" {join.to_sql()}"
        params: List[Value] = []
        if self.predicate is not None:
            where_sql, params = self.predicate.to_sql()
            sql += f" WHERE {where_sql}"
        return sql, params

    def _select(self, windowed: bool) -> Tuple[str, List[Value]]:
        keyword = "SELECT DISTINCT" if self.distinct_flag else "SELECT"
        from_where, params = self._from_where()
        sql = f"{keyword} {self._projection()}{from_where}"

        if self.group_by_columns:
            sql += f" GROUP BY {', '.join(self.group_by_columns)}"

        if not windowed:
            return sql, params

        if self.sorts:
            sql += f" ORDER BY {', '.join(s.to_sql() for s in self.sorts)}"

        if self.limit_value is not None:
            sql += f" LIMIT {self.limit_value}"
        elif self.offset_value is not None:
            # SQLite only accepts OFFSET after a LIMIT; -1 means unbounded.
            sql += " LIMIT -1"
        if self.offset_value is not None:
            sql += f" OFFSET {self.offset_value}"

        return sql, params

    def build(self) -> Tuple[str, List[Value]]:
        """
        Compile the full SELECT.

        Returns
        -------
        tuple[str, list[Value]]
            SQL text with ``?`` placeholders and the matching parameters.
        """
        return self._select(windowed=True)

    def build_count(self) -> Tuple[str, List[Value]]:
        """
        Compile ``SELECT COUNT(*)`` over the same predicate.

        Projection, sort and window are ignored. DISTINCT and GROUP BY change
        what a row is, so those queries are counted through a subquery.
        """
        if self.distinct_flag or self.group_by_columns:
            inner, params = self._select(windowed=False)
            return f"SELECT COUNT(*) FROM ({inner})", params
        from_where, params = self._from_where()
        return f"SELECT COUNT(*){from_where}", params

    def build_delete(self) -> Tuple[str, List[Value]]:
        """Compile ``DELETE FROM <table> [WHERE ...]`` over the same predicate."""
        if self.joins:
            raise QueryError("DELETE cannot be built from a query with joins")
        sql = f"DELETE FROM {self.table}"
        params: List[Value] = []
        if self.predicate is not None:
            where_sql, params = self.predicate.to_sql()
            sql += f" WHERE {where_sql}"
        return sql, params

    # Execution

    async def execute(self, db: "Database", model: Type[M]) -> List[M]:
        """Run `build()` and convert every row into `model`; one bad row fails the fetch."""
        sql, params = self.build()
        log.debug("query: %s", sql)
        result = await db.query(sql, params)
        return [model.from_map(row) for row in result.rows]

    async def execute_count(self, db: "Database") -> int:
        sql, params = self.build_count()
        log.debug("count: %s", sql)
        result = await db.query(sql, params)
        return result.scalar_int()

    async def execute_paginated(
        self, db: "Database", model: Type[M], pagination: Pagination
    ) -> PaginatedResult[M]:
        """Count first, then fetch the requested page; the builder itself is left unchanged."""
        total = await self.execute_count(db)
        page_query = self.clone().limit(pagination.limit()).offset(pagination.offset())
        data = await page_query.execute(db, model)
        return PaginatedResult.with_total(data, pagination, total)

    async def execute_raw(self, db: "Database") -> "ResultSet":
        """Run `build()` and return the rows as column-name to Value maps."""
        sql, params = self.build()
        log.debug("raw query: %s", sql)
        return await db.query(sql, params)

    def __repr__(self) -> str:
        sql, params = self.build()
        return f"QueryBuilder({sql!r}, params={params!r})"


__all__ = ["QueryBuilder", "AggregateSpec", "Join"]
