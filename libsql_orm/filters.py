"""
Predicate trees, text search and sort specifications.

A WHERE clause is described as a tree of `FilterOperator` nodes:

    Single(Filter)   one column comparison
    And([...])       parenthesized conjunction
    Or([...])        parenthesized disjunction
    Not(node)        NOT (...)
    Custom(sql)      raw SQL inserted verbatim (caller trusted)

`node.to_sql()` compiles the tree to SQL text plus the ordered list of `Value`
parameters; every literal is bound as a ``?`` placeholder.

Usage:
    from libsql_orm.filters import Filter, SearchFilter

    adults = Filter.ge("age", 18) & Filter.eq("is_active", True)
    sql, params = adults.to_sql()   # "(age >= ? AND is_active = ?)"
    text = SearchFilter("ann", ["name", "email"]).to_filter_operator()
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence, Tuple, Union

from libsql_orm.errors import QueryError
from libsql_orm.types import Operator, SortOrder, Value

# Renderings for degenerate groups: empty AND / NOT IN match everything,
# empty OR / IN match nothing.
ALWAYS_TRUE = "1=1"
ALWAYS_FALSE = "1=0"

Compiled = Tuple[str, List[Value]]


@dataclass(frozen=True)
class SingleValue:
    value: Value


@dataclass(frozen=True)
class MultipleValues:
    values: Tuple[Value, ...]


@dataclass(frozen=True)
class RangeValue:
    low: Value
    high: Value


FilterValue = Union[SingleValue, MultipleValues, RangeValue]


@dataclass(frozen=True)
class Filter:
    """
    One comparison between a column and a value.

    The operator and the value shape must agree: IN / NOT IN take
    `MultipleValues`, BETWEEN / NOT BETWEEN take `RangeValue`, IS [NOT] NULL
    ignore the value. Disagreement is reported as `QueryError` when the filter
    is compiled, not when it is constructed.
    """

    column: str
    operator: Operator
    value: FilterValue = field(default_factory=lambda: SingleValue(Value.null()))

    @classmethod
    def new_simple(cls, column: str, operator: Operator, value: Any) -> "Filter":
        return cls(column, operator, SingleValue(Value.of(value)))

    @classmethod
    def eq(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.EQ, value)

    @classmethod
    def ne(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.NE, value)

    @classmethod
    def lt(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.LT, value)

    @classmethod
    def le(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.LE, value)

    @classmethod
    def gt(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.GT, value)

    @classmethod
    def ge(cls, column: str, value: Any) -> "Filter":
        return cls.new_simple(column, Operator.GE, value)

    @classmethod
    def like(cls, column: str, pattern: str) -> "Filter":
        """LIKE filter; wildcards in `pattern` are the caller's responsibility."""
        return cls(column, Operator.LIKE, SingleValue(Value.text(pattern)))

    @classmethod
    def not_like(cls, column: str, pattern: str) -> "Filter":
        return cls(column, Operator.NOT_LIKE, SingleValue(Value.text(pattern)))

    @classmethod
    def in_values(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, Operator.IN, MultipleValues(tuple(Value.of(v) for v in values)))

    @classmethod
    def not_in_values(cls, column: str, values: Iterable[Any]) -> "Filter":
        return cls(column, Operator.NOT_IN, MultipleValues(tuple(Value.of(v) for v in values)))

    @classmethod
    def is_null(cls, column: str) -> "Filter":
        return cls(column, Operator.IS_NULL)

    @classmethod
    def is_not_null(cls, column: str) -> "Filter":
        return cls(column, Operator.IS_NOT_NULL)

    @classmethod
    def between(cls, column: str, low: Any, high: Any) -> "Filter":
        return cls(column, Operator.BETWEEN, RangeValue(Value.of(low), Value.of(high)))

    @classmethod
    def not_between(cls, column: str, low: Any, high: Any) -> "Filter":
        return cls(column, Operator.NOT_BETWEEN, RangeValue(Value.of(low), Value.of(high)))

    def to_sql(self) -> Compiled:
        op = self.operator
        if op in (Operator.IS_NULL, Operator.IS_NOT_NULL):
            return f"{self.column} {op}", []

        if op in (Operator.IN, Operator.NOT_IN):
            values = self._expect(MultipleValues).values
            if not values:
                return (ALWAYS_FALSE if op is Operator.IN else ALWAYS_TRUE), []
            placeholders = ", ".join("?" for _ in values)
            return f"{self.column} {op} ({placeholders})", list(values)

        if op in (Operator.BETWEEN, Operator.NOT_BETWEEN):
            bounds = self._expect(RangeValue)
            return f"{self.column} {op} ? AND ?", [bounds.low, bounds.high]

        return f"{self.column} {op} ?", [self._expect(SingleValue).value]

    def _expect(self, shape: type) -> Any:
        if not isinstance(self.value, shape):
            raise QueryError(
                f"Operator {self.operator} on column '{self.column}' requires "
                f"{shape.__name__}, got {type(self.value).__name__}"
            )
        return self.value

    def to_operator(self) -> "Single":
        return Single(self)

    def __and__(self, other: "FilterLike") -> "And":
        return self.to_operator().and_with(other)

    def __or__(self, other: "FilterLike") -> "Or":
        return self.to_operator().or_with(other)

    def __invert__(self) -> "Not":
        return Not(self.to_operator())


class FilterOperator(abc.ABC):
    """Node of a predicate tree."""

    @abc.abstractmethod
    def to_sql(self) -> Compiled:
        """Compile to (sql, params)."""
        raise NotImplementedError

    @staticmethod
    def and_(filters: Iterable["FilterLike"]) -> "And":
        return And(filters)

    @staticmethod
    def or_(filters: Iterable["FilterLike"]) -> "Or":
        return Or(filters)

    @staticmethod
    def negate(node: "FilterLike") -> "Not":
        return Not(node)

    def and_with(self, other: "FilterLike") -> "And":
        """Append to this AND group, or start a new one; never nests AND in AND."""
        if isinstance(self, And):
            return And([*self.filters, other])
        return And([self, other])

    def or_with(self, other: "FilterLike") -> "Or":
        """Append to this OR group, or start a new one; never nests OR in OR."""
        if isinstance(self, Or):
            return Or([*self.filters, other])
        return Or([self, other])

    def __and__(self, other: "FilterLike") -> "And":
        return self.and_with(other)

    def __or__(self, other: "FilterLike") -> "Or":
        return self.or_with(other)

    def __invert__(self) -> "Not":
        return Not(self)


FilterLike = Union[Filter, FilterOperator]


def as_operator(node: FilterLike) -> FilterOperator:
    """Accept a bare `Filter` wherever a tree node is expected."""
    if isinstance(node, Filter):
        return Single(node)
    if isinstance(node, FilterOperator):
        return node
    raise QueryError(f"Expected Filter or FilterOperator, got {type(node).__name__}")


@dataclass(frozen=True)
class Single(FilterOperator):
    filter: Filter

    def to_sql(self) -> Compiled:
        return self.filter.to_sql()


class _Group(FilterOperator):
    joiner: str = ""
    empty: str = ""

    def __init__(self, filters: Iterable[FilterLike] = ()) -> None:
        self.filters: Tuple[FilterOperator, ...] = tuple(as_operator(f) for f in filters)

    def to_sql(self) -> Compiled:
        if not self.filters:
            return self.empty, []
        parts: List[str] = []
        params: List[Value] = []
        for node in self.filters:
            sql, node_params = node.to_sql()
            # Raw SQL may carry its own AND/OR; keep it one operand.
            parts.append(f"({sql})" if isinstance(node, Custom) else sql)
            params.extend(node_params)
        return "(" + f" {self.joiner} ".join(parts) + ")", params

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.filters == other.filters  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.filters))

    def __len__(self) -> int:
        return len(self.filters)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.filters)!r})"


class And(_Group):
    joiner = "AND"
    empty = ALWAYS_TRUE


class Or(_Group):
    joiner = "OR"
    empty = ALWAYS_FALSE


class Not(FilterOperator):
    def __init__(self, inner: FilterLike) -> None:
        self.inner = as_operator(inner)

    def to_sql(self) -> Compiled:
        sql, params = self.inner.to_sql()
        return f"NOT ({sql})", params

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Not) and self.inner == other.inner

    def __hash__(self) -> int:
        return hash(("Not", self.inner))

    def __repr__(self) -> str:
        return f"Not({self.inner!r})"


@dataclass(frozen=True)
class Custom(FilterOperator):
    """
    Raw SQL condition, inserted as-is and contributing no parameters.

    Inside an And / Or group the text is wrapped in parentheses so its own
    operators cannot bind to its siblings.
    """

    sql: str

    def to_sql(self) -> Compiled:
        return self.sql, []


@dataclass
class SearchFilter:
    """
    Free-text search across one or more columns.

    Each column gets a LIKE ``%query%`` condition (an equality when
    `exact_match` is set) and the conditions are OR-ed together. A single
    column yields the bare condition without an OR wrapper.

    `case_sensitive` is carried for callers but does not change the SQL:
    no case-folding function is applied.
    """

    query: str
    columns: List[str]
    case_sensitive: bool = False
    exact_match: bool = False

    def __post_init__(self) -> None:
        self.columns = list(self.columns)

    @classmethod
    def single_field(cls, column: str, query: str) -> "SearchFilter":
        return cls(query, [column])

    @classmethod
    def multiple_fields(cls, columns: Sequence[str], query: str) -> "SearchFilter":
        return cls(query, list(columns))

    def to_filter_operator(self) -> FilterOperator:
        conditions: List[FilterOperator] = []
        for column in self.columns:
            if self.exact_match:
                condition = Filter.eq(column, self.query)
            else:
                condition = Filter.like(column, f"%{self.query}%")
            conditions.append(Single(condition))

        if len(conditions) == 1:
            return conditions[0]
        return Or(conditions)


@dataclass(frozen=True)
class Sort:
    column: str
    order: SortOrder = SortOrder.ASC

    @classmethod
    def asc(cls, column: str) -> "Sort":
        return cls(column, SortOrder.ASC)

    @classmethod
    def desc(cls, column: str) -> "Sort":
        return cls(column, SortOrder.DESC)

    @classmethod
    def from_bool(cls, column: str, ascending: bool) -> "Sort":
        return cls(column, SortOrder.ASC if ascending else SortOrder.DESC)

    def to_sql(self) -> str:
        return f"{self.column} {self.order}"


__all__ = [
    "Filter",
    "FilterValue",
    "SingleValue",
    "MultipleValues",
    "RangeValue",
    "FilterOperator",
    "FilterLike",
    "Single",
    "And",
    "Or",
    "Not",
    "Custom",
    "as_operator",
    "SearchFilter",
    "Sort",
    "ALWAYS_TRUE",
    "ALWAYS_FALSE",
]
