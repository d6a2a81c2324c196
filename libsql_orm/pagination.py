"""
Offset- and cursor-based windowing descriptors and their result wrappers.

`Pagination` drives LIMIT/OFFSET queries and is filled in with totals after a
COUNT query. `CursorPagination` only carries opaque caller-supplied tokens;
nothing here interprets a cursor.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Callable, Generic, Iterator, List, Optional, TypeVar

from libsql_orm.errors import PaginationError

T = TypeVar("T")
U = TypeVar("U")

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 20


@dataclass
class Pagination:
    """
    Page-number window over a result set.

    Parameters
    ----------
    page : int
        1-based page number.
    per_page : int
        Items per page, strictly positive.
    total : int, optional
        Total item count, set by `set_total` once the count query ran.
    total_pages : int, optional
        ``ceil(total / per_page)``, derived by `set_total`.
    """

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE
    total: Optional[int] = None
    total_pages: Optional[int] = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise PaginationError(f"page must be >= 1, got {self.page}")
        if self.per_page < 1:
            raise PaginationError(f"per_page must be > 0, got {self.per_page}")
        if self.total is not None:
            self.set_total(self.total)

    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    def limit(self) -> int:
        return self.per_page

    def set_total(self, total: int) -> None:
        if total < 0:
            raise PaginationError(f"total must be >= 0, got {total}")
        self.total = total
        self.total_pages = math.ceil(total / self.per_page)

    def has_next(self) -> bool:
        if self.total_pages is None:
            return False
        return self.page < self.total_pages

    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def start_item(self) -> int:
        return self.offset() + 1

    @property
    def end_item(self) -> int:
        end = self.page * self.per_page
        if self.total is not None:
            return min(end, self.total)
        return end

    @property
    def next_page(self) -> Optional[int]:
        return self.page + 1 if self.has_next() else None

    @property
    def prev_page(self) -> Optional[int]:
        return self.page - 1 if self.has_prev() else None


@dataclass
class PaginatedResult(Generic[T]):
    data: List[T]
    pagination: Pagination

    @classmethod
    def with_total(cls, data: List[T], pagination: Pagination, total: int) -> "PaginatedResult[T]":
        pagination = replace(pagination)
        pagination.set_total(total)
        return cls(data, pagination)

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[T]:
        return iter(self.data)

    def is_empty(self) -> bool:
        return not self.data

    def map(self, func: Callable[[T], U]) -> "PaginatedResult[U]":
        return PaginatedResult([func(item) for item in self.data], self.pagination)


@dataclass
class CursorPagination:
    """Opaque-token window. `has_prev` is set when a cursor is supplied."""

    limit: int = DEFAULT_PER_PAGE
    cursor: Optional[str] = None
    include_cursor: bool = False
    has_next: bool = False
    has_prev: bool = False
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    total: Optional[int] = None

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise PaginationError(f"limit must be > 0, got {self.limit}")

    @classmethod
    def with_cursor(cls, limit: int, cursor: Optional[str]) -> "CursorPagination":
        return cls(limit=limit, cursor=cursor, has_prev=cursor is not None)

    def set_cursor(self, cursor: Optional[str]) -> None:
        self.cursor = cursor


@dataclass
class CursorPaginatedResult(Generic[T]):
    data: List[T] = field(default_factory=list)
    pagination: CursorPagination = field(default_factory=CursorPagination)

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[T]:
        return iter(self.data)


__all__ = [
    "Pagination",
    "PaginatedResult",
    "CursorPagination",
    "CursorPaginatedResult",
    "DEFAULT_PER_PAGE",
]
