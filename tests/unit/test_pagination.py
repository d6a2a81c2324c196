from __future__ import annotations

import math

import pytest

from libsql_orm.errors import PaginationError
from libsql_orm.pagination import (
    CursorPaginatedResult,
    CursorPagination,
    PaginatedResult,
    Pagination,
)

PAGE = 2
PER_PAGE = 10
TOTAL = 45
EXPECTED_PAGES = 5


def test_second_page_of_forty_five_items() -> None:
    pagination = Pagination(PAGE, PER_PAGE)
    pagination.set_total(TOTAL)

    assert pagination.offset() == 10
    assert pagination.limit() == PER_PAGE
    assert pagination.total_pages == EXPECTED_PAGES
    assert pagination.has_prev()
    assert pagination.has_next()
    assert pagination.next_page == 3
    assert pagination.prev_page == 1
    assert pagination.start_item == 11
    assert pagination.end_item == 20


@pytest.mark.parametrize("page", [1, 2, 3, 7])
@pytest.mark.parametrize("per_page", [1, 3, 10])
@pytest.mark.parametrize("total", [0, 1, 9, 10, 31])
def test_window_arithmetic_holds_for_any_page(page: int, per_page: int, total: int) -> None:
    pagination = Pagination(page, per_page)
    pagination.set_total(total)

    assert pagination.offset() == (page - 1) * per_page
    assert pagination.total_pages == math.ceil(total / per_page)
    assert pagination.has_next() == (page < pagination.total_pages)
    assert pagination.has_prev() == (page > 1)


def test_has_next_is_false_before_total_is_known() -> None:
    pagination = Pagination(1, 5)
    assert pagination.total_pages is None
    assert not pagination.has_next()
    assert pagination.next_page is None


def test_last_page_end_item_is_clamped_to_total() -> None:
    pagination = Pagination(5, PER_PAGE, total=TOTAL)
    assert pagination.total_pages == EXPECTED_PAGES
    assert pagination.end_item == TOTAL
    assert not pagination.has_next()


@pytest.mark.parametrize("page, per_page", [(0, 10), (1, 0), (-1, 5)])
def test_invalid_windows_are_rejected(page: int, per_page: int) -> None:
    with pytest.raises(PaginationError):
        Pagination(page, per_page)


def test_defaults_are_first_page_of_twenty() -> None:
    pagination = Pagination()
    assert (pagination.page, pagination.per_page) == (1, 20)


def test_paginated_result_with_total_leaves_input_untouched() -> None:
    source = Pagination(1, 10)
    result = PaginatedResult.with_total(["a", "b"], source, 25)

    assert result.pagination.total == 25
    assert result.pagination.total_pages == 3
    assert source.total is None
    assert len(result) == 2
    assert list(result) == ["a", "b"]
    assert not result.is_empty()


def test_paginated_result_map_keeps_metadata() -> None:
    result = PaginatedResult.with_total([1, 2], Pagination(1, 2), 4)
    mapped = result.map(str)
    assert mapped.data == ["1", "2"]
    assert mapped.pagination.total == 4


def test_cursor_with_cursor_marks_previous_page() -> None:
    first = CursorPagination(10)
    assert first.cursor is None and not first.has_prev

    following = CursorPagination.with_cursor(10, "opaque-token")
    assert following.cursor == "opaque-token"
    assert following.has_prev

    following.set_cursor(None)
    assert following.cursor is None


def test_cursor_limit_must_be_positive() -> None:
    with pytest.raises(PaginationError):
        CursorPagination(0)


def test_cursor_result_defaults() -> None:
    result = CursorPaginatedResult(["x"])
    assert len(result) == 1
    assert result.pagination.limit == 20
