"""
libsql-orm - a lightweight async ORM for libSQL / SQLite.

This package maps pydantic record types onto SQL tables and provides:

- CRUD, upsert and bulk operations on `Model` subclasses
- Composable filters (`Filter`, `And`/`Or`/`Not` trees, `SearchFilter`)
- A fluent `QueryBuilder` with sorting, aggregates, joins and grouping
- Offset and cursor pagination descriptors
- Remote (Hrana over HTTP) and embedded SQLite connectivity
- A small migration manager and CLI
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from libsql_orm.config import Settings, get_settings
from libsql_orm.database import Database, ExecuteResult, ResultSet
from libsql_orm.errors import (
    NotFoundError,
    OrmConnectionError,
    OrmError,
    OrmValidationError,
    PaginationError,
    QueryError,
    SerializationError,
    SqlError,
)
from libsql_orm.filters import (
    And,
    Custom,
    Filter,
    FilterOperator,
    MultipleValues,
    Not,
    Or,
    RangeValue,
    SearchFilter,
    Single,
    SingleValue,
    Sort,
)
from libsql_orm.migrations import Migration, MigrationManager, generate_migration
from libsql_orm.model import Column, Model
from libsql_orm.pagination import (
    CursorPaginatedResult,
    CursorPagination,
    PaginatedResult,
    Pagination,
)
from libsql_orm.query import QueryBuilder
from libsql_orm.types import (
    Aggregate,
    JoinType,
    Operator,
    Row,
    SortOrder,
    StoredBool,
    Value,
    ValueType,
    parse_bool,
)
from libsql_orm.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Database
    "Database",
    "ExecuteResult",
    "ResultSet",
    # Errors
    "OrmError",
    "OrmConnectionError",
    "SqlError",
    "SerializationError",
    "OrmValidationError",
    "NotFoundError",
    "PaginationError",
    "QueryError",
    # Values and tokens
    "Value",
    "ValueType",
    "Row",
    "Operator",
    "Aggregate",
    "SortOrder",
    "JoinType",
    "parse_bool",
    "StoredBool",
    # Filters
    "Filter",
    "SingleValue",
    "MultipleValues",
    "RangeValue",
    "FilterOperator",
    "Single",
    "And",
    "Or",
    "Not",
    "Custom",
    "SearchFilter",
    "Sort",
    # Pagination
    "Pagination",
    "PaginatedResult",
    "CursorPagination",
    "CursorPaginatedResult",
    # Query and models
    "QueryBuilder",
    "Model",
    "Column",
    # Migrations
    "Migration",
    "MigrationManager",
    "generate_migration",
    # Logging
    "configure_logging",
    "get_logger",
]
