"""
Error types for libsql-orm.

Every failure raised by the ORM derives from `OrmError`. The taxonomy is flat:
one subclass per failure kind, each carrying a plain string message and
rendering as ``"<kind label>: <message>"``.

Engine errors and transcoding errors are wrapped (``raise ... from exc``) and
propagate directly to the caller; nothing in this package retries.
"""

from __future__ import annotations


class OrmError(Exception):
    """Base error for ORM operations; also used for wrapped external errors."""

    label: str = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.label}: {self.message}"


class OrmConnectionError(OrmError):
    """The database could not be reached or refused the session."""

    label = "Connection error"


class SqlError(OrmError):
    """The engine rejected or failed to run a statement."""

    label = "SQL error"


class SerializationError(OrmError):
    """A record could not be converted to or from column values."""

    label = "Serialization error"


class OrmValidationError(OrmError):
    """An operation was called on a record in the wrong state."""

    label = "Validation error"


class NotFoundError(OrmError):
    """A requested record does not exist."""

    label = "Not found"


class PaginationError(OrmError):
    """Pagination parameters are out of range."""

    label = "Pagination error"


class QueryError(OrmError):
    """A query could not be built or its result could not be read."""

    label = "Query error"


__all__ = [
    "OrmError",
    "OrmConnectionError",
    "SqlError",
    "SerializationError",
    "OrmValidationError",
    "NotFoundError",
    "PaginationError",
    "QueryError",
]
