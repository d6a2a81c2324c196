"""
Utilities package for libsql-orm.

Exports shared helpers for logging and other cross-cutting concerns.
Keep this package lightweight and free of ORM-specific logic.
"""

from libsql_orm.utils.logging import configure_logging, get_logger, mask_id

__all__ = [
    "configure_logging",
    "get_logger",
    "mask_id",
]
