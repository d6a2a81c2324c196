"""
Infrastructure package for libsql-orm.

Centralizes engine connectivity: the remote Hrana-over-HTTP driver, the
embedded SQLite driver and the URL-based factory that picks between them.
Keep this layer focused on I/O, decoupled from query and model logic.
"""

from libsql_orm.infrastructure.base import AbstractDriver, DriverResult
from libsql_orm.infrastructure.db_factory import open_driver, parse_url
from libsql_orm.infrastructure.hrana import HranaDriver
from libsql_orm.infrastructure.local import LocalDriver

__all__ = [
    "AbstractDriver",
    "DriverResult",
    "HranaDriver",
    "LocalDriver",
    "open_driver",
    "parse_url",
]
