"""
Driver interface and result contract shared by the engine drivers.

A driver owns exactly one logical connection to the engine and speaks in
native Python values (None, int, float, str, bytes). Conversion to and from
`Value` happens one layer up, in `libsql_orm.database.Database`.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple


@dataclass
class DriverResult:
    """
    Outcome of one statement.

    Attributes
    ----------
    columns : list[str]
        Result column names in projection order (empty for DML).
    rows : list[tuple]
        Native cell values, one tuple per row.
    rows_affected : int
        Rows changed by an INSERT/UPDATE/DELETE; 0 for queries.
    last_insert_rowid : int, optional
        Engine-assigned rowid of the last successful INSERT on the connection.
    """

    columns: List[str] = field(default_factory=list)
    rows: List[Tuple[Any, ...]] = field(default_factory=list)
    rows_affected: int = 0
    last_insert_rowid: Optional[int] = None


class AbstractDriver(abc.ABC):
    """Common interface every engine driver implements."""

    name: str

    @abc.abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> DriverResult:  # pragma: no cover - interface only
        """Run one statement with positional ``?`` parameters."""
        raise NotImplementedError

    @abc.abstractmethod
    async def execute_batch(self, sql: str) -> None:  # pragma: no cover - interface only
        """Run a script of semicolon-separated statements without parameters."""
        raise NotImplementedError

    @abc.abstractmethod
    async def close(self) -> None:  # pragma: no cover - interface only
        """Release the connection; the driver must not be used afterwards."""
        raise NotImplementedError


__all__ = ["AbstractDriver", "DriverResult"]
