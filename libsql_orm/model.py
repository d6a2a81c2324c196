"""
Declarative record base class with async CRUD, query and aggregate operations.

Subclass `Model`, declare fields as on any pydantic model, and optionally
attach `Column` metadata through `Annotated`:

    class User(Model):
        __tablename__ = "users"

        email: Annotated[str, Column(not_null=True, unique=True)]
        name: str
        is_active: bool = True

    user = await User(email="a@b.c", name="Ann").create(db)
    same = await User.find_by_id(db, user.id)

Every operation takes the `Database` explicitly; a model instance never holds
a connection. `create` and `update` return new instances and leave the
receiver untouched.
"""

from __future__ import annotations

import builtins
import types
import typing
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Dict, FrozenSet, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from libsql_orm.config import get_settings
from libsql_orm.database import Database
from libsql_orm.errors import OrmValidationError, QueryError, SerializationError, SqlError
from libsql_orm.filters import Filter, FilterLike, SearchFilter, Sort
from libsql_orm.pagination import PaginatedResult, Pagination
from libsql_orm.query import QueryBuilder
from libsql_orm.types import Aggregate, Row, Value, ValueType
from libsql_orm.utils.logging import get_logger, mask_id

M = TypeVar("M", bound="Model")

log = get_logger(__name__)

_BASE_SQL_TYPES = {
    bool: "BOOLEAN",
    int: "INTEGER",
    float: "REAL",
    str: "TEXT",
}


@dataclass(frozen=True)
class Column:
    """
    SQL column attributes attached to a field via ``Annotated[..., Column(...)]``.

    `sql_type` replaces the type derived from the Python annotation; the
    constraints follow it in the order NOT NULL, UNIQUE, PRIMARY KEY,
    AUTOINCREMENT.
    """

    sql_type: Optional[str] = None
    not_null: bool = False
    unique: bool = False
    primary_key: bool = False
    autoincrement: bool = False

    def render(self, name: str, base_type: str) -> str:
        parts = [name, self.sql_type or base_type]
        if self.not_null:
            parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        if self.primary_key:
            parts.append("PRIMARY KEY")
        if self.autoincrement:
            parts.append("AUTOINCREMENT")
        return " ".join(parts)


def _strip_annotation(annotation: Any) -> Any:
    """Reduce ``Optional[X]`` and ``Annotated[X, ...]`` to ``X``."""
    while True:
        origin = typing.get_origin(annotation)
        if origin is Annotated:
            annotation = typing.get_args(annotation)[0]
            continue
        if origin is typing.Union or origin is types.UnionType:
            args = [a for a in typing.get_args(annotation) if a is not type(None)]
            if len(args) == 1:
                annotation = args[0]
                continue
        return annotation


def sql_type_for(annotation: Any) -> str:
    return _BASE_SQL_TYPES.get(_strip_annotation(annotation), "TEXT")


class Model(BaseModel):
    """Base class for persisted records keyed by an integer surrogate `id`."""

    __tablename__: ClassVar[str] = "model"
    __primary_key__: ClassVar[str] = "id"
    __boolean_columns__: ClassVar[FrozenSet[str]] = frozenset()

    model_config = ConfigDict(populate_by_name=True)

    id: Annotated[Optional[int], Column(primary_key=True, autoincrement=True)] = None

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        if "__tablename__" not in cls.__dict__:
            cls.__tablename__ = cls.__name__.lower()
        cls.__boolean_columns__ = frozenset(
            name
            for name, info in cls.model_fields.items()
            if _strip_annotation(info.annotation) is bool
        )

    # Schema

    @classmethod
    def table_name(cls) -> str:
        return cls.__tablename__

    @classmethod
    def primary_key(cls) -> str:
        return cls.__primary_key__

    @classmethod
    def columns(cls) -> List[str]:
        return builtins.list(cls.model_fields)

    @classmethod
    def boolean_columns(cls) -> FrozenSet[str]:
        return cls.__boolean_columns__

    @classmethod
    def column_definitions(cls) -> List[str]:
        definitions = []
        for name, info in cls.model_fields.items():
            base_type = sql_type_for(info.annotation)
            column = next((m for m in info.metadata if isinstance(m, Column)), None)
            definitions.append(column.render(name, base_type) if column else f"{name} {base_type}")
        return definitions

    @classmethod
    def migration_sql(cls) -> str:
        """``CREATE TABLE IF NOT EXISTS`` statement for this model."""
        body = ",\n    ".join(cls.column_definitions())
        return f"CREATE TABLE IF NOT EXISTS {cls.table_name()} (\n    {body}\n)"

    # Primary key

    def get_primary_key(self) -> Optional[int]:
        return getattr(self, self.primary_key())

    def set_primary_key(self, value: int) -> None:
        setattr(self, self.primary_key(), value)

    # Row mapping

    def to_map(self) -> Dict[str, Value]:
        """Column name to `Value` for every field; structured values become JSON text."""
        try:
            data = self.model_dump(round_trip=True)
        except (ValueError, TypeError) as exc:
            raise SerializationError(f"Cannot serialize {type(self).__name__}: {exc}") from exc
        return {name: Value.of(value) for name, value in data.items()}

    @classmethod
    def from_map(cls: Type[M], row: Row) -> M:
        """Build an instance from a column-name to `Value` map (extra columns are ignored)."""
        booleans = cls.boolean_columns()
        data: Dict[str, Any] = {}
        for name, value in row.items():
            if value.type is ValueType.INTEGER and name in booleans:
                data[name] = value.payload != 0
            else:
                data[name] = value.to_python()
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise SerializationError(f"Cannot build {cls.__name__} from row: {exc}") from exc

    # Write path

    def _require_primary_key(self, action: str) -> int:
        pk = self.get_primary_key()
        if pk is None:
            raise OrmValidationError(f"Cannot {action} record without primary key")
        return pk

    async def create(self: M, db: Database) -> M:
        """INSERT this record and return a copy carrying the engine-assigned id."""
        table = self.table_name()
        pk_name = self.primary_key()
        data = self.to_map()
        if data.get(pk_name, Value.null()).is_null:
            data.pop(pk_name, None)

        columns = builtins.list(data)
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        log.info("[%s] Creating record", table)
        log.debug("[%s] SQL: %s", table, sql)
        result = await db.execute(sql, builtins.list(data.values()))
        if result.last_insert_rowid is None:
            raise SqlError(f"No insert identity reported for table {table}")

        created = self.model_copy(update={pk_name: result.last_insert_rowid})
        log.info("[%s] Created record with ID: %s", table, mask_id(result.last_insert_rowid))
        return created

    async def create_or_update(self: M, db: Database) -> M:
        table = self.table_name()
        pk = self.get_primary_key()
        if pk is None:
            log.info("[%s] Creating new record (no primary key provided)", table)
            return await self.create(db)

        if await type(self).find_by_id(db, pk) is not None:
            return await self.update(db)

        log.warning("[%s] Record with ID %s not found, creating new record", table, mask_id(pk))
        return await self.create(db)

    async def upsert(self: M, db: Database, unique_columns: Sequence[str]) -> M:
        """
        Update the row matching this record on `unique_columns`, or create it.

        Only columns present on the record take part in the match.

        Raises
        ------
        OrmValidationError
            If none of `unique_columns` is a column of this record.
        """
        table = self.table_name()
        data = self.to_map()
        matched = [column for column in unique_columns if column in data]
        if not matched:
            raise OrmValidationError("No unique columns provided for upsert")

        where = " AND ".join(f"{column} = ?" for column in matched)
        sql = f"SELECT {self.primary_key()} FROM {table} WHERE {where} LIMIT 1"
        log.info("[%s] Checking for existing record", table)
        log.debug("[%s] SQL: %s", table, sql)
        result = await db.query(sql, [data[column] for column in matched])

        existing = result.scalar()
        if existing.is_null:
            log.info("[%s] No existing record found, creating new one", table)
            return await self.create(db)
        if existing.type is not ValueType.INTEGER:
            raise QueryError(f"Primary key of existing {table} row is not an integer: {existing!r}")

        log.info("[%s] Found existing record with ID: %s, updating", table, mask_id(existing.payload))
        return await self.model_copy(update={self.primary_key(): existing.payload}).update(db)

    async def update(self: M, db: Database) -> M:
        """UPDATE every non-key column of the row with this record's id; returns a copy."""
        pk = self._require_primary_key("update")
        table = self.table_name()
        pk_name = self.primary_key()
        data = {name: value for name, value in self.to_map().items() if name != pk_name}
        if not data:
            return self.model_copy()

        assignments = ", ".join(f"{name} = ?" for name in data)
        sql = f"UPDATE {table} SET {assignments} WHERE {pk_name} = ?"
        log.info("[%s] Updating record with ID: %s", table, mask_id(pk))
        log.debug("[%s] SQL: %s", table, sql)
        await db.execute(sql, [*data.values(), Value.integer(pk)])
        log.info("[%s] Updated record with ID: %s", table, mask_id(pk))
        return self.model_copy()

    async def delete(self, db: Database) -> bool:
        """DELETE this record's row; True once the statement ran."""
        pk = self._require_primary_key("delete")
        table = self.table_name()
        sql = f"DELETE FROM {table} WHERE {self.primary_key()} = ?"
        log.info("[%s] Deleting record with ID: %s", table, mask_id(pk))
        log.debug("[%s] SQL: %s", table, sql)
        await db.execute(sql, [Value.integer(pk)])
        return True

    @classmethod
    async def bulk_create(cls: Type[M], db: Database, records: Sequence[M]) -> List[M]:
        """Create all records inside one transaction; any failure rolls all of them back."""
        if not records:
            return []
        log.info("[%s] Bulk creating %d records", cls.table_name(), len(records))
        async with db.transaction():
            return [await record.create(db) for record in records]

    @classmethod
    async def bulk_update(cls: Type[M], db: Database, records: Sequence[M]) -> List[M]:
        """Update all records inside one transaction; any failure rolls all of them back."""
        if not records:
            return []
        log.info("[%s] Bulk updating %d records", cls.table_name(), len(records))
        async with db.transaction():
            return [await record.update(db) for record in records]

    @classmethod
    async def bulk_delete(cls, db: Database, ids: Sequence[int]) -> int:
        """Delete rows by id with one statement; returns the affected-row count."""
        if not ids:
            return 0
        table = cls.table_name()
        placeholders = ", ".join("?" for _ in ids)
        sql = f"DELETE FROM {table} WHERE {cls.primary_key()} IN ({placeholders})"
        log.info("[%s] Bulk deleting %d records", table, len(ids))
        log.debug("[%s] SQL: %s", table, sql)
        result = await db.execute(sql, [Value.integer(i) for i in ids])
        return result.rows_affected

    @classmethod
    async def delete_where(cls, db: Database, condition: FilterLike) -> int:
        """DELETE every row matching `condition`; returns the affected-row count."""
        table = cls.table_name()
        sql, params = QueryBuilder(table).where(condition).build_delete()
        log.info("[%s] Deleting records matching filter", table)
        log.debug("[%s] SQL: %s", table, sql)
        result = await db.execute(sql, params)
        return result.rows_affected

    # Read path

    @classmethod
    def _builder(cls, condition: Optional[FilterLike] = None) -> QueryBuilder:
        builder = QueryBuilder(cls.table_name())
        if condition is not None:
            builder.where(condition)
        return builder

    @staticmethod
    def _default_pagination(pagination: Optional[Pagination]) -> Pagination:
        if pagination is not None:
            return pagination
        return Pagination(per_page=get_settings().default_per_page)

    @classmethod
    async def find_by_id(cls: Type[M], db: Database, id: int) -> Optional[M]:
        log.debug("[%s] Finding record with ID: %s", cls.table_name(), mask_id(id))
        return await cls.find_one(db, Filter.eq(cls.primary_key(), Value.integer(id)))

    @classmethod
    async def find_one(cls: Type[M], db: Database, condition: FilterLike) -> Optional[M]:
        found = await cls._builder(condition).limit(1).execute(db, cls)
        return found[0] if found else None

    @classmethod
    async def find_all(cls: Type[M], db: Database) -> List[M]:
        return await cls._builder().execute(db, cls)

    @classmethod
    async def find_where(cls: Type[M], db: Database, condition: FilterLike) -> List[M]:
        return await cls._builder(condition).execute(db, cls)

    @classmethod
    async def find_paginated(cls: Type[M], db: Database, pagination: Pagination) -> PaginatedResult[M]:
        return await cls._builder().execute_paginated(db, cls, pagination)

    @classmethod
    async def find_where_paginated(
        cls: Type[M], db: Database, condition: FilterLike, pagination: Pagination
    ) -> PaginatedResult[M]:
        return await cls._builder(condition).execute_paginated(db, cls, pagination)

    @classmethod
    async def search(
        cls: Type[M],
        db: Database,
        search_filter: SearchFilter,
        pagination: Optional[Pagination] = None,
    ) -> PaginatedResult[M]:
        return await cls.find_where_paginated(
            db, search_filter.to_filter_operator(), cls._default_pagination(pagination)
        )

    @classmethod
    async def count(cls, db: Database) -> int:
        return await cls._builder().execute_count(db)

    @classmethod
    async def count_where(cls, db: Database, condition: FilterLike) -> int:
        return await cls._builder(condition).execute_count(db)

    @classmethod
    async def list(
        cls: Type[M],
        db: Database,
        sorts: Optional[Sequence[Sort]] = None,
        pagination: Optional[Pagination] = None,
    ) -> PaginatedResult[M]:
        builder = cls._builder()
        if sorts:
            builder.order_by_multiple(sorts)
        return await builder.execute_paginated(db, cls, cls._default_pagination(pagination))

    @classmethod
    async def list_where(
        cls: Type[M],
        db: Database,
        condition: FilterLike,
        sorts: Optional[Sequence[Sort]] = None,
        pagination: Optional[Pagination] = None,
    ) -> PaginatedResult[M]:
        builder = cls._builder(condition)
        if sorts:
            builder.order_by_multiple(sorts)
        return await builder.execute_paginated(db, cls, cls._default_pagination(pagination))

    @classmethod
    async def query(cls: Type[M], db: Database, builder: QueryBuilder) -> List[M]:
        return await builder.execute(db, cls)

    @classmethod
    async def query_paginated(
        cls: Type[M], db: Database, builder: QueryBuilder, pagination: Pagination
    ) -> PaginatedResult[M]:
        return await builder.execute_paginated(db, cls, pagination)

    @classmethod
    async def aggregate(
        cls,
        db: Database,
        function: Aggregate,
        column: str,
        condition: Optional[FilterLike] = None,
    ) -> Optional[float]:
        """
        Compute one aggregate over the table.

        Returns
        -------
        float or None
            The aggregate value; None when the engine yields NULL (no rows).
        """
        builder = cls._builder(condition).aggregate(function, column, "result")
        value = (await builder.execute_raw(db)).scalar()
        if value.is_null:
            return None
        if value.type in (ValueType.INTEGER, ValueType.REAL):
            return float(value.payload)
        raise QueryError(f"Aggregate {function}({column}) returned non-numeric {value!r}")


__all__ = ["Model", "Column", "sql_type_for"]
