"""
Schema migrations tracked in a ``migrations`` bookkeeping table.

A `Migration` is a named SQL script. `MigrationManager` records every applied
script by name, so running the same list twice applies each one once:

    manager = MigrationManager(db)
    await manager.init()
    applied = await manager.run_migrations([generate_migration(User)])
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Iterable, List, Optional, Type

from pydantic import Field

from libsql_orm.database import Database
from libsql_orm.filters import Filter, Sort
from libsql_orm.model import Column, Model
from libsql_orm.query import QueryBuilder
from libsql_orm.utils.logging import get_logger

log = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Migration(Model):
    """One named schema script; `executed_at` is set once it has been applied."""

    __tablename__ = "migrations"

    name: Annotated[str, Column(not_null=True, unique=True)]
    sql: Annotated[str, Column(not_null=True)]
    created_at: Annotated[datetime, Column(not_null=True)] = Field(default_factory=_utcnow)
    executed_at: Optional[datetime] = None


class MigrationManager:
    """Applies migrations against one `Database` and records them."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def init(self) -> None:
        """Create the bookkeeping table if it does not exist."""
        await self.db.execute(Migration.migration_sql())

    def create_migration(self, name: str, sql: str) -> Migration:
        return Migration(name=name, sql=sql)

    async def executed_migrations(self) -> List[Migration]:
        builder = (
            QueryBuilder(Migration.table_name())
            .where(Filter.is_not_null("executed_at"))
            .order_by(Sort.asc("id"))
        )
        return await Migration.query(self.db, builder)

    async def execute_migration(self, migration: Migration) -> Migration:
        """Run the script and record it, both inside one transaction."""
        log.info("Applying migration %s", migration.name)
        async with self.db.transaction():
            await self.db.execute_batch(migration.sql)
            applied = migration.model_copy(update={"executed_at": _utcnow()})
            return await applied.upsert(self.db, ["name"])

    async def run_migrations(self, migrations: Iterable[Migration]) -> List[Migration]:
        """
        Apply every migration whose name is not recorded yet.

        Returns
        -------
        list[Migration]
            The migrations executed by this call, in order.
        """
        done = {m.name for m in await self.executed_migrations()}
        executed: List[Migration] = []
        for migration in migrations:
            if migration.name in done:
                log.info("Skipping migration %s (already applied)", migration.name)
                continue
            executed.append(await self.execute_migration(migration))
            done.add(migration.name)
        return executed


def generate_migration(model: Type[Model]) -> Migration:
    """Migration creating the table for `model`."""
    return Migration(name=f"create_table_{model.table_name()}", sql=model.migration_sql())


__all__ = ["Migration", "MigrationManager", "generate_migration"]
