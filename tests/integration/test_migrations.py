"""Migration bookkeeping against an in-memory database."""

from __future__ import annotations

import pytest
import pytest_asyncio

from libsql_orm import Database
from libsql_orm.errors import SqlError
from libsql_orm.migrations import Migration, MigrationManager, generate_migration

pytestmark = pytest.mark.integration

SEED_SCRIPT = """
CREATE TABLE tags (id INTEGER PRIMARY KEY AUTOINCREMENT, label TEXT NOT NULL);
INSERT INTO tags (label) VALUES ('a;b');
INSERT INTO tags (label) VALUES ('c');
"""


async def _table_names(db: Database) -> set:
    result = await db.query("SELECT name FROM sqlite_master WHERE type = 'table'")
    return {row["name"].payload for row in result}


@pytest_asyncio.fixture
async def manager():
    db = await Database.connect(":memory:")
    try:
        mgr = MigrationManager(db)
        await mgr.init()
        yield mgr
    finally:
        await db.close()


def test_generate_migration_names_the_table(user_model) -> None:
    migration = generate_migration(user_model)

    assert migration.name == "create_table_users"
    assert migration.sql == user_model.migration_sql()
    assert migration.executed_at is None
    assert migration.id is None


def test_migration_table_definition() -> None:
    sql = Migration.migration_sql()

    assert sql.startswith("CREATE TABLE IF NOT EXISTS migrations (")
    assert "name TEXT NOT NULL UNIQUE" in sql
    assert "executed_at TEXT" in sql


@pytest.mark.asyncio
async def test_init_is_idempotent(manager: MigrationManager) -> None:
    await manager.init()

    assert "migrations" in await _table_names(manager.db)
    assert await manager.executed_migrations() == []


@pytest.mark.asyncio
async def test_run_migrations_applies_each_name_once(manager: MigrationManager, user_model, product_model) -> None:
    pending = [generate_migration(user_model), generate_migration(product_model)]

    first = await manager.run_migrations(pending)
    second = await manager.run_migrations(pending)

    assert [m.name for m in first] == ["create_table_users", "create_table_product"]
    assert all(m.executed_at is not None for m in first)
    assert second == []
    assert {"users", "product"} <= await _table_names(manager.db)

    recorded = await manager.executed_migrations()
    assert [m.name for m in recorded] == ["create_table_users", "create_table_product"]
    assert recorded[0].id < recorded[1].id


@pytest.mark.asyncio
async def test_multi_statement_scripts_run_in_order(manager: MigrationManager) -> None:
    migration = manager.create_migration("seed_tags", SEED_SCRIPT)

    await manager.execute_migration(migration)

    labels = await manager.db.query("SELECT label FROM tags ORDER BY id")
    assert [row["label"].payload for row in labels] == ["a;b", "c"]


@pytest.mark.asyncio
async def test_failed_script_leaves_no_trace(manager: MigrationManager) -> None:
    broken = manager.create_migration(
        "broken",
        "CREATE TABLE half (id INTEGER PRIMARY KEY); INSERT INTO nowhere VALUES (1);",
    )

    with pytest.raises(SqlError):
        await manager.run_migrations([broken])

    assert "half" not in await _table_names(manager.db)
    assert await manager.executed_migrations() == []
    assert not manager.db.in_transaction


@pytest.mark.asyncio
async def test_unexecuted_rows_are_not_reported(manager: MigrationManager) -> None:
    draft = manager.create_migration("draft", "SELECT 1")
    await draft.create(manager.db)

    assert await manager.executed_migrations() == []

    applied = await manager.run_migrations([draft])
    assert [m.name for m in applied] == ["draft"]
    assert await Migration.count(manager.db) == 1
