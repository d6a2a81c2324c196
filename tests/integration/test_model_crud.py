"""
Model operations against an embedded in-memory SQLite database.

These run everywhere (no external service): the `memory_db` fixture opens a
fresh `:memory:` connection with the sample tables created.
"""

from __future__ import annotations

import logging

import pytest

from libsql_orm import Aggregate, Filter, Model, Pagination, QueryBuilder, SearchFilter, Sort
from libsql_orm.errors import OrmValidationError, SerializationError, SqlError

pytestmark = pytest.mark.integration

SEED_USERS = [
    ("ann@example.com", "Ann", 31, True),
    ("bob@example.com", "Bob", 17, False),
    ("cid@example.com", "Cid", 45, True),
    ("dee@example.com", "Dee", None, True),
    ("eve@example.com", "Eve", 28, False),
]


DEFERRED_FK_SCHEMA = """
CREATE TABLE parents (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT);
CREATE TABLE children (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    parent_id INTEGER REFERENCES parents(id) DEFERRABLE INITIALLY DEFERRED
);
"""


class Parent(Model):
    __tablename__ = "parents"

    name: str = ""


class Child(Model):
    __tablename__ = "children"

    parent_id: int


async def _seed(db, user_model):
    users = [
        user_model(email=email, name=name, age=age, is_active=active)
        for email, name, age, active in SEED_USERS
    ]
    return await user_model.bulk_create(db, users)


@pytest.mark.asyncio
async def test_create_returns_copy_with_engine_id(memory_db, user_model) -> None:
    draft = user_model(email="new@example.com", name="New")

    created = await draft.create(memory_db)

    assert draft.id is None
    assert created.id == 1
    assert created.email == draft.email

    second = await user_model(email="other@example.com").create(memory_db)
    assert second.id == 2


@pytest.mark.asyncio
async def test_find_by_id_round_trips_booleans(memory_db, user_model) -> None:
    created = await user_model(email="x@example.com", is_active=False).create(memory_db)

    found = await user_model.find_by_id(memory_db, created.id)

    assert found == created
    assert found.is_active is False
    assert await user_model.find_by_id(memory_db, 999) is None


@pytest.mark.asyncio
async def test_update_writes_non_key_columns(memory_db, user_model) -> None:
    created = await user_model(email="u@example.com", name="Before").create(memory_db)
    created.name = "After"

    updated = await created.update(memory_db)

    assert updated == created
    assert updated is not created
    reloaded = await user_model.find_by_id(memory_db, created.id)
    assert reloaded.name == "After"


@pytest.mark.asyncio
async def test_update_and_delete_require_primary_key(memory_db, user_model) -> None:
    draft = user_model(email="nokey@example.com")
    with pytest.raises(OrmValidationError):
        await draft.update(memory_db)
    with pytest.raises(OrmValidationError):
        await draft.delete(memory_db)


@pytest.mark.asyncio
async def test_delete_removes_row(memory_db, user_model) -> None:
    created = await user_model(email="gone@example.com").create(memory_db)

    assert await created.delete(memory_db) is True
    assert await user_model.find_by_id(memory_db, created.id) is None


@pytest.mark.asyncio
async def test_create_or_update_branches(memory_db, user_model, caplog) -> None:
    created = await user_model(email="cu@example.com").create_or_update(memory_db)
    assert created.id == 1

    changed = created.model_copy(update={"name": "Changed"})
    updated = await changed.create_or_update(memory_db)
    assert updated.id == 1
    assert (await user_model.find_by_id(memory_db, 1)).name == "Changed"

    caplog.set_level(logging.WARNING, logger="libsql_orm.model")
    ghost = user_model(id=500, email="ghost@example.com")
    revived = await ghost.create_or_update(memory_db)
    assert revived.id == 500
    assert any("not found, creating new record" in r.getMessage() for r in caplog.records)
    assert any("50*" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_upsert_by_email_keeps_existing_id(memory_db, user_model) -> None:
    original = await user_model(email="same@example.com", name="First").create(memory_db)

    upserted = await user_model(email="same@example.com", name="Second").upsert(memory_db, ["email"])

    assert upserted.id == original.id
    assert await user_model.count(memory_db) == 1
    assert (await user_model.find_by_id(memory_db, original.id)).name == "Second"

    fresh = await user_model(email="fresh@example.com").upsert(memory_db, ["email"])
    assert fresh.id != original.id
    assert await user_model.count(memory_db) == 2


@pytest.mark.asyncio
async def test_upsert_without_known_unique_columns_fails(memory_db, user_model) -> None:
    with pytest.raises(OrmValidationError):
        await user_model(email="z@example.com").upsert(memory_db, ["nickname"])


@pytest.mark.asyncio
async def test_bulk_create_assigns_sequential_ids(memory_db, user_model) -> None:
    created = await _seed(memory_db, user_model)

    assert [u.id for u in created] == [1, 2, 3, 4, 5]
    assert await user_model.count(memory_db) == len(SEED_USERS)
    assert await user_model.bulk_create(memory_db, []) == []


@pytest.mark.asyncio
async def test_bulk_create_rolls_back_on_failure(memory_db, user_model) -> None:
    batch = [
        user_model(email="dup@example.com"),
        user_model(email="ok@example.com"),
        user_model(email="dup@example.com"),
    ]

    with pytest.raises(SqlError):
        await user_model.bulk_create(memory_db, batch)

    assert await user_model.count(memory_db) == 0
    assert not memory_db.in_transaction
    # The connection stays usable after the rollback.
    assert (await user_model(email="after@example.com").create(memory_db)).id is not None


@pytest.mark.asyncio
async def test_failed_commit_is_rolled_back(memory_db) -> None:
    await memory_db.execute("PRAGMA foreign_keys = ON")
    await memory_db.execute_batch(DEFERRED_FK_SCHEMA)

    with pytest.raises(SqlError):
        await Child.bulk_create(memory_db, [Child(parent_id=999)])

    assert not memory_db.in_transaction
    assert await Child.count(memory_db) == 0

    parent = await Parent(name="after").create(memory_db)
    created = await Child.bulk_create(memory_db, [Child(parent_id=parent.id)])
    assert [c.parent_id for c in created] == [parent.id]
    async with memory_db.transaction():
        assert memory_db.in_transaction


@pytest.mark.asyncio
async def test_bulk_update_rolls_back_on_failure(memory_db, user_model) -> None:
    first, second = await user_model.bulk_create(
        memory_db, [user_model(email="a@example.com"), user_model(email="b@example.com")]
    )
    first.name = "renamed"
    second.email = "a@example.com"

    with pytest.raises(SqlError):
        await user_model.bulk_update(memory_db, [first, second])

    assert (await user_model.find_by_id(memory_db, first.id)).name == ""


@pytest.mark.asyncio
async def test_bulk_update_applies_all(memory_db, user_model) -> None:
    users = await _seed(memory_db, user_model)
    for user in users:
        user.is_active = True

    await user_model.bulk_update(memory_db, users)

    assert await user_model.count_where(memory_db, Filter.eq("is_active", False)) == 0


@pytest.mark.asyncio
async def test_bulk_delete_reports_affected_rows(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)

    assert await user_model.bulk_delete(memory_db, [1, 2, 99]) == 2
    assert await user_model.bulk_delete(memory_db, []) == 0
    assert await user_model.count(memory_db) == 3


@pytest.mark.asyncio
async def test_delete_where_returns_true_count(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)

    removed = await user_model.delete_where(memory_db, Filter.eq("is_active", False))

    assert removed == 2
    assert await user_model.delete_where(memory_db, Filter.eq("is_active", False)) == 0
    assert await user_model.count(memory_db) == 3


@pytest.mark.asyncio
async def test_find_where_and_find_one(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)

    adults = await user_model.find_where(memory_db, Filter.ge("age", 18) & Filter.eq("is_active", True))
    assert sorted(u.name for u in adults) == ["Ann", "Cid"]

    missing_age = await user_model.find_one(memory_db, Filter.is_null("age"))
    assert missing_age.name == "Dee"

    assert len(await user_model.find_all(memory_db)) == len(SEED_USERS)
    assert await user_model.find_where(memory_db, Filter.in_values("id", [])) == []


@pytest.mark.asyncio
async def test_paginated_reads_fill_totals(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)

    page = await user_model.find_paginated(memory_db, Pagination(2, 2))

    assert [u.id for u in page] == [3, 4]
    assert page.pagination.total == len(SEED_USERS)
    assert page.pagination.total_pages == 3
    assert page.pagination.has_next()

    active = await user_model.find_where_paginated(memory_db, Filter.eq("is_active", True), Pagination(1, 10))
    assert active.pagination.total == 3
    assert not active.pagination.has_next()


@pytest.mark.asyncio
async def test_list_sorts_and_defaults_page_size(memory_db, user_model, monkeypatch) -> None:
    monkeypatch.setenv("ORM_DEFAULT_PER_PAGE", "2")
    await _seed(memory_db, user_model)

    listed = await user_model.list(memory_db, [Sort.desc("name")])

    assert [u.name for u in listed] == ["Eve", "Dee"]
    assert listed.pagination.per_page == 2
    assert listed.pagination.total_pages == 3

    inactive = await user_model.list_where(memory_db, Filter.eq("is_active", False), [Sort.asc("age")])
    assert [u.name for u in inactive] == ["Bob", "Eve"]


@pytest.mark.asyncio
async def test_search_matches_any_column(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)

    result = await user_model.search(memory_db, SearchFilter("e", ["name", "email"]), Pagination(1, 10))
    assert sorted(u.name for u in result) == ["Ann", "Bob", "Cid", "Dee", "Eve"]

    exact = await user_model.search(memory_db, SearchFilter("Cid", ["name"], exact_match=True))
    assert [u.email for u in exact] == ["cid@example.com"]


@pytest.mark.asyncio
async def test_aggregates(memory_db, user_model) -> None:
    assert await user_model.aggregate(memory_db, Aggregate.AVG, "age") is None

    await _seed(memory_db, user_model)

    assert await user_model.aggregate(memory_db, Aggregate.COUNT, "*") == 5.0
    assert await user_model.aggregate(memory_db, Aggregate.SUM, "age") == 121.0
    assert await user_model.aggregate(memory_db, Aggregate.MAX, "age") == 45.0
    assert await user_model.aggregate(memory_db, Aggregate.MIN, "age", Filter.eq("is_active", True)) == 31.0
    assert await user_model.aggregate(memory_db, Aggregate.AVG, "age", Filter.gt("age", 100)) is None


@pytest.mark.asyncio
async def test_custom_builder_queries(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)
    builder = QueryBuilder("users").where(Filter.like("email", "%example.com")).order_by(Sort.desc("id")).limit(2)

    latest = await user_model.query(memory_db, builder)
    assert [u.id for u in latest] == [5, 4]

    paged = await user_model.query_paginated(memory_db, QueryBuilder("users"), Pagination(3, 2))
    assert [u.id for u in paged] == [5]
    assert paged.pagination.total == 5


@pytest.mark.asyncio
async def test_execute_raw_returns_values(memory_db, user_model) -> None:
    await _seed(memory_db, user_model)
    raw = await (
        QueryBuilder("users")
        .select("is_active")
        .aggregate(Aggregate.COUNT, "*", "n")
        .group_by("is_active")
        .order_by(Sort.asc("is_active"))
        .execute_raw(memory_db)
    )
    assert raw.columns == ["is_active", "n"]
    assert [(r["is_active"].payload, r["n"].payload) for r in raw] == [(0, 2), (1, 3)]


@pytest.mark.asyncio
async def test_bad_row_aborts_the_whole_fetch(memory_db, user_model) -> None:
    await memory_db.execute("INSERT INTO users (email, name, is_active) VALUES (?, ?, ?)", ["ok@example.com", "Ok", 1])
    await memory_db.execute("INSERT INTO users (email, name, is_active) VALUES (?, ?, ?)", ["bad@example.com", "Bad", "maybe"])

    with pytest.raises(SerializationError):
        await user_model.find_all(memory_db)


@pytest.mark.asyncio
async def test_structured_and_binary_fields_round_trip(memory_db, product_model) -> None:
    created = await product_model(
        title="Lamp", price=19.5, in_stock=True, tags='["home", "light"]', picture=b"\x89PNG"
    ).create(memory_db)

    stored = await memory_db.query("SELECT tags, in_stock FROM product WHERE id = ?", [created.id])
    assert stored.rows[0]["tags"].payload == '["home","light"]'
    assert stored.rows[0]["in_stock"].payload == 1

    found = await product_model.find_by_id(memory_db, created.id)
    assert found.tags == ["home", "light"]
    assert found.in_stock is True
    assert found.picture == b"\x89PNG"
    assert found.price == 19.5
