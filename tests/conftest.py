"""
Pytest configuration for libsql-orm.

Provides fixtures for:
- Settings isolation (the cached settings are cleared around every test)
- Sample model types shared by unit and integration tests
- An in-memory database with the sample tables created
"""

from __future__ import annotations

from typing import Annotated, AsyncIterator, Iterator, Optional

import pytest
import pytest_asyncio
from pydantic import Field, Json

from libsql_orm import Column, Database, Model
from libsql_orm.config import get_settings


class User(Model):
    __tablename__ = "users"

    email: Annotated[str, Column(not_null=True, unique=True)]
    name: str = ""
    age: Optional[int] = None
    is_active: bool = True


class Product(Model):
    title: str
    price: float = 0.0
    in_stock: Optional[bool] = None
    tags: Json[list[str]] = Field(default_factory=list)
    picture: Optional[bytes] = None


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """
    Clear cached settings so environment overrides in a test take effect.
    """
    monkeypatch.delenv("ORM_DEFAULT_PER_PAGE", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def user_model() -> type[User]:
    return User


@pytest.fixture
def product_model() -> type[Product]:
    return Product


@pytest_asyncio.fixture
async def memory_db() -> AsyncIterator[Database]:
    """
    Fresh in-memory database with the `users` and `product` tables created.
    """
    db = await Database.connect(":memory:")
    try:
        await db.execute(User.migration_sql())
        await db.execute(Product.migration_sql())
        yield db
    finally:
        await db.close()
