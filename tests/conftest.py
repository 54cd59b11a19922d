from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.db.connection import Base
from src.db.schema import ensure_schema
from tests.fixtures.signup_store import FakeStore


@pytest.fixture(autouse=True)
def _default_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://prologue:pw@localhost:5432/prologue")
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.delenv("TRUST_FORWARDED_FOR", raising=False)
    from src.config import get_settings

    get_settings.cache_clear()


def requires_test_db() -> bool:
    test_database_url = os.getenv("TEST_DATABASE_URL")
    return bool(test_database_url and test_database_url.startswith("postgresql+asyncpg://"))


@pytest.fixture(scope="session")
def test_database_url() -> str:
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not requires_test_db():
        if os.getenv("CI_PARITY") == "1":
            pytest.fail("CI parity mode requires TEST_DATABASE_URL to be set to a Postgres asyncpg URL")
        pytest.skip("TEST_DATABASE_URL not set for postgres integration tests")
    assert test_database_url is not None
    return test_database_url


@pytest.fixture
async def db_session(test_database_url: str) -> AsyncIterator[AsyncSession]:
    engine = create_async_engine(test_database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await ensure_schema(engine)

    maker = async_sessionmaker(engine, expire_on_commit=False)
    async with maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def store() -> Iterator[FakeStore]:
    """Route the signup data-access helpers to an in-memory store."""
    fake = FakeStore()
    with (
        patch("src.handlers.abuse.count_recent_attempts", side_effect=fake.count_recent_attempts),
        patch("src.handlers.abuse.record_attempt", side_effect=fake.record_attempt),
        patch("src.handlers.abuse.prune_attempts", side_effect=fake.prune_attempts),
        patch("src.handlers.signup.insert_subscriber", side_effect=fake.insert_subscriber),
    ):
        yield fake


@pytest.fixture
def session() -> AsyncMock:
    db = AsyncMock()

    @asynccontextmanager
    async def _nested():  # type: ignore[no-untyped-def]
        yield

    db.begin_nested = MagicMock(side_effect=lambda: _nested())
    return db
