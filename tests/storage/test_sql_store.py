"""SQL store: transactions, failure translation and readiness."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ptracker.database import build_engine
from ptracker.db.base import Base
from ptracker.errors import BackendUnavailableError
from ptracker.gamification.schemas import UserProfile
from ptracker.storage.sql import SqlStore

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def store():
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


def _user() -> UserProfile:
    return UserProfile(id="user-a", email="Alice@Mail.ru", full_name="Алиса", joined_at=NOW, last_active=NOW)


class TestSqlStore:
    async def test_round_trip_keeps_utc(self, store):
        async with store.session() as s:
            await s.put_user(_user())
        async with store.session() as s:
            user = await s.get_user("user-a")
        assert user == _user()
        assert user.joined_at.tzinfo is not None

    async def test_email_lookup_is_case_insensitive(self, store):
        async with store.session() as s:
            await s.put_user(_user())
        async with store.session() as s:
            assert (await s.find_user_by_email("alice@mail.ru")).id == "user-a"

    async def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            async with store.session() as s:
                await s.put_user(_user())
                raise RuntimeError("boom")
        async with store.session() as s:
            assert await s.get_user("user-a") is None

    async def test_driver_error_becomes_backend_unavailable(self, store):
        with pytest.raises(BackendUnavailableError):
            async with store.session():
                raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    async def test_ping(self, store):
        assert await store.ping()
