"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ptracker.auth.gate import AdminGate, Identity
from ptracker.config import Settings
from ptracker.database import build_engine
from ptracker.db import models  # noqa: F401
from ptracker.db.base import Base
from ptracker.main import create_app
from ptracker.mirror.queue import MemoryMirrorQueue
from ptracker.mirror.sheets import SheetsMirror
from ptracker.service.data_service import DataService
from ptracker.storage.memory import MemoryStore
from ptracker.storage.sql import SqlStore

ADMIN_EMAIL = "admin@mail.ru"
START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Strictly increasing clock: every reading is one second after the last."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock(monkeypatch: pytest.MonkeyPatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr("ptracker.service.data_service.utcnow", fake)
    return fake


@pytest.fixture
def gate() -> AdminGate:
    return AdminGate([ADMIN_EMAIL])


@pytest.fixture
def admin(gate: AdminGate) -> Identity:
    return gate.identify("admin-uid", ADMIN_EMAIL, "Администратор")


@pytest.fixture
def alice(gate: AdminGate) -> Identity:
    return gate.identify("user-a", "alice@mail.ru", "Алиса Петрова")


@pytest.fixture
def bob(gate: AdminGate) -> Identity:
    return gate.identify("user-b", "bob@mail.ru", "Борис Иванов")


@pytest.fixture
def mirror() -> SheetsMirror:
    """Unconfigured mirror: every push lands in the queue."""
    return SheetsMirror(webapp_url="", queue=MemoryMirrorQueue())


async def _sql_store() -> tuple[SqlStore, object]:
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return SqlStore(factory), engine


@pytest_asyncio.fixture(params=["memory", "sql"])
async def service(
    request: pytest.FixtureRequest,
    gate: AdminGate,
    mirror: SheetsMirror,
    clock: FakeClock,
) -> AsyncGenerator[DataService, None]:
    """DataService over each backend; the same suite must pass on both."""
    engine = None
    if request.param == "memory":
        store = MemoryStore()
    else:
        store, engine = await _sql_store()

    yield DataService(store=store, gate=gate, mirror=mirror)

    if engine is not None:
        await engine.dispose()


@pytest_asyncio.fixture
async def memory_service(gate: AdminGate, mirror: SheetsMirror, clock: FakeClock) -> DataService:
    return DataService(store=MemoryStore(), gate=gate, mirror=mirror)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        backend="memory",
        redis_url="",
        admin_emails=[ADMIN_EMAIL],
        log_format="console",
        _env_file=None,
    )


@pytest_asyncio.fixture
async def client(test_settings: Settings, memory_service: DataService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app with an injected memory-backed service."""
    app = create_app(settings=test_settings, data_service=memory_service)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def _auth_headers(identity: Identity) -> dict[str, str]:
    return {
        "X-User-Id": identity.user_id,
        "X-User-Email": identity.email,
        "X-User-Name": quote(identity.full_name),
    }


@pytest.fixture
def auth_headers() -> Callable[[Identity], dict[str, str]]:
    """Identity-provider headers for a caller."""
    return _auth_headers
