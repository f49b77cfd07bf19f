"""Shared test fixtures.

Every test gets a fresh schema. By default that is a throwaway SQLite file
(aiosqlite); set ``IDEATION_TEST_DATABASE_URL`` to a PostgreSQL URL to run the
same suite, including the concurrency tests, against the real database.
Redis is replaced by an in-memory double installed through ``set_redis``.
"""

from __future__ import annotations

import os
import time
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

os.environ.setdefault("IDEATION_JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("IDEATION_LOG_FORMAT", "console")
os.environ.setdefault("IDEATION_LOG_LEVEL", "WARNING")

from ideation.auth.actor import Actor  # noqa: E402
from ideation.auth.jwt import create_access_token  # noqa: E402
from ideation.config import get_settings  # noqa: E402
from ideation.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from ideation.db.base import Base  # noqa: E402
from ideation.db.enums import UserRole  # noqa: E402
from ideation.db.models import User  # noqa: E402
from ideation.main import create_app  # noqa: E402
from ideation.redis_client import close_redis, set_redis  # noqa: E402

TEST_DATABASE_URL = os.environ.get("IDEATION_TEST_DATABASE_URL")


class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the app uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:  # noqa: ANN401
        self.store[key] = str(value)
        if ex is not None:
            self.expiry[key] = time.time() + ex
        return True

    async def get(self, key: str) -> str | None:
        return self.store[key] if self._alive(key) else None

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._alive(key))

    async def incr(self, key: str) -> int:
        value = int(self.store[key]) + 1 if self._alive(key) else 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self.expiry[key] = time.time() + seconds
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.store.clear()


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:  # noqa: ANN401
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(autouse=True)
def _fresh_settings() -> None:
    """Tests may override IDEATION_* variables through monkeypatch; drop the cached settings."""
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, None]:  # noqa: ANN401
    """Initialise the app's engine against a fresh schema."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'ideation_test.db'}"
    await init_db(url)
    db_engine = get_engine()
    if db_engine.dialect.name == "sqlite":
        event.listen(db_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield db_engine

    await close_db()


@pytest_asyncio.fixture
async def fake_redis() -> AsyncGenerator[FakeRedis, None]:
    redis = FakeRedis()
    set_redis(redis)
    yield redis
    await close_redis()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """A direct session for service-level tests and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest_asyncio.fixture
async def client(engine: AsyncEngine, fake_redis: FakeRedis) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to a fresh app, database and Redis double."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_user(name: str, email: str, role: UserRole = UserRole.USER) -> User:
    async with get_session_factory()() as session:
        user = User(name=name, email=email, role=role)
        session.add(user)
        await session.commit()
        return user


@pytest_asyncio.fixture
async def make_user(engine: AsyncEngine) -> Callable[..., Any]:
    """Factory: ``await make_user("Name")`` commits a user and returns it."""
    counter = {"n": 0}

    async def _make(name: str = "User", role: UserRole = UserRole.USER) -> User:
        counter["n"] += 1
        return await _create_user(name, f"user{counter['n']}@example.com", role)

    return _make


@pytest_asyncio.fixture
async def alice(make_user: Callable[..., Any]) -> User:
    """Idea author in most scenarios."""
    return await make_user("Alice")


@pytest_asyncio.fixture
async def bob(make_user: Callable[..., Any]) -> User:
    return await make_user("Bob")


@pytest_asyncio.fixture
async def carol(make_user: Callable[..., Any]) -> User:
    return await make_user("Carol")


@pytest_asyncio.fixture
async def admin(make_user: Callable[..., Any]) -> User:
    return await make_user("Admin", UserRole.ADMIN)


def token_for(user: User, **kwargs: Any) -> str:  # noqa: ANN401
    return create_access_token(user.id, UserRole(user.role), user.email, **kwargs)


@pytest.fixture
def auth() -> Callable[..., dict[str, str]]:
    """``auth(user)`` -> Authorization header for a freshly issued token."""

    def _headers(user: User, **kwargs: Any) -> dict[str, str]:  # noqa: ANN401
        return {"Authorization": f"Bearer {token_for(user, **kwargs)}"}

    return _headers


@pytest.fixture
def actor_of() -> Callable[[User], Actor]:
    return Actor.from_user
