"""Pytest fixtures for testing."""
import os

# Settings are read on first import of the app, so the environment must be set first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-for-signing-tokens"

import asyncio  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from models import Base, User  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an in-memory SQLite engine with a fresh schema.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        os.environ["DATABASE_URL"],
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a user directly in the database."""
    user = User(username="alice", email="alice@example.com", hashed_password="unused")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Create a second user for isolation tests."""
    user = User(username="bob", email="bob@example.com", hashed_password="unused")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient]:
    """
    Create a test client backed by the in-memory database.

    Each request gets its own session that commits at the end, as in
    production.
    """
    # Clear the settings cache so it picks up the test environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_async_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


async def register_and_login(
    client: AsyncClient,
    username: str,
    email: str,
    password: str = TEST_PASSWORD,
) -> dict[str, str]:
    """Create an account through the API and return its Authorization header."""
    response = await client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['token']}"}


@pytest.fixture
async def auth_headers(client: AsyncClient) -> dict[str, str]:
    """Authorization header for a registered user."""
    return await register_and_login(client, "alice", "alice@example.com")


@pytest.fixture
async def other_auth_headers(client: AsyncClient) -> dict[str, str]:
    """Authorization header for a second, unrelated user."""
    return await register_and_login(client, "bob", "bob@example.com")


@pytest.fixture
def make_auth_headers(client: AsyncClient):  # noqa: ANN201
    """Factory that registers a new user and returns its Authorization header."""

    async def _make(username: str, email: str, password: str = TEST_PASSWORD) -> dict[str, str]:
        return await register_and_login(client, username, email, password)

    return _make


@pytest.fixture
def measure_loop_stall():  # noqa: ANN201
    """
    Factory that awaits a coroutine while a ticker runs on the same loop.

    Returns the coroutine's result and the longest gap between ticks, which is
    how long the loop was unable to run anything else.
    """

    async def _measure(coro):  # noqa: ANN001, ANN202
        loop = asyncio.get_running_loop()
        gaps: list[float] = []
        done = asyncio.Event()

        async def tick() -> None:
            last = loop.time()
            while not done.is_set():
                await asyncio.sleep(0.001)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(tick())
        try:
            result = await coro
        finally:
            done.set()
            await ticker
        return result, max(gaps, default=0.0)

    return _measure
