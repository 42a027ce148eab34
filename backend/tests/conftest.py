"""
Jokebox Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped, created fresh for each test):
    ├── db_engine: In-memory SQLite engine with the schema created
    ├── session_factory / db_session: Sessions bound to that engine
    ├── mock_db_session: Mock async session for failure injection
    ├── registry: BroadcastRegistry with a short heartbeat, closed after the test
    └── test_client: HTTPX AsyncClient wired to the app and the test database
"""

import os

# Override settings for testing BEFORE any jokebox imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADVANCED_JOKE_AUTH_KEY"] = "test-auth-key"
os.environ["REQUIRE_AUTHOR"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from jokebox.database import Base, get_db_session  # noqa: E402
from jokebox.models.joke import Joke  # noqa: E402,F401
from jokebox.services.broadcast import BroadcastRegistry  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    A private in-memory database per test.

    StaticPool keeps the single connection alive, otherwise every new
    connection would see its own empty in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        mock_db_session.execute.side_effect = OperationalError(...)
        await joke_service.get(mock_db_session, 1)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.delete = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def joke_fields():
    """Valid create payload (as JokeFields keyword arguments)."""
    return {
        "setup": "Why did the chicken cross the road?",
        "punchline": "To get to the other side.",
        "author": "Alice",
    }


# ══════════════════════════════════════════════════════════════════════════
# Broadcast Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def registry():
    """A registry of its own, emptied after the test so no heartbeat task leaks."""
    reg = BroadcastRegistry(heartbeat_interval=30.0, queue_size=10)
    yield reg
    await reg.close_all()


# ══════════════════════════════════════════════════════════════════════════
# HTTP Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    The session dependency is swapped for one bound to the per-test database.
    """
    from jokebox.main import app

    async def override_get_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
