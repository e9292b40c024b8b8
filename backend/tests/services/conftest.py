"""Service test fixtures: async SQLite databases + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - test_engine has the Tablet table; bare_engine does not (self-heal / bootstrap tests)
    - call() runs one operation in its own session, like one request
    - client installs a DatabaseSessionManager on app.state and restores it afterwards

Design Decisions:
    - SQLite in-memory with StaticPool: every session sees the same database
      (ADR: PostgreSQL-specific behavior covered by SQLSTATE unit tests in tests/core)
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from tablets_api.db.base import Base
from tablets_api.infrastructure.database import DatabaseSessionManager
from tablets_api.main import app
import tablets_api.models  # noqa: F401

MEMORY_URL = "sqlite+aiosqlite:///:memory:"
UNREACHABLE_URL = "sqlite+aiosqlite:////nonexistent-dir/tablets/unreachable.db"


def _memory_engine():
    return create_async_engine(MEMORY_URL, echo=False, poolclass=StaticPool)


@pytest.fixture
async def test_engine():
    engine = _memory_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def bare_engine():
    """Engine whose database has no tables."""
    engine = _memory_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
async def unreachable_engine():
    """Engine whose database file cannot be opened."""
    engine = create_async_engine(UNREACHABLE_URL, echo=False)
    yield engine
    await engine.dispose()


@pytest.fixture
def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def call(test_session_factory):
    """Run one operation in a fresh session: await call(operations.get_tablet, tablet_id)."""
    async def _call(operation, *args):
        async with test_session_factory() as db:
            return await operation(db, *args)
    return _call


def _session_call(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _call(operation, *args):
        async with factory() as db:
            return await operation(db, *args)
    return _call


@pytest.fixture
def call_bare(bare_engine):
    return _session_call(bare_engine)


@pytest.fixture
def call_unreachable(unreachable_engine):
    return _session_call(unreachable_engine)


@pytest.fixture
def install_manager():
    """Put a manager (or None) on app.state for the duration of a test."""
    original = app.state.db_manager

    def _install(engine):
        app.state.db_manager = (
            DatabaseSessionManager.from_engine(engine) if engine is not None else None
        )
        return app.state.db_manager

    yield _install
    app.state.db_manager = original
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
async def client(test_engine, install_manager):
    """FastAPI test client backed by test_engine."""
    install_manager(test_engine)
    async with _client() as c:
        yield c


@pytest.fixture
async def bare_client(bare_engine, install_manager):
    """FastAPI test client backed by a database without tables."""
    install_manager(bare_engine)
    async with _client() as c:
        yield c


@pytest.fixture
async def unconfigured_client(install_manager):
    """FastAPI test client with no DATABASE_URL (no manager)."""
    install_manager(None)
    async with _client() as c:
        yield c


@pytest.fixture
async def unreachable_client(unreachable_engine, install_manager):
    """FastAPI test client whose database cannot be opened."""
    install_manager(unreachable_engine)
    async with _client() as c:
        yield c
