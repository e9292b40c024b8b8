"""Database Session Manager: the Persistence Client, an async pool with rollback and error mapping.

Invariants:
    - One DatabaseSessionManager per process, created in the lifespan and held on
      app.state (never a module global); routes receive it through Depends
    - Every session auto-rolls-back on exception and is closed on every exit path
    - SQLAlchemy/driver exceptions leave this module as TabletsError subclasses
      (core/classify_db_error.py), never raw
    - Missing DATABASE_URL surfaces as ConfigurationError at request time

Design Decisions:
    - app.state over module singleton: tests swap the manager without monkeypatching
      module globals
    - expire_on_commit=False: returned ORM rows stay readable after commit in async context
    - pool_pre_ping: stale connections are replaced instead of failing the request
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)

from tablets_api.core.classify_db_error import translate_db_error
from tablets_api.core.errors import ConfigurationError, TabletsError

logger = logging.getLogger(__name__)

DATABASE_URL_MISSING = "DATABASE_URL environment variable is not set"


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and error mapping."""

    def __init__(
        self, database_url: str, pool_size: int = 5, max_overflow: int = 5,
    ):
        self.engine: AsyncEngine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DatabaseSessionManager":
        """Wrap an existing engine (test fixtures, scripts)."""
        manager = cls.__new__(cls)
        manager.engine = engine
        manager._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )
        return manager

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except TabletsError:
            await session.rollback()
            raise
        except (SQLAlchemyError, OSError) as e:
            await session.rollback()
            logger.error(f"DB error: {e}")
            raise translate_db_error(e) from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except TabletsError as e:
            logger.error(f"DB health check failed: {e.message}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def init_db(database_url: str | None, **kwargs) -> DatabaseSessionManager | None:
    """Create the process-wide manager, or None when no URL is configured."""
    if not database_url:
        logger.error(DATABASE_URL_MISSING)
        return None
    logger.info("DATABASE_URL is set")
    return DatabaseSessionManager(database_url, **kwargs)


def get_optional_db_manager(request: Request) -> DatabaseSessionManager | None:
    """FastAPI dependency: the manager held on app.state, if any."""
    return getattr(request.app.state, "db_manager", None)


def get_db_manager(
    manager: DatabaseSessionManager | None = Depends(get_optional_db_manager),
) -> DatabaseSessionManager:
    """FastAPI dependency: the manager, or ConfigurationError when unconfigured."""
    if manager is None:
        raise ConfigurationError(DATABASE_URL_MISSING)
    return manager


async def get_db(
    manager: DatabaseSessionManager = Depends(get_db_manager),
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions; closed after every response."""
    async with manager.session() as session:
        yield session
