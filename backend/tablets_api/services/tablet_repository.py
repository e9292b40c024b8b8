"""Tablet Repository: the SQL statements behind the Resource Operations.

Invariants:
    - Each public function issues exactly one statement and commits (no multi-step transactions)
    - Database exceptions leave as TabletsError subclasses (translate_db_error), after rollback
    - update/delete return None when no row matched; callers map that to 404
    - create_table_if_absent is idempotent (CREATE TABLE IF NOT EXISTS)

Design Decisions:
    - UPDATE/DELETE ... RETURNING: existence check and mutation in one round-trip
    - INSERT through the unit of work: Python-side defaults (id, timestamps) land on
      the returned instance without a refresh
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession
from sqlalchemy.schema import CreateTable

from tablets_api.core.classify_db_error import translate_db_error
from tablets_api.core.domain_types import TabletId
from tablets_api.core.errors import ErrorContext
from tablets_api.models.tablet import Tablet

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _translated(
    db: AsyncSession, operation: str, tablet_id: str | None = None,
) -> AsyncGenerator[None, None]:
    """Roll back and re-raise any backend failure as a TabletsError."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        await db.rollback()
        raise translate_db_error(
            e, ErrorContext(tablet_id=tablet_id, operation=operation),
        ) from e


async def list_all(db: AsyncSession, limit: int | None = None) -> list[Tablet]:
    """Newest first."""
    query = select(Tablet).order_by(Tablet.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    async with _translated(db, "list"):
        result = await db.execute(query)
        return list(result.scalars().all())


async def get_by_id(db: AsyncSession, tablet_id: TabletId) -> Tablet | None:
    async with _translated(db, "get", tablet_id):
        result = await db.execute(select(Tablet).where(Tablet.id == tablet_id))
        return result.scalar_one_or_none()


async def insert(db: AsyncSession, values: dict) -> Tablet:
    async with _translated(db, "create"):
        tablet = Tablet(**values)
        db.add(tablet)
        await db.flush()
        await db.commit()
        return tablet


async def update_by_id(
    db: AsyncSession, tablet_id: TabletId, values: dict,
) -> Tablet | None:
    """Apply the given column values; updated_at is always refreshed."""
    changes = {getattr(Tablet, key): value for key, value in values.items()}
    changes[Tablet.updated_at] = datetime.now(timezone.utc)
    async with _translated(db, "update", tablet_id):
        result = await db.execute(
            update(Tablet)
            .where(Tablet.id == tablet_id)
            .values(changes)
            .returning(Tablet)
            .execution_options(populate_existing=True),
        )
        tablet = result.scalar_one_or_none()
        await db.commit()
        return tablet


async def delete_by_id(db: AsyncSession, tablet_id: TabletId) -> TabletId | None:
    async with _translated(db, "delete", tablet_id):
        result = await db.execute(
            delete(Tablet).where(Tablet.id == tablet_id).returning(Tablet.id),
        )
        deleted = result.scalar_one_or_none()
        await db.commit()
        return TabletId(deleted) if deleted is not None else None


async def count(db: AsyncSession) -> int:
    async with _translated(db, "count"):
        result = await db.execute(select(func.count()).select_from(Tablet))
        return int(result.scalar_one())


async def probe_table(db: AsyncSession) -> None:
    """Raise SchemaError if the Tablet table is missing."""
    async with _translated(db, "probe"):
        await db.execute(text(f'SELECT 1 FROM "{Tablet.__tablename__}" LIMIT 1'))


async def create_table_if_absent(db: AsyncSession) -> None:
    """Issue the single idempotent CREATE TABLE IF NOT EXISTS statement."""
    async with _translated(db, "create_table"):
        connection: AsyncConnection = await db.connection()
        await connection.execute(CreateTable(Tablet.__table__, if_not_exists=True))
        await db.commit()
    logger.warning(
        f'Table "{Tablet.__tablename__}" ensured',
        extra={"operation": "create_table"},
    )
