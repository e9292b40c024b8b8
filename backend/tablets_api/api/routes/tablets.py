"""Tablet Routes: HTTP verbs on /tablets and /tablets/{id} mapped to Resource Operations.

Invariants:
    - GET/POST on the collection, GET/PUT/DELETE on the item; other methods → 405 (error_handlers.py)
    - Request bodies arrive as raw JSON values; the operations do presence checks
    - The request's AsyncSession is closed after every response, error paths included (get_db)

Design Decisions:
    - Routes never contain business logic: each one is call-operation, render-result
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tablets_api.api.responses import render
from tablets_api.infrastructure.database import get_db
from tablets_api.services import tablet_operations as operations

router = APIRouter(prefix="/tablets", tags=["tablets"])


@router.get("")
async def list_tablets(db: AsyncSession = Depends(get_db)) -> Response:
    """All tablets, newest first."""
    return render(await operations.list_tablets(db))


@router.post("")
async def create_tablet(
    payload: Any = Body(None), db: AsyncSession = Depends(get_db),
) -> Response:
    return render(await operations.create_tablet(db, payload))


@router.get("/{tablet_id}")
async def get_tablet(tablet_id: str, db: AsyncSession = Depends(get_db)) -> Response:
    return render(await operations.get_tablet(db, tablet_id.strip()))


@router.put("/{tablet_id}")
async def update_tablet(
    tablet_id: str,
    payload: Any = Body(None),
    db: AsyncSession = Depends(get_db),
) -> Response:
    return render(await operations.update_tablet(db, tablet_id.strip(), payload))


@router.delete("/{tablet_id}")
async def delete_tablet(tablet_id: str, db: AsyncSession = Depends(get_db)) -> Response:
    return render(await operations.delete_tablet(db, tablet_id.strip()))
