"""Diagnostics Routes: connectivity probes and the guarded schema bootstrap.

Invariants:
    - POST /migrate requires Authorization: Bearer <MIGRATION_SECRET_KEY>; fails closed
    - /test-env never echoes setting values, only presence and length

Design Decisions:
    - Kept separate from /health: these are operator tools, not probes for an orchestrator
"""

from fastapi import APIRouter, Depends, Header, Request, Response

from tablets_api.api.responses import render
from tablets_api.config import Settings, get_settings
from tablets_api.infrastructure.database import (
    DatabaseSessionManager, get_optional_db_manager,
)
from tablets_api.services import diagnostics

router = APIRouter(tags=["diagnostics"])


@router.post("/migrate")
async def migrate(
    authorization: str | None = Header(default=None),
    manager: DatabaseSessionManager | None = Depends(get_optional_db_manager),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Create the tablet table when it does not exist yet."""
    return render(await diagnostics.bootstrap_schema(
        manager, authorization, settings.migration_secret_key,
    ))


@router.get("/test")
async def test_api(
    request: Request,
    manager: DatabaseSessionManager | None = Depends(get_optional_db_manager),
) -> Response:
    return render(await diagnostics.check_api(manager, request.url.path))


@router.get("/test-db")
async def test_database(
    manager: DatabaseSessionManager | None = Depends(get_optional_db_manager),
) -> Response:
    return render(await diagnostics.check_database(manager))


@router.get("/test-env")
async def test_environment(settings: Settings = Depends(get_settings)) -> Response:
    return render(diagnostics.describe_environment(
        settings.database_url, settings.environment,
    ))
