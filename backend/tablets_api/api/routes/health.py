"""Health Probe: database reachability plus a tablet count.

Invariants:
    - GET /health answers 200 only when SELECT 1 and the tablet count both succeed
    - Failures answer 500 with status, classified message, raw error and code
    - Unconfigured DATABASE_URL is reported, not raised

Design Decisions:
    - Count doubles as the schema check: a missing table is a failed health check
"""

from fastapi import APIRouter, Depends, Response

from tablets_api.api.responses import render
from tablets_api.infrastructure.database import (
    DatabaseSessionManager, get_optional_db_manager,
)
from tablets_api.services import diagnostics

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(
    manager: DatabaseSessionManager | None = Depends(get_optional_db_manager),
) -> Response:
    """Readiness: database connectivity and schema presence."""
    return render(await diagnostics.check_health(manager))
