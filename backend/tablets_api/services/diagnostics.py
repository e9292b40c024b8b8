"""Diagnostics: health check, connectivity probes and the guarded schema bootstrap.

Invariants:
    - Each diagnostic opens its own session from the manager and closes it before returning
    - Health distinguishes not-configured, unreachable and missing-table failures by message
    - Schema bootstrap fails closed: no configured secret → 500, always
    - Bearer comparison is constant-time
    - Bootstrap is a probe followed by at most one CREATE TABLE IF NOT EXISTS

Design Decisions:
    - Returns OperationResult like the Resource Operations: routes stay uniform
    - Raw backend message always included ("error"/"details"): operator-facing endpoints
"""

import hmac
import logging
from datetime import datetime, timezone

from sqlalchemy import text

from tablets_api.core.domain_types import OperationResult
from tablets_api.core.errors import (
    ConfigurationError,
    DatabaseConnectionError,
    SchemaError,
    TabletsError,
    UnauthorizedError,
)
from tablets_api.infrastructure.database import (
    DATABASE_URL_MISSING, DatabaseSessionManager,
)
from tablets_api.services import tablet_repository as repository

logger = logging.getLogger(__name__)

MIGRATION_SECRET_MISSING = "Migration secret key not configured"


def _raw(e: TabletsError) -> str:
    return getattr(e, "raw_message", "") or e.message


def _health_failure(e: TabletsError) -> OperationResult:
    return OperationResult(500, {
        "status": "error",
        "message": e.message,
        "error": _raw(e),
        "code": e.code,
    })


async def check_health(manager: DatabaseSessionManager | None) -> OperationResult:
    """SELECT 1, then count tablets to confirm the schema exists."""
    if manager is None:
        return _health_failure(ConfigurationError(DATABASE_URL_MISSING))
    try:
        async with manager.session() as db:
            await db.execute(text("SELECT 1"))
            tablet_count = await repository.count(db)
    except TabletsError as e:
        logger.error(f"Health check failed: {e.message}", extra={"error_code": e.code})
        return _health_failure(e)
    return OperationResult(200, {
        "status": "ok",
        "message": "Database connection successful",
        "tabletCount": tablet_count,
    })


async def check_api(manager: DatabaseSessionManager | None, path: str) -> OperationResult:
    """Confirms the API is routed and reports database connectivity."""
    body = {
        "message": "API route is working correctly",
        "database": "Connected successfully",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": path,
    }
    connected = manager is not None and await manager.health_check()
    if connected:
        return OperationResult(200, body)
    body["message"] = "API route is working but database connection failed"
    body["database"] = "Connection failed"
    body["error"] = DATABASE_URL_MISSING if manager is None else DatabaseConnectionError().message
    return OperationResult(500, body)


async def check_database(manager: DatabaseSessionManager | None) -> OperationResult:
    """Connectivity plus a one-row read of the tablet table; table errors are reported, not fatal."""
    if manager is None:
        return OperationResult(500, ConfigurationError(DATABASE_URL_MISSING).to_response())
    try:
        async with manager.session() as db:
            result = await db.execute(text("SELECT 1 AS connected"))
            connection_test = [dict(row) for row in result.mappings().all()]
            try:
                tablets = await repository.list_all(db, limit=1)
                tablet_test: object = [
                    {"id": t.id, "name": t.name} for t in tablets
                ]
            except SchemaError as e:
                tablet_test = {"error": _raw(e)}
    except TabletsError as e:
        logger.error(f"Database test failed: {e.message}", extra={"error_code": e.code})
        return OperationResult(500, {
            "error": "Database test failed",
            "message": e.message,
            "details": _raw(e),
            "code": e.code,
        })
    return OperationResult(200, {
        "message": "Database connection successful",
        "connectionTest": connection_test,
        "tabletTest": tablet_test,
    })


def describe_environment(database_url: str | None, environment: str) -> OperationResult:
    """Which settings are present, without revealing their values."""
    return OperationResult(200, {
        "DATABASE_URL_SET": bool(database_url),
        "DATABASE_URL_LENGTH": len(database_url) if database_url else 0,
        "ENVIRONMENT": environment,
    })


def authorize_bootstrap(authorization: str | None, secret: str | None) -> None:
    """Raise unless the header is exactly 'Bearer <secret>'."""
    if not secret:
        raise ConfigurationError(MIGRATION_SECRET_MISSING)
    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(
        authorization.encode(), expected.encode(),
    ):
        raise UnauthorizedError()


async def bootstrap_schema(
    manager: DatabaseSessionManager | None,
    authorization: str | None,
    secret: str | None,
) -> OperationResult:
    """Create the tablet table if it is absent; a no-op when it exists."""
    try:
        authorize_bootstrap(authorization, secret)
    except TabletsError as e:
        logger.warning(f"Schema bootstrap refused: {e.message}", extra={"error_code": e.code})
        return e.to_result()
    if manager is None:
        return ConfigurationError(DATABASE_URL_MISSING).to_result()

    try:
        async with manager.session() as db:
            try:
                await repository.probe_table(db)
            except SchemaError:
                await repository.create_table_if_absent(db)
                logger.info("Schema bootstrap created the tablet table")
                return OperationResult(200, {
                    "message": "Database migration completed successfully",
                    "created": True,
                })
    except TabletsError as e:
        logger.error(f"Migration failed: {e.message}", extra={"error_code": e.code})
        return OperationResult(500, {
            "error": "Migration failed",
            "details": _raw(e),
            "code": e.code,
        })
    return OperationResult(200, {
        "message": "Database schema is already up to date",
        "created": False,
    })
