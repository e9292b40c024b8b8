"""Tablet Operations: the five Resource Operations (list, get, create, update, delete).

Invariants:
    - Every operation returns an OperationResult; none raises for expected failures
    - Empty/absent id → 400 before any database round-trip
    - create requires truthy name and genericName and a non-null price (presence checks only)
    - update treats absent and null fields as "leave unchanged"; updatedAt always advances
    - Only list self-heals a missing table (one CREATE TABLE IF NOT EXISTS, then empty list)
    - delete answers 204 with no body

Design Decisions:
    - Results over exceptions at this seam: the HTTP layer stays a thin serializer and
      the operations are testable without a client
    - Self-heal kept on the read path for compatibility with the deployed frontend,
      which calls list first on a fresh database (ADR: conflates read and schema
      concerns; other operations report SchemaError instead)
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from tablets_api.core.domain_types import OperationResult, TabletField, TabletId
from tablets_api.core.errors import (
    ErrorContext,
    InvalidInputError,
    MissingFieldsError,
    ResourceNotFoundError,
    SchemaError,
    TabletsError,
)
from tablets_api.schemas.tablet import TabletFields, TabletResponse
from tablets_api.services import tablet_repository as repository

logger = logging.getLogger(__name__)

RESOURCE = "Tablet"


async def list_tablets(db: AsyncSession) -> OperationResult:
    """All tablets, newest first."""
    try:
        tablets = await repository.list_all(db)
    except SchemaError:
        return await _self_heal_missing_table(db)
    except TabletsError as e:
        return _failed(e)
    return OperationResult(200, {"tablets": [_serialize(t) for t in tablets]})


async def get_tablet(db: AsyncSession, tablet_id: str | None) -> OperationResult:
    if not tablet_id:
        return _failed(InvalidInputError("Missing tablet ID", "id"))
    try:
        tablet = await repository.get_by_id(db, TabletId(tablet_id))
    except TabletsError as e:
        return _failed(e)
    if tablet is None:
        return _failed(_not_found(tablet_id, "get"))
    return OperationResult(200, {"tablet": _serialize(tablet)})


async def create_tablet(db: AsyncSession, data: Any) -> OperationResult:
    """Create from a raw field bag; description defaults to ""."""
    bag = data if isinstance(data, dict) else {}
    missing = _missing_required(bag)
    if missing:
        return _failed(MissingFieldsError(missing))
    try:
        fields = _parse_fields(bag)
    except InvalidInputError as e:
        return _failed(e)

    values = fields.provided()
    values.setdefault("description", "")
    try:
        tablet = await repository.insert(db, values)
    except TabletsError as e:
        return _failed(e)
    logger.info(
        f"Tablet created: {tablet.id}",
        extra={"tablet_id": tablet.id, "operation": "create"},
    )
    return OperationResult(201, {"tablet": _serialize(tablet)})


async def update_tablet(
    db: AsyncSession, tablet_id: str | None, data: Any,
) -> OperationResult:
    """Partial update; omitted fields keep their stored values."""
    if not tablet_id:
        return _failed(InvalidInputError("Invalid tablet ID", "id"))
    bag = data if isinstance(data, dict) else {}
    try:
        fields = _parse_fields(bag)
    except InvalidInputError as e:
        return _failed(e)

    try:
        tablet = await repository.update_by_id(
            db, TabletId(tablet_id), fields.provided(),
        )
    except TabletsError as e:
        return _failed(e)
    if tablet is None:
        return _failed(_not_found(tablet_id, "update"))
    return OperationResult(200, {"tablet": _serialize(tablet)})


async def delete_tablet(db: AsyncSession, tablet_id: str | None) -> OperationResult:
    if not tablet_id:
        return _failed(InvalidInputError("Invalid tablet ID", "id"))
    try:
        deleted = await repository.delete_by_id(db, TabletId(tablet_id))
    except TabletsError as e:
        return _failed(e)
    if deleted is None:
        return _failed(_not_found(tablet_id, "delete"))
    logger.info(
        f"Tablet deleted: {deleted}",
        extra={"tablet_id": deleted, "operation": "delete"},
    )
    return OperationResult(204, None)


# ─── Helpers ────────────────────────────────────────────────────

async def _self_heal_missing_table(db: AsyncSession) -> OperationResult:
    logger.warning(
        "Tablet table missing on list; creating it",
        extra={"operation": "list"},
    )
    try:
        await repository.create_table_if_absent(db)
    except TabletsError as e:
        logger.error(
            f"Failed to auto-create Tablet table: {e.message}",
            extra={"operation": "list", "error_code": e.code},
        )
        return _failed(SchemaError(
            "Table does not exist and could not be created automatically. Run migrations.",
            raw_message=e.message,
            context=ErrorContext(operation="list"),
        ))
    return OperationResult(200, {"tablets": []})


def _missing_required(bag: dict) -> list[str]:
    missing = [
        key.value for key in (TabletField.NAME, TabletField.GENERIC_NAME)
        if not bag.get(key.value)
    ]
    if bag.get(TabletField.PRICE.value) is None:
        missing.append(TabletField.PRICE.value)
    return missing


def _parse_fields(bag: dict) -> TabletFields:
    try:
        return TabletFields.model_validate(bag)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"]) or "body"
        raise InvalidInputError(f"Invalid value for '{field}': {first['msg']}", field) from e


def _not_found(tablet_id: str, operation: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        RESOURCE, tablet_id, ErrorContext(tablet_id=tablet_id, operation=operation),
    )


def _serialize(tablet) -> dict:
    return TabletResponse.model_validate(tablet).to_json()


def _failed(error: TabletsError) -> OperationResult:
    log = logger.error if error.http_status >= 500 else logger.info
    log(
        f"Tablet operation failed: {error.message}",
        extra={
            "error_code": error.code,
            "severity": error.severity.value,
            "category": error.category.value,
            "status_code": error.http_status,
            "tablet_id": error.context.tablet_id,
            "operation": error.context.operation,
        },
    )
    return error.to_result()
