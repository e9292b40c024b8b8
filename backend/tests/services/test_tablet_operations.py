"""Tablet Operations: the five Resource Operations against a real (SQLite) database.

Tests cover:
    - create/get round-trip, description default, price coercion
    - missing fields and bad ids → 400 before touching the database
    - duplicate names → exactly one 201 and one 400
    - list ordering (newest first) and self-heal on a missing table
    - partial update semantics and updatedAt refresh
    - delete then delete again → 204 then 404
    - backend failure normalization (connection, schema, field constraint)
"""

import logging
from datetime import datetime

from sqlalchemy import inspect

from tablets_api.services import tablet_operations as operations

PARACETAMOL = {"name": "Paracetamol", "genericName": "Acetaminophen", "price": 2.5}


async def _create(call, **overrides) -> dict:
    result = await call(operations.create_tablet, {**PARACETAMOL, **overrides})
    assert result.status_code == 201, result.body
    return result.body["tablet"]


# ─── create / get ────────────────────────────────────────────────

async def test_create_returns_201_with_generated_id_and_timestamps(call):
    tablet = await _create(call)
    assert tablet["id"]
    assert tablet["name"] == "Paracetamol"
    assert tablet["genericName"] == "Acetaminophen"
    assert tablet["price"] == 2.5
    assert tablet["createdAt"]
    assert tablet["updatedAt"]


async def test_create_defaults_description_to_empty_string(call):
    tablet = await _create(call)
    assert tablet["description"] == ""


async def test_create_coerces_numeric_string_price(call):
    tablet = await _create(call, price="4.75")
    assert tablet["price"] == 4.75


async def test_get_returns_same_fields_as_create(call):
    created = await _create(call, description="Pain relief")
    result = await call(operations.get_tablet, created["id"])
    assert result.status_code == 200
    assert result.body["tablet"] == created


async def test_get_unknown_id_returns_404(call):
    result = await call(operations.get_tablet, "does-not-exist")
    assert result.status_code == 404
    assert result.body["error"] == "Tablet not found"


async def test_get_empty_id_returns_400(call):
    result = await call(operations.get_tablet, "")
    assert result.status_code == 400


# ─── create validation ──────────────────────────────────────────

async def test_create_without_price_returns_400_and_stores_nothing(call):
    result = await call(
        operations.create_tablet,
        {"name": "Paracetamol", "genericName": "Acetaminophen"},
    )
    assert result.status_code == 400
    assert result.body["code"] == "MISSING_FIELDS"
    assert result.body["fields"] == ["price"]

    listed = await call(operations.list_tablets)
    assert listed.body["tablets"] == []


async def test_create_reports_every_missing_field(call):
    result = await call(operations.create_tablet, {"name": ""})
    assert result.status_code == 400
    assert result.body["fields"] == ["name", "genericName", "price"]


async def test_create_accepts_zero_price(call):
    tablet = await _create(call, price=0)
    assert tablet["price"] == 0.0


async def test_create_with_non_object_body_returns_400(call):
    result = await call(operations.create_tablet, ["not", "a", "dict"])
    assert result.status_code == 400
    assert result.body["code"] == "MISSING_FIELDS"


async def test_create_with_non_numeric_price_returns_400(call):
    result = await call(operations.create_tablet, {**PARACETAMOL, "price": "cheap"})
    assert result.status_code == 400
    assert result.body["code"] == "VALIDATION_ERROR"
    assert result.body["fields"] == ["price"]


async def test_create_duplicate_name_returns_400_duplicate_entry(call):
    first = await call(operations.create_tablet, dict(PARACETAMOL))
    second = await call(operations.create_tablet, {**PARACETAMOL, "price": 9.0})
    assert sorted([first.status_code, second.status_code]) == [201, 400]
    assert second.body["error"] == "Duplicate Entry"
    assert second.body["code"] == "DUPLICATE_ENTRY"


async def test_negative_price_is_a_field_constraint_error(call):
    result = await call(operations.create_tablet, {**PARACETAMOL, "price": -1})
    assert result.status_code == 500
    assert result.body["code"] == "VALUE_ERROR"


# ─── list ────────────────────────────────────────────────────────

async def test_list_returns_newest_first(call):
    names = ["Aspirin", "Ibuprofen", "Paracetamol"]
    for name in names:
        await _create(call, name=name)

    result = await call(operations.list_tablets)
    assert result.status_code == 200
    assert [t["name"] for t in result.body["tablets"]] == list(reversed(names))


async def test_list_creates_missing_table_and_returns_empty(call_bare, bare_engine):
    result = await call_bare(operations.list_tablets)
    assert result.status_code == 200
    assert result.body == {"tablets": []}

    async with bare_engine.connect() as conn:
        tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
    assert "Tablet" in tables


async def test_other_operations_do_not_self_heal(call_bare, bare_engine):
    result = await call_bare(operations.create_tablet, dict(PARACETAMOL))
    assert result.status_code == 500
    assert result.body["code"] == "SCHEMA_ERROR"

    async with bare_engine.connect() as conn:
        tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
    assert "Tablet" not in tables


async def test_list_on_unreachable_database_returns_connection_error(call_unreachable):
    result = await call_unreachable(operations.list_tablets)
    assert result.status_code == 500
    assert result.body["error"] == "Database Connection Error"
    assert result.body["code"] == "DATABASE_CONNECTION_ERROR"


# ─── update ──────────────────────────────────────────────────────

async def test_update_price_only_leaves_other_fields_unchanged(call):
    created = await _create(call, description="Pain relief")
    result = await call(operations.update_tablet, created["id"], {"price": 3.0})
    assert result.status_code == 200
    updated = result.body["tablet"]
    assert updated["price"] == 3.0
    for key in ("id", "name", "genericName", "description", "createdAt"):
        assert updated[key] == created[key]


async def test_update_always_advances_updated_at(call):
    created = await _create(call)
    result = await call(operations.update_tablet, created["id"], {})
    assert result.status_code == 200
    before = datetime.fromisoformat(created["updatedAt"])
    after = datetime.fromisoformat(result.body["tablet"]["updatedAt"])
    assert after > before


async def test_update_treats_null_as_unchanged_and_zero_price_as_value(call):
    created = await _create(call)
    result = await call(
        operations.update_tablet, created["id"], {"name": None, "price": 0},
    )
    assert result.body["tablet"]["name"] == "Paracetamol"
    assert result.body["tablet"]["price"] == 0.0


async def test_update_unknown_id_returns_404(call):
    result = await call(operations.update_tablet, "missing", {"price": 1.0})
    assert result.status_code == 404


async def test_update_empty_id_returns_400(call):
    result = await call(operations.update_tablet, "", {"price": 1.0})
    assert result.status_code == 400


async def test_update_to_existing_name_returns_400(call):
    await _create(call, name="Aspirin")
    other = await _create(call, name="Ibuprofen")
    result = await call(operations.update_tablet, other["id"], {"name": "Aspirin"})
    assert result.status_code == 400
    assert result.body["code"] == "DUPLICATE_ENTRY"


# ─── delete ──────────────────────────────────────────────────────

async def test_delete_then_delete_again_returns_204_then_404(call):
    created = await _create(call)
    first = await call(operations.delete_tablet, created["id"])
    second = await call(operations.delete_tablet, created["id"])
    assert first.status_code == 204
    assert first.body is None
    assert second.status_code == 404


async def test_delete_empty_id_returns_400(call):
    result = await call(operations.delete_tablet, "")
    assert result.status_code == 400


async def test_full_lifecycle_scenario(call):
    created = await _create(call)
    fetched = await call(operations.get_tablet, created["id"])
    assert fetched.body["tablet"] == created

    updated = await call(operations.update_tablet, created["id"], {"price": 3.0})
    assert updated.body["tablet"]["price"] == 3.0
    assert updated.body["tablet"]["name"] == created["name"]

    deleted = await call(operations.delete_tablet, created["id"])
    assert deleted.status_code == 204
    gone = await call(operations.get_tablet, created["id"])
    assert gone.status_code == 404


async def test_failures_are_logged_with_code_severity_and_category(call, caplog):
    caplog.set_level(logging.INFO, logger="tablets_api.services.tablet_operations")
    await call(operations.get_tablet, "does-not-exist")
    record = next(r for r in caplog.records if getattr(r, "error_code", None))
    assert record.error_code == "RESOURCE_NOT_FOUND"
    assert record.severity == "info"
    assert record.category == "resource_not_found"
    assert record.status_code == 404
    assert record.operation == "get"
