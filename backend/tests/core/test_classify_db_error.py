"""Backend Failure Classification: database exceptions → BackendFailure → TabletsError.

Tests:
    - SQLSTATE codes (asyncpg sqlstate, psycopg pgcode) map to their category
    - The wrapper chain is walked (SQLAlchemy .orig, __cause__)
    - OS-level and invalidated-connection failures are connection failures
    - SQLite message text is the fallback when no SQLSTATE exists
    - Anything else is UNKNOWN → InternalError with the raw message
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, ProgrammingError

from tablets_api.core.classify_db_error import (
    backend_message, classify_db_error, extract_sqlstate, translate_db_error,
)
from tablets_api.core.domain_types import BackendFailure
from tablets_api.core.errors import (
    DatabaseConnectionError,
    DuplicateEntryError,
    FieldConstraintError,
    ForeignKeyError,
    InternalError,
    SchemaError,
)


class FakePostgresError(Exception):
    """Stands in for an asyncpg exception: carries a sqlstate attribute."""
    def __init__(self, message: str, sqlstate: str):
        super().__init__(message)
        self.sqlstate = sqlstate


def _wrapped(orig: BaseException, cls=IntegrityError):
    return cls("INSERT INTO ...", {}, orig)


@pytest.mark.parametrize(("sqlstate", "expected"), [
    ("23505", BackendFailure.UNIQUE_VIOLATION),
    ("23503", BackendFailure.FOREIGN_KEY_VIOLATION),
    ("23502", BackendFailure.FIELD_CONSTRAINT),
    ("23514", BackendFailure.FIELD_CONSTRAINT),
    ("22003", BackendFailure.FIELD_CONSTRAINT),
    ("42P01", BackendFailure.MISSING_RELATION),
    ("08006", BackendFailure.CONNECTION),
    ("57P01", BackendFailure.CONNECTION),
    ("28P01", BackendFailure.CONNECTION),
    ("3D000", BackendFailure.CONNECTION),
    ("42601", BackendFailure.UNKNOWN),
])
def test_sqlstate_classification(sqlstate, expected):
    exc = _wrapped(FakePostgresError("backend says no", sqlstate))
    assert classify_db_error(exc) == expected


def test_sqlstate_found_through_cause_chain():
    inner = FakePostgresError("duplicate key value", "23505")
    adapter = Exception("adapter wrapper")
    adapter.__cause__ = inner
    assert extract_sqlstate(_wrapped(adapter)) == "23505"
    assert classify_db_error(_wrapped(adapter)) == BackendFailure.UNIQUE_VIOLATION


def test_psycopg_pgcode_is_read():
    orig = Exception("relation does not exist")
    orig.pgcode = "42P01"
    assert classify_db_error(_wrapped(orig, ProgrammingError)) == BackendFailure.MISSING_RELATION


def test_os_errors_are_connection_failures():
    assert classify_db_error(ConnectionRefusedError(111, "refused")) == BackendFailure.CONNECTION
    assert classify_db_error(TimeoutError()) == BackendFailure.CONNECTION


def test_invalidated_connection_is_connection_failure():
    exc = OperationalError("SELECT 1", {}, Exception("server closed"), connection_invalidated=True)
    assert classify_db_error(exc) == BackendFailure.CONNECTION


@pytest.mark.parametrize(("message", "expected"), [
    ("no such table: Tablet", BackendFailure.MISSING_RELATION),
    ("UNIQUE constraint failed: Tablet.name", BackendFailure.UNIQUE_VIOLATION),
    ("FOREIGN KEY constraint failed", BackendFailure.FOREIGN_KEY_VIOLATION),
    ("NOT NULL constraint failed: Tablet.name", BackendFailure.FIELD_CONSTRAINT),
    ("CHECK constraint failed: Tablet_price_check", BackendFailure.FIELD_CONSTRAINT),
    ("unable to open database file", BackendFailure.CONNECTION),
    ("disk I/O gremlins", BackendFailure.UNKNOWN),
])
def test_sqlite_message_fallback(message, expected):
    assert classify_db_error(_wrapped(Exception(message), OperationalError)) == expected


def test_backend_message_strips_statement_suffix():
    exc = _wrapped(Exception("UNIQUE constraint failed: Tablet.name"))
    assert backend_message(exc) == "UNIQUE constraint failed: Tablet.name"


@pytest.mark.parametrize(("sqlstate", "error_cls"), [
    ("08001", DatabaseConnectionError),
    ("42P01", SchemaError),
    ("23505", DuplicateEntryError),
    ("23503", ForeignKeyError),
    ("23514", FieldConstraintError),
    ("XX000", InternalError),
])
def test_translate_maps_failure_to_error(sqlstate, error_cls):
    error = translate_db_error(_wrapped(FakePostgresError("raw", sqlstate)))
    assert isinstance(error, error_cls)


def test_unknown_failure_surfaces_raw_message():
    error = translate_db_error(_wrapped(FakePostgresError("something odd", "XX000")))
    assert error.to_response()["details"] == "something odd"
    assert error.code == "INTERNAL_ERROR"
