"""Backend Failure Classification: maps a database exception to a BackendFailure.

Invariants:
    - Pure: inspects exception attributes only, never touches a connection
    - Total: every exception maps to exactly one BackendFailure (UNKNOWN as fallback)
    - Structured codes win: SQLSTATE is consulted before exception type,
      exception type before message text
    - Message matching is reserved for drivers without SQLSTATE (SQLite)

Design Decisions:
    - Duck-typed over isinstance on SQLAlchemy classes: core stays free of
      infrastructure imports (ADR: dependency arrows point inward)
    - Walks the wrapper chain (exc, exc.orig, exc.__cause__): SQLAlchemy wraps
      the DBAPI error, and the asyncpg adapter wraps asyncpg's own exception
"""

from tablets_api.core.domain_types import BackendFailure
from tablets_api.core.errors import (
    DatabaseConnectionError,
    DuplicateEntryError,
    ErrorContext,
    FieldConstraintError,
    ForeignKeyError,
    InternalError,
    SchemaError,
    TabletsError,
)


# PostgreSQL SQLSTATE codes (Appendix A of the PostgreSQL manual)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_NOT_NULL_VIOLATION = "23502"
_CHECK_VIOLATION = "23514"
_UNDEFINED_TABLE = "42P01"

_CONNECTION_SQLSTATES = frozenset({
    "57P01",  # admin_shutdown
    "57P02",  # crash_shutdown
    "57P03",  # cannot_connect_now
    "3D000",  # invalid_catalog_name
    "28000",  # invalid_authorization_specification
    "28P01",  # invalid_password
    "53300",  # too_many_connections
})

_SQLITE_MESSAGES: tuple[tuple[str, BackendFailure], ...] = (
    ("no such table", BackendFailure.MISSING_RELATION),
    ("unique constraint failed", BackendFailure.UNIQUE_VIOLATION),
    ("foreign key constraint failed", BackendFailure.FOREIGN_KEY_VIOLATION),
    ("not null constraint failed", BackendFailure.FIELD_CONSTRAINT),
    ("check constraint failed", BackendFailure.FIELD_CONSTRAINT),
    ("datatype mismatch", BackendFailure.FIELD_CONSTRAINT),
    ("unable to open database file", BackendFailure.CONNECTION),
)


def classify_db_error(exc: BaseException) -> BackendFailure:
    """Classify a database exception into the closed BackendFailure set."""
    chain = _exception_chain(exc)

    if any(isinstance(e, (OSError, TimeoutError)) for e in chain):
        return BackendFailure.CONNECTION
    if any(getattr(e, "connection_invalidated", False) for e in chain):
        return BackendFailure.CONNECTION

    sqlstate = extract_sqlstate(exc)
    if sqlstate:
        return _classify_sqlstate(sqlstate)

    text = backend_message(exc).lower()
    for needle, failure in _SQLITE_MESSAGES:
        if needle in text:
            return failure
    return BackendFailure.UNKNOWN


def extract_sqlstate(exc: BaseException) -> str | None:
    """First SQLSTATE found along the wrapper chain (asyncpg, psycopg, psycopg2)."""
    for e in _exception_chain(exc):
        for attr in ("sqlstate", "pgcode"):
            code = getattr(e, attr, None)
            if isinstance(code, str) and code:
                return code
    return None


def backend_message(exc: BaseException) -> str:
    """Backend's own message, without SQLAlchemy's statement/parameter suffix."""
    orig = getattr(exc, "orig", None)
    source = orig if orig is not None else exc
    return str(source).strip() or type(source).__name__


def _classify_sqlstate(sqlstate: str) -> BackendFailure:
    if sqlstate == _UNIQUE_VIOLATION:
        return BackendFailure.UNIQUE_VIOLATION
    if sqlstate == _FOREIGN_KEY_VIOLATION:
        return BackendFailure.FOREIGN_KEY_VIOLATION
    if sqlstate in (_NOT_NULL_VIOLATION, _CHECK_VIOLATION):
        return BackendFailure.FIELD_CONSTRAINT
    if sqlstate == _UNDEFINED_TABLE:
        return BackendFailure.MISSING_RELATION
    if sqlstate.startswith("08") or sqlstate in _CONNECTION_SQLSTATES:
        return BackendFailure.CONNECTION
    if sqlstate.startswith("22"):  # data_exception class
        return BackendFailure.FIELD_CONSTRAINT
    return BackendFailure.UNKNOWN


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    pending: list[object] = [exc]
    while pending:
        current = pending.pop(0)
        if not isinstance(current, BaseException):
            continue
        if any(current is seen for seen in chain):
            continue
        chain.append(current)
        pending.append(getattr(current, "orig", None))
        pending.append(current.__cause__)
    return chain


_FAILURE_TO_ERROR = {
    BackendFailure.CONNECTION: lambda raw, ctx: DatabaseConnectionError(raw, ctx),
    BackendFailure.MISSING_RELATION: lambda raw, ctx: SchemaError(raw_message=raw, context=ctx),
    BackendFailure.UNIQUE_VIOLATION: lambda raw, ctx: DuplicateEntryError(ctx),
    BackendFailure.FOREIGN_KEY_VIOLATION: lambda raw, ctx: ForeignKeyError(raw, ctx),
    BackendFailure.FIELD_CONSTRAINT: lambda raw, ctx: FieldConstraintError(raw, ctx),
    BackendFailure.UNKNOWN: lambda raw, ctx: InternalError(raw, ctx),
}


def translate_db_error(
    exc: BaseException, context: ErrorContext | None = None,
) -> TabletsError:
    """Map a database exception onto the error taxonomy."""
    failure = classify_db_error(exc)
    return _FAILURE_TO_ERROR[failure](backend_message(exc), context)
