"""Error Hierarchy: typed, categorized exceptions for every Tablets API failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every error has a human title (the "error" key) and a message (the "details" key)
    - Uniqueness violations are 400; referential/field violations are 500
    - to_response() produces the REST envelope; to_result() produces an OperationResult

Design Decisions:
    - Single hierarchy with TabletsError base: FastAPI global handler catches all (ADR: uniform error shape)
    - Flat envelope {error, details, code}: the frontend reads body.error directly
    - Raw backend messages surfaced in details: internal/admin service (ADR: operator diagnosis)
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone

from tablets_api.core.domain_types import OperationResult


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    AUTHORIZATION = "authorization"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Context attached to an error for logging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tablet_id: str | None = None
    operation: str | None = None


class TabletsError(Exception):
    """Base exception for all Tablets API errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        title: str = "Internal Server Error",
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.title = title

    def to_response(self) -> dict:
        """Convert to standardized REST error body."""
        return {
            "error": self.title,
            "details": self.message,
            "code": self.code,
        }

    def to_result(self) -> OperationResult:
        """Convert to an OperationResult carrying this error's status and body."""
        return OperationResult(self.http_status, self.to_response())


# ─── Request Errors (400-level) ─────────────────────────────────

class InvalidInputError(TabletsError):
    """Request input is missing or malformed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, "Invalid Request",
        )
        self.field = field

    def to_response(self) -> dict:
        body = super().to_response()
        body["fields"] = [self.field]
        return body


class MissingFieldsError(TabletsError):
    """Required fields absent from a create payload."""
    def __init__(self, missing: list[str], context: ErrorContext | None = None):
        super().__init__(
            f"Missing required fields: {', '.join(missing)}",
            "MISSING_FIELDS", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, "Missing required fields",
        )
        self.missing = missing

    def to_response(self) -> dict:
        body = super().to_response()
        body["fields"] = list(self.missing)
        return body


class DuplicateEntryError(TabletsError):
    """Uniqueness constraint on the tablet name violated."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A tablet with this name already exists.",
            "DUPLICATE_ENTRY", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 400, "Duplicate Entry",
        )


class UnauthorizedError(TabletsError):
    """Bearer token missing or wrong."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "A valid bearer token is required.",
            "UNAUTHORIZED", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 401, "Unauthorized",
        )


class ResourceNotFoundError(TabletsError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, context, 404, f"{resource_type} not found",
        )
        self.resource_id = resource_id


# ─── Server Errors (500-level) ──────────────────────────────────

class ConfigurationError(TabletsError):
    """A required setting is absent."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500, "Configuration Error",
        )


class DatabaseConnectionError(TabletsError):
    """Database unreachable."""
    def __init__(self, raw_message: str = "", context: ErrorContext | None = None):
        super().__init__(
            "Cannot connect to database. Check your DATABASE_URL environment variable.",
            "DATABASE_CONNECTION_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500, "Database Connection Error",
        )
        self.raw_message = raw_message


class SchemaError(TabletsError):
    """Expected relation is missing."""
    def __init__(
        self,
        message: str = "Table does not exist. Run database migrations.",
        raw_message: str = "",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "SCHEMA_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500, "Database Error",
        )
        self.raw_message = raw_message


class ForeignKeyError(TabletsError):
    """Referential integrity violated."""
    def __init__(self, raw_message: str = "", context: ErrorContext | None = None):
        super().__init__(
            "Foreign key constraint failed.",
            "FOREIGN_KEY_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.ERROR, context, 500, "Database Error",
        )
        self.raw_message = raw_message


class FieldConstraintError(TabletsError):
    """A column value violates its constraint (not null, check, type range)."""
    def __init__(self, raw_message: str = "", context: ErrorContext | None = None):
        super().__init__(
            "Value violates field constraint.",
            "VALUE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.ERROR, context, 500, "Database Error",
        )
        self.raw_message = raw_message


class InternalError(TabletsError):
    """Unclassified backend failure; carries the backend message verbatim."""
    def __init__(self, raw_message: str, context: ErrorContext | None = None):
        super().__init__(
            raw_message or "Unknown error occurred",
            "INTERNAL_ERROR", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500, "Internal Server Error",
        )
        self.raw_message = raw_message
