"""Domain Types: rich types that replace bare primitives across the codebase.

Invariants:
    - TabletId wraps the opaque string id generated by the persistence layer
    - BackendFailure is the closed set of backend failure categories; every
      database exception classifies into exactly one member
    - OperationResult is the only return type of a Resource Operation

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
    - OperationResult frozen: results are values, routers only read them
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, NewType


# ─── Identity Types ──────────────────────────────────────────────

TabletId = NewType("TabletId", str)


# ─── Enums ───────────────────────────────────────────────────────

class BackendFailure(str, Enum):
    """Categories a database exception can fall into."""
    CONNECTION = "connection"
    MISSING_RELATION = "missing_relation"
    UNIQUE_VIOLATION = "unique_violation"
    FOREIGN_KEY_VIOLATION = "foreign_key_violation"
    FIELD_CONSTRAINT = "field_constraint"
    UNKNOWN = "unknown"


class TabletField(str, Enum):
    """JSON keys accepted in a tablet field bag."""
    NAME = "name"
    GENERIC_NAME = "genericName"
    PRICE = "price"
    DESCRIPTION = "description"


# ─── Results ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class OperationResult:
    """Normalized (status code, body) pair returned by every Resource Operation.

    body is None only for 204 responses.
    """
    status_code: int
    body: dict[str, Any] | None = None
