"""Infrastructure Layer: database client and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All database failures leave this layer mapped to core/errors.py types

Design Decisions:
    - Thin wrappers over SQLAlchemy (ADR: single responsibility)
"""
