"""Pydantic Schemas: request/response shapes for API endpoints.

Invariants:
    - Schemas validate at the system boundary (raw field bags, API responses)

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence (ADR: DDD boundary)
"""
