"""API Layer: FastAPI routes, result rendering and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return JSON, except 204 deletes and OPTIONS short-circuits

Design Decisions:
    - Thin routes delegate to services
"""
