"""Services Layer: Resource Operations, their repository, and diagnostics.

Invariants:
    - Operations return OperationResult; routes only render it
    - All SQL lives in tablet_repository.py

Design Decisions:
    - Operations split from repository: status-code decisions separate from statements
"""
