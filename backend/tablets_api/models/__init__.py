"""ORM Models: SQLAlchemy declarative models for the domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Tablet is the only entity

Design Decisions:
    - One file per entity for locality
    - Models imported here so Base.metadata is populated before any create_all
"""

from tablets_api.models.tablet import Tablet  # noqa: F401
