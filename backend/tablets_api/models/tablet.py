"""Tablet ORM: the single managed resource, a medicinal product record.

Invariants:
    - id is an opaque string primary key, generated here (UUID4), never updated
    - name is unique (Tablet_name_key); price is non-negative (Tablet_price_check)
    - created_at set once on insert; updated_at set on insert and on every UPDATE

Design Decisions:
    - Table "Tablet" with camelCase columns: same physical schema as the deployment
      that predates this service, so existing databases keep working
    - Python-side defaults/onupdate over server defaults: Core INSERT/UPDATE
      statements with RETURNING pick them up without a second round-trip
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Float, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tablets_api.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Tablet(Base):
    """Tablet entity."""
    __tablename__ = "Tablet"
    __table_args__ = (
        UniqueConstraint("name", name="Tablet_name_key"),
        CheckConstraint('"price" >= 0', name="Tablet_price_check"),
    )

    id: Mapped[str] = mapped_column(
        "id", Text, primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column("name", Text, nullable=False)
    generic_name: Mapped[str] = mapped_column("genericName", Text, nullable=False)
    price: Mapped[float] = mapped_column("price", Float, nullable=False)
    description: Mapped[str | None] = mapped_column(
        "description", Text, nullable=True, default="",
    )
    created_at: Mapped[datetime] = mapped_column(
        "createdAt", DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )
