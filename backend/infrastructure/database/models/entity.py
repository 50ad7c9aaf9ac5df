"""Generic keyed-entity table backing the SQL entity store."""
from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class EntityRecord(Base, TimestampMixin):
    """One entity of a logical table (Projects, Slots, SlotVolunteers, ...)."""

    __tablename__ = "entities"

    table_name: Mapped[str] = mapped_column(String(63), primary_key=True)
    partition_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    row_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    # Opaque version token, replaced on every write
    etag: Mapped[str] = mapped_column(String(64), nullable=False)
    properties: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<EntityRecord {self.table_name}/{self.partition_key}/{self.row_key}>"
