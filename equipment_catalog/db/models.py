from __future__ import annotations

import datetime as dt
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from equipment_catalog.db.base import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# -------- Hierarchy --------

MAX_LEVEL = 4
LEVEL_LABELS = {1: "domain", 2: "type", 3: "category", 4: "subcategory"}


class TypeNode(Base):
    """One node of the domain → type → category → subcategory tree."""

    __tablename__ = "equipment_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("equipment_types.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, index=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # NULL parents are distinct to SQL; the integrity guard covers the root bucket.
        UniqueConstraint("name", "parent_id", name="uq_equipment_types_name_parent"),
    )

    @property
    def level_label(self) -> Optional[str]:
        return LEVEL_LABELS.get(int(self.level))

    def __repr__(self) -> str:
        return f"TypeNode(id={self.id!r}, name={self.name!r}, level={self.level!r}, parent_id={self.parent_id!r})"


# -------- Catalog --------


class Equipment(Base):
    __tablename__ = "equipments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    equipment_type_id: Mapped[int] = mapped_column(
        ForeignKey("equipment_types.id", ondelete="RESTRICT"),
        index=True,
    )
    brand: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    model: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Logical deletion marker; only written when EQUIPMENT_SOFT_DELETE is enabled.
    is_deleted: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_equipments_is_deleted", "is_deleted"),
    )
