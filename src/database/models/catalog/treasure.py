"""
Treasure: a GPS-tagged campus landmark.
Schema only; read-only for the progress engine.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Enum, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, TimestampMixin
from src.database.models.enums import TreasureCategory


class Treasure(Base, TimestampMixin):
    """
    Catalog entry for a landmark that can be unlocked by scanning its QR marker.

    The primary key is the opaque id printed in the marker payload
    (`geohunt:<id>`), so it is a string rather than a surrogate integer.
    """

    __tablename__ = "treasures"
    __table_args__ = (Index("ix_treasures_category", "category"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    clue: Mapped[str] = mapped_column(String(300), nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    points: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[TreasureCategory] = mapped_column(
        Enum(TreasureCategory, name="treasure_category", native_enum=False, length=16),
        nullable=False,
    )

    trivia: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    def __repr__(self) -> str:
        return f"<Treasure id={self.id!r} name={self.name!r} points={self.points}>"
