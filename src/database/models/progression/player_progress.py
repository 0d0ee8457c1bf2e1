"""
PlayerProgress: per-player unlock state.
Schema only.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import JSON, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin

_JSONList = JSON().with_variant(JSONB(), "postgresql")


class PlayerProgress(Base, IdMixin, TimestampMixin):
    """
    One row per player, created lazily on first access.

    `unlocked_treasure_ids` and `badges` are ordered JSON lists. Assign new
    list objects when changing them; in-place mutation is not tracked.

    `version` is the mapper's `version_id_col`: every UPDATE carries
    `WHERE version = :old`, so a writer holding a stale copy fails with
    `StaleDataError` instead of overwriting.
    """

    __tablename__ = "player_progress"
    __table_args__ = (Index("ix_player_progress_player_id", "player_id", unique=True),)

    player_id: Mapped[str] = mapped_column(String(128), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False, doc="Optimistic locking version")

    unlocked_treasure_ids: Mapped[List[str]] = mapped_column(
        _JSONList, nullable=False, default=list
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    badges: Mapped[List[str]] = mapped_column(_JSONList, nullable=False, default=list)

    welcome_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    ruleset_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<PlayerProgress player_id={self.player_id!r} points={self.total_points} "
            f"level={self.level} version={self.version}>"
        )
