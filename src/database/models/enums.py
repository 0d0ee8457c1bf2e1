"""
Database Model Enums
====================

Type-safe constants for categorical columns. Declarative schema helpers
only; the rules that use them live in the service layer.
"""

from __future__ import annotations

import enum


class TreasureCategory(str, enum.Enum):
    """Closed set of treasure categories used by the badge rules."""

    ACADEMIC = "academic"
    SOCIAL = "social"
    SPORTS = "sports"
    HISTORY = "history"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]
