"""
Database Models Package
========================

SQLAlchemy ORM models for the GeoHunt progress engine, organized by domain.

- Schema only, no business logic
- `Mapped[]` syntax with `mapped_column()`
- Shared mixins from `src.core.database.base`
- Optimistic locking via `version` on mutable per-player rows

Domain Organization:
--------------------
- catalog: Treasure landmarks (read-only to the engine)
- progression: Per-player unlock state
- enums: Shared enumerations
"""

from src.core.database.base import Base

from .catalog import Treasure
from .progression import PlayerProgress

from . import enums

__all__ = [
    "Base",
    "Treasure",
    "PlayerProgress",
    "enums",
]
