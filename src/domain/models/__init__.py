"""
Domain models.

Rich models that hold game rules, separate from the SQLAlchemy schema.
Services load ORM rows, convert them with `from_db`, run the rules, and copy
the result back with `apply_to_db`.
"""

from .base import (
    AggregateRoot,
    DomainEvent,
    DomainValidationError,
    Entity,
    validate_non_negative,
    validate_not_empty,
    validate_positive,
    validate_range,
)
from .progress import PlayerProgress, PlayerProgressView, UnlockResult
from .treasure import Coordinate, Treasure

__all__ = [
    "Entity",
    "AggregateRoot",
    "DomainEvent",
    "DomainValidationError",
    "validate_positive",
    "validate_non_negative",
    "validate_range",
    "validate_not_empty",
    "PlayerProgress",
    "PlayerProgressView",
    "UnlockResult",
    "Coordinate",
    "Treasure",
]
