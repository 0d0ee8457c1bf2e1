"""
Treasure domain model.

Immutable value objects for catalog landmarks. Services convert ORM rows
into these before any rule runs, so unlock and badge logic never touches
SQLAlchemy instances.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from src.database.models.enums import TreasureCategory
from src.domain.models.base import (
    DomainValidationError,
    validate_not_empty,
    validate_positive,
    validate_range,
)

if TYPE_CHECKING:
    from src.database.models.catalog.treasure import Treasure as TreasureDB


@dataclass(frozen=True)
class Coordinate:
    """WGS84 position in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            raise DomainValidationError("coordinates must be finite numbers", field="coordinate")
        validate_range(self.latitude, -90.0, 90.0, "latitude")
        validate_range(self.longitude, -180.0, 180.0, "longitude")


@dataclass(frozen=True)
class Treasure:
    """
    A landmark that can be unlocked once per player.

    Attributes
    ----------
    id : str
        Opaque identifier, also the suffix of the QR payload.
    points : int
        Strictly positive award.
    category : TreasureCategory
        Used by category badges.
    """

    id: str
    name: str
    description: str
    clue: str
    coordinate: Coordinate
    points: int
    category: TreasureCategory
    trivia: Optional[str] = None

    def __post_init__(self) -> None:
        validate_not_empty(self.id, "id")
        validate_not_empty(self.name, "name")
        validate_positive(self.points, "points")
        if not isinstance(self.category, TreasureCategory):
            object.__setattr__(self, "category", TreasureCategory(self.category))

    @classmethod
    def from_db(cls, row: "TreasureDB") -> "Treasure":
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            clue=row.clue,
            coordinate=Coordinate(row.latitude, row.longitude),
            points=row.points,
            category=row.category,
            trivia=row.trivia,
        )

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude
