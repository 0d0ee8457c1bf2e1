"""
Request schemas for engine operations.

Purpose
-------
Each public operation accepts raw values from an outer layer (HTTP handler,
admin script, test). These frozen dataclasses validate and normalize those
values through `InputValidator` in `from_raw()`, so services only ever see
well-formed input.

Usage
-----
    request = UnlockRequest.from_raw(player_id=" p-1 ", treasure_id="grand-library")
    request.player_id  # "p-1"
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from src.core.validation.input_validator import InputValidator
from src.database.models.enums import TreasureCategory
from src.modules.shared.constants import (
    TREASURE_CLUE_MAX_LENGTH,
    TREASURE_DESCRIPTION_MAX_LENGTH,
    TREASURE_NAME_MAX_LENGTH,
    TREASURE_TRIVIA_MAX_LENGTH,
    WELCOME_TEXT_MAX_LENGTH,
)


@dataclass(frozen=True)
class UnlockRequest:
    player_id: str
    treasure_id: str

    @classmethod
    def from_raw(cls, player_id: Any, treasure_id: Any) -> "UnlockRequest":
        return cls(
            player_id=InputValidator.validate_player_id(player_id),
            treasure_id=InputValidator.validate_treasure_id(treasure_id),
        )


@dataclass(frozen=True)
class WelcomeTextInput:
    player_id: str
    text: Optional[str]

    @classmethod
    def from_raw(cls, player_id: Any, text: Any) -> "WelcomeTextInput":
        return cls(
            player_id=InputValidator.validate_player_id(player_id),
            text=InputValidator.validate_optional_string(
                text, "welcome_text", max_length=WELCOME_TEXT_MAX_LENGTH
            ),
        )


@dataclass(frozen=True)
class TreasureInput:
    """Validated fields for a new catalog entry."""

    id: str
    name: str
    description: str
    clue: str
    latitude: float
    longitude: float
    points: int
    category: TreasureCategory
    trivia: Optional[str] = None

    @classmethod
    def from_raw(
        cls,
        *,
        id: Any,
        name: Any,
        description: Any,
        clue: Any,
        latitude: Any,
        longitude: Any,
        points: Any,
        category: Any,
        trivia: Any = None,
    ) -> "TreasureInput":
        return cls(
            id=InputValidator.validate_treasure_id(id, "id"),
            name=InputValidator.validate_string(
                name, "name", min_length=1, max_length=TREASURE_NAME_MAX_LENGTH
            ),
            description=InputValidator.validate_string(
                description, "description", min_length=1, max_length=TREASURE_DESCRIPTION_MAX_LENGTH
            ),
            clue=InputValidator.validate_string(
                clue, "clue", min_length=1, max_length=TREASURE_CLUE_MAX_LENGTH
            ),
            latitude=InputValidator.validate_latitude(latitude),
            longitude=InputValidator.validate_longitude(longitude),
            points=InputValidator.validate_positive_integer(points, "points"),
            category=TreasureCategory(
                InputValidator.validate_choice(category, "category", TreasureCategory.values())
            ),
            trivia=InputValidator.validate_optional_string(
                trivia, "trivia", max_length=TREASURE_TRIVIA_MAX_LENGTH
            ),
        )
