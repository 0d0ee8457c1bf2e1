"""
Player progress domain model.

Purpose
-------
`PlayerProgress` is the aggregate root for one player's unlock state. It
owns the invariants that make progress trustworthy:

- the unlocked list has no duplicates and keeps unlock order;
- total points equal the sum of unlocked treasure points;
- badges are only ever added, never revoked.

Level and badge rules are pure functions supplied by the caller, so the
aggregate stays independent of the service layer.

Domain Events
-------------
- `progress.treasure_unlocked`
- `progress.level_up` (only when the level increases)
- `progress.badge_earned` (one per newly earned badge)

Usage Example
-------------
>>> progress = PlayerProgress.new("p-1")
>>> earned = progress.record_unlock(treasure, new_level=1, badges=["first-find"])
>>> progress.get_pending_events()[0].event_name
'progress.treasure_unlocked'
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, List, Optional, Tuple

from src.domain.models.base import (
    AggregateRoot,
    DomainValidationError,
    validate_non_negative,
    validate_not_empty,
)
from src.domain.models.treasure import Treasure
from src.modules.shared.constants import RULESET_VERSION, STARTING_LEVEL
from src.modules.shared.exceptions import AlreadyUnlockedError

if TYPE_CHECKING:
    from src.database.models.progression.player_progress import (
        PlayerProgress as PlayerProgressDB,
    )


@dataclass(frozen=True)
class PlayerProgressView:
    """Read-only snapshot returned to callers."""

    player_id: str
    unlocked_treasure_ids: Tuple[str, ...]
    total_points: int
    level: int
    badges: Tuple[str, ...]
    welcome_text: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def unlocked_count(self) -> int:
        return len(self.unlocked_treasure_ids)

    def has_unlocked(self, treasure_id: str) -> bool:
        return treasure_id in self.unlocked_treasure_ids


@dataclass(frozen=True)
class UnlockResult:
    """Outcome of a successful unlock."""

    progress: PlayerProgressView
    message: str
    treasure: Treasure
    newly_earned_badges: Tuple[str, ...] = field(default_factory=tuple)
    leveled_up: bool = False


class PlayerProgress(AggregateRoot):
    """Aggregate root for a single player's progress."""

    def __init__(
        self,
        player_id: str,
        unlocked_treasure_ids: Iterable[str] = (),
        total_points: int = 0,
        level: int = STARTING_LEVEL,
        badges: Iterable[str] = (),
        welcome_text: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        validate_not_empty(player_id, "player_id")
        super().__init__(player_id)

        unlocked = list(unlocked_treasure_ids)
        if len(unlocked) != len(set(unlocked)):
            raise DomainValidationError(
                "unlocked treasure ids must be unique", field="unlocked_treasure_ids"
            )
        validate_non_negative(total_points, "total_points")

        self._unlocked: List[str] = unlocked
        self._total_points = total_points
        self._level = level
        self._badges: List[str] = list(dict.fromkeys(badges))
        self._welcome_text = welcome_text
        self._updated_at = updated_at

    # ------------------------------------------------------------------ #
    # Construction & persistence mapping
    # ------------------------------------------------------------------ #

    @classmethod
    def new(cls, player_id: str) -> "PlayerProgress":
        return cls(player_id)

    @classmethod
    def from_db(cls, row: "PlayerProgressDB") -> "PlayerProgress":
        return cls(
            player_id=row.player_id,
            unlocked_treasure_ids=row.unlocked_treasure_ids or [],
            total_points=row.total_points,
            level=row.level,
            badges=row.badges or [],
            welcome_text=row.welcome_text,
            updated_at=row.updated_at,
        )

    def apply_to_db(self, row: "PlayerProgressDB") -> None:
        """Copy state onto an ORM row, assigning fresh lists so changes are tracked."""
        row.unlocked_treasure_ids = list(self._unlocked)
        row.total_points = self._total_points
        row.level = self._level
        row.badges = list(self._badges)
        row.welcome_text = self._welcome_text
        row.ruleset_version = RULESET_VERSION

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    @property
    def player_id(self) -> str:
        return str(self.id)

    @property
    def unlocked_treasure_ids(self) -> Tuple[str, ...]:
        return tuple(self._unlocked)

    @property
    def total_points(self) -> int:
        return self._total_points

    @property
    def level(self) -> int:
        return self._level

    @property
    def badges(self) -> Tuple[str, ...]:
        return tuple(self._badges)

    @property
    def welcome_text(self) -> Optional[str]:
        return self._welcome_text

    def has_unlocked(self, treasure_id: str) -> bool:
        return treasure_id in self._unlocked

    def to_view(self, updated_at: Optional[datetime] = None) -> PlayerProgressView:
        return PlayerProgressView(
            player_id=self.player_id,
            unlocked_treasure_ids=self.unlocked_treasure_ids,
            total_points=self._total_points,
            level=self._level,
            badges=self.badges,
            welcome_text=self._welcome_text,
            updated_at=updated_at or self._updated_at,
        )

    # ------------------------------------------------------------------ #
    # Commands
    # ------------------------------------------------------------------ #

    def record_unlock(
        self,
        treasure: Treasure,
        new_level: int,
        badges: Iterable[str],
    ) -> Tuple[str, ...]:
        """
        Append a treasure, award its points and replace the badge list.

        Parameters
        ----------
        treasure : Treasure
            The resolved catalog entry.
        new_level : int
            Level computed from the new point total.
        badges : Iterable[str]
            The merged badge list after this unlock: every held badge plus
            whatever the rules newly award, in earn order.

        Returns
        -------
        Tuple[str, ...]
            Badge ids earned by this unlock, in list order.

        Raises
        ------
        AlreadyUnlockedError
            If the treasure is already in the unlocked list.
        DomainValidationError
            If `badges` drops a badge the player already holds.
        """
        if self.has_unlocked(treasure.id):
            raise AlreadyUnlockedError(self.player_id, treasure.id)

        merged = list(dict.fromkeys(badges))
        held = set(self._badges)
        if not held.issubset(merged):
            raise DomainValidationError("held badges cannot be revoked", field="badges")

        old_level = self._level
        self._unlocked = [*self._unlocked, treasure.id]
        self._total_points += treasure.points
        self._level = new_level

        newly_earned = tuple(badge for badge in merged if badge not in held)
        self._badges = merged

        self.add_domain_event(
            "progress.treasure_unlocked",
            {
                "player_id": self.player_id,
                "treasure_id": treasure.id,
                "points_awarded": treasure.points,
                "total_points": self._total_points,
                "unlocked_count": len(self._unlocked),
            },
        )
        if self._level > old_level:
            self.add_domain_event(
                "progress.level_up",
                {"player_id": self.player_id, "old_level": old_level, "new_level": self._level},
            )
        for badge in newly_earned:
            self.add_domain_event(
                "progress.badge_earned",
                {"player_id": self.player_id, "badge_id": badge, "treasure_id": treasure.id},
            )

        return newly_earned

    def reset(self) -> None:
        """Return to the initial state, welcome text included."""
        self._unlocked = []
        self._total_points = 0
        self._level = STARTING_LEVEL
        self._badges = []
        self._welcome_text = None
        self.add_domain_event("progress.reset", {"player_id": self.player_id})

    def set_welcome_text(self, text: Optional[str]) -> None:
        self._welcome_text = text
