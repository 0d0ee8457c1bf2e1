"""
Badge rules.

Purpose
-------
Decide which achievement badges an unlocked set earns against the current
catalog. Rules are pure; display names and descriptions are cosmetic and
come from `ConfigManager` (`badges.<id>.name`).

Rules
-----
- first-find: at least one treasure unlocked
- category-sweep(academic): every academic treasure unlocked, and at least
  one academic treasure exists
- category-taste(social): at least one social treasure unlocked
- completionist: every catalog treasure unlocked, catalog non-empty

Badges already held are never revoked (see `merge_badges`), so a shrinking
catalog cannot take an award away.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Collection, Dict, FrozenSet, Iterable, Protocol, Tuple

from src.core.config.manager import ConfigManager
from src.database.models.enums import TreasureCategory
from src.modules.shared.constants import (
    BADGE_ACADEMIC_SWEEP,
    BADGE_COMPLETIONIST,
    BADGE_FIRST_FIND,
    BADGE_SOCIAL_TASTE,
)


class CatalogEntry(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def category(self) -> TreasureCategory: ...


BadgeRule = Callable[[FrozenSet[str], Tuple[CatalogEntry, ...]], bool]


def _category_ids(catalog: Tuple[CatalogEntry, ...], category: TreasureCategory) -> FrozenSet[str]:
    return frozenset(t.id for t in catalog if TreasureCategory(t.category) == category)


def _first_find(unlocked: FrozenSet[str], catalog: Tuple[CatalogEntry, ...]) -> bool:
    return len(unlocked) >= 1


def _academic_sweep(unlocked: FrozenSet[str], catalog: Tuple[CatalogEntry, ...]) -> bool:
    academic = _category_ids(catalog, TreasureCategory.ACADEMIC)
    return bool(academic) and academic <= unlocked


def _social_taste(unlocked: FrozenSet[str], catalog: Tuple[CatalogEntry, ...]) -> bool:
    return bool(_category_ids(catalog, TreasureCategory.SOCIAL) & unlocked)


def _completionist(unlocked: FrozenSet[str], catalog: Tuple[CatalogEntry, ...]) -> bool:
    return bool(catalog) and all(t.id in unlocked for t in catalog)


# Canonical order; newly earned badges are reported in this order.
BADGE_RULES: Tuple[Tuple[str, BadgeRule], ...] = (
    (BADGE_FIRST_FIND, _first_find),
    (BADGE_ACADEMIC_SWEEP, _academic_sweep),
    (BADGE_SOCIAL_TASTE, _social_taste),
    (BADGE_COMPLETIONIST, _completionist),
)

ALL_BADGE_IDS: Tuple[str, ...] = tuple(badge_id for badge_id, _ in BADGE_RULES)


def evaluate_badges(
    unlocked_ids: Iterable[str], catalog: Iterable[CatalogEntry]
) -> FrozenSet[str]:
    """Every badge the unlocked set qualifies for right now."""
    unlocked = frozenset(unlocked_ids)
    entries = tuple(catalog)
    return frozenset(badge_id for badge_id, rule in BADGE_RULES if rule(unlocked, entries))


def order_badges(badge_ids: Collection[str]) -> Tuple[str, ...]:
    """Canonical rule order first, unknown ids after in sorted order."""
    known = [badge_id for badge_id in ALL_BADGE_IDS if badge_id in badge_ids]
    unknown = sorted(set(badge_ids) - set(ALL_BADGE_IDS))
    return (*known, *unknown)


def merge_badges(previous: Iterable[str], evaluated: Collection[str]) -> Tuple[str, ...]:
    """
    Union of held and evaluated badges.

    Held badges keep their earn order; new ones are appended in canonical
    order. Nothing held is ever dropped.

    >>> merge_badges(["completionist"], {"first-find"})
    ('completionist', 'first-find')
    """
    held = list(dict.fromkeys(previous))
    held_set = set(held)
    return (*held, *(badge for badge in order_badges(evaluated) if badge not in held_set))


@dataclass(frozen=True)
class BadgeInfo:
    id: str
    name: str
    description: str


def describe_badge(badge_id: str) -> BadgeInfo:
    """Display metadata for a badge; unknown ids fall back to the id itself."""
    meta: Dict[str, str] = ConfigManager.get(f"badges.{badge_id}", {}) or {}
    return BadgeInfo(
        id=badge_id,
        name=str(meta.get("name", badge_id)),
        description=str(meta.get("description", "")),
    )
