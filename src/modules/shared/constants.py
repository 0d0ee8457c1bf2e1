"""
GeoHunt ruleset constants.

Purpose
-------
The fixed numbers that decide whether a scan unlocks a treasure and how
points turn into levels. They are deliberately code, not configuration:
changing any of them changes the meaning of stored progress.

Bump `RULESET_VERSION` whenever one of the scoring or gating values below
changes so stored records can be told apart.
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# QR PAYLOADS
# ============================================================================

QR_NAMESPACE: Final[str] = "geohunt"
QR_SEPARATOR: Final[str] = ":"

# ============================================================================
# PROXIMITY
# ============================================================================

PROXIMITY_THRESHOLD_METERS: Final[float] = 50.0
EARTH_RADIUS_METERS: Final[float] = 6_371_000.0

# ============================================================================
# LEVELING
# ============================================================================

POINTS_PER_LEVEL: Final[int] = 200
STARTING_LEVEL: Final[int] = 1

RULESET_VERSION: Final[int] = 1

# ============================================================================
# BADGES
# ============================================================================

BADGE_FIRST_FIND: Final[str] = "first-find"
BADGE_ACADEMIC_SWEEP: Final[str] = "category-sweep(academic)"
BADGE_SOCIAL_TASTE: Final[str] = "category-taste(social)"
BADGE_COMPLETIONIST: Final[str] = "completionist"

# ============================================================================
# TREASURE FIELD LIMITS
# ============================================================================

TREASURE_ID_MAX_LENGTH: Final[int] = 64
TREASURE_NAME_MAX_LENGTH: Final[int] = 100
TREASURE_DESCRIPTION_MAX_LENGTH: Final[int] = 500
TREASURE_CLUE_MAX_LENGTH: Final[int] = 300
TREASURE_TRIVIA_MAX_LENGTH: Final[int] = 500

PLAYER_ID_MAX_LENGTH: Final[int] = 128
WELCOME_TEXT_MAX_LENGTH: Final[int] = 2000
