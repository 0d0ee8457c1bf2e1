"""
Level curve.

Flat curve: every `POINTS_PER_LEVEL` points is one level, starting at 1.

    0..199 -> 1, 200..399 -> 2, 650 -> 4
"""

from __future__ import annotations

from src.modules.shared.constants import POINTS_PER_LEVEL, STARTING_LEVEL


def _require_non_negative(points: int) -> None:
    if points < 0:
        raise ValueError(f"points must be non-negative, got {points}")


def calculate_level(points: int) -> int:
    _require_non_negative(points)
    return points // POINTS_PER_LEVEL + STARTING_LEVEL


def points_into_level(points: int) -> int:
    """Points earned since the current level started."""
    _require_non_negative(points)
    return points % POINTS_PER_LEVEL


def points_to_next_level(points: int) -> int:
    """Points still needed to reach the next level; always >= 1."""
    return POINTS_PER_LEVEL - points_into_level(points)


def level_progress_percent(points: int) -> float:
    """Progress bar fill for the current level, 0.0 to 100.0."""
    return points_into_level(points) / POINTS_PER_LEVEL * 100.0
