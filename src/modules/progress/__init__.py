"""
Progress module.

The unlock engine, level curve, badge rules and progress persistence.
"""

from .badges import (
    ALL_BADGE_IDS,
    BadgeInfo,
    describe_badge,
    evaluate_badges,
    merge_badges,
    order_badges,
)
from .level import calculate_level, level_progress_percent, points_into_level, points_to_next_level
from .service import ProgressService
from .store import KeyedLockRegistry, ProgressRepository

__all__ = [
    "ProgressService",
    "ProgressRepository",
    "KeyedLockRegistry",
    "calculate_level",
    "points_into_level",
    "points_to_next_level",
    "level_progress_percent",
    "ALL_BADGE_IDS",
    "BadgeInfo",
    "describe_badge",
    "evaluate_badges",
    "merge_badges",
    "order_badges",
]
