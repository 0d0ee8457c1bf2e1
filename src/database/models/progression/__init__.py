"""
Progression domain ORM models.

Exports:
- PlayerProgress
"""

from .player_progress import PlayerProgress

__all__ = ["PlayerProgress"]
