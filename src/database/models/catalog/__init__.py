"""
Catalog domain ORM models.

Exports:
- Treasure
"""

from .treasure import Treasure

__all__ = ["Treasure"]
