"""
Flavor module.

Cosmetic text with guaranteed static fallbacks.
"""

from .service import FallbackFlavorText, FlavorKind, FlavorTextGenerator

__all__ = ["FallbackFlavorText", "FlavorKind", "FlavorTextGenerator"]
