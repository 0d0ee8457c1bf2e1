"""
Catalog module.

Campus treasures: listing, lookup, admin creation and default seeding.
"""

from .service import DEFAULT_CATALOG, TreasureCatalogService, TreasureRepository

__all__ = ["DEFAULT_CATALOG", "TreasureCatalogService", "TreasureRepository"]
