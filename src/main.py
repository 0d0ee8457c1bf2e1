"""
GeoHunt engine - application bootstrap
======================================

Wires the infrastructure and services an outer layer (HTTP handlers, admin
scripts) needs:

- Config validation
- Logging
- Database initialization and schema creation
- ConfigManager (YAML) initialization
- Service construction around the global EventBus
- Default catalog seeding

Running this module provisions a local database and exits:

    python -m src.main
"""

import asyncio
import sys
from dataclasses import dataclass
from typing import Optional

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.event import EventBus, event_bus
from src.core.logging.logger import get_logger, setup_logging, shutdown_logging
from src.modules.catalog.service import TreasureCatalogService
from src.modules.flavor.service import FallbackFlavorText, FlavorTextGenerator
from src.modules.progress.service import ProgressService
from src.modules.progress.store import KeyedLockRegistry

logger = get_logger(__name__)


@dataclass
class GeoHuntEngine:
    """Service container handed to the outer layer."""

    event_bus: EventBus
    catalog: TreasureCatalogService
    progress: ProgressService
    flavor: FallbackFlavorText


def build_engine(
    bus: EventBus = event_bus,
    flavor_generator: Optional[FlavorTextGenerator] = None,
) -> GeoHuntEngine:
    """Construct services; one lock registry and one flavor facade per process."""
    flavor = FallbackFlavorText(flavor_generator, config_manager=ConfigManager)
    return GeoHuntEngine(
        event_bus=bus,
        catalog=TreasureCatalogService(bus),
        progress=ProgressService(bus, flavor=flavor, locks=KeyedLockRegistry()),
        flavor=flavor,
    )


# ============================================================================
# Application Bootstrap
# ============================================================================

async def startup(seed_catalog: bool = True) -> GeoHuntEngine:
    """Initialize all infrastructure components and build the services."""
    logger.info("========== GEOHUNT INITIALIZATION START ==========")

    try:
        Config.validate()
        logger.info("✓ Configuration validated", extra=Config.get_config_summary())
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    try:
        await DatabaseService.initialize()
        await DatabaseService.create_all()
        logger.info("✓ Database service initialized")
    except Exception as exc:
        logger.critical(f"Database initialization failed: {exc}", exc_info=True)
        raise

    try:
        ConfigManager.initialize()
        logger.info("✓ Config manager initialized")
    except Exception as exc:
        logger.critical(f"Config manager initialization failed: {exc}", exc_info=True)
        raise

    engine = build_engine()
    logger.info("✓ Services constructed")

    if seed_catalog:
        inserted = await engine.catalog.seed_default_catalog()
        logger.info(f"✓ Catalog ready ({inserted} treasures seeded)")

    logger.info("========== INFRASTRUCTURE INITIALIZED SUCCESSFULLY ==========")
    return engine


async def shutdown() -> None:
    """Gracefully shut down infrastructure services."""
    logger.info("========== GEOHUNT SHUTDOWN START ==========")
    try:
        await DatabaseService.shutdown()
        logger.info("✓ Database service shut down")
    except Exception as exc:
        logger.error(f"Database service shutdown error: {exc}", exc_info=True)
    logger.info("========== SHUTDOWN COMPLETE ==========")


async def main() -> int:
    setup_logging()
    try:
        engine = await startup()
        treasures = await engine.catalog.list_treasures()
        logger.info(
            "Catalog summary",
            extra={"treasure_count": len(treasures), "total_points": sum(t.points for t in treasures)},
        )
        return 0
    except Exception:
        logger.critical("Startup failed", exc_info=True)
        return 1
    finally:
        await shutdown()
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
