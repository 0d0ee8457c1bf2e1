"""
Treasure catalog service.

Purpose
-------
Read and administer the set of campus treasures that the unlock engine
resolves against. Treasure ids are stable slugs that also appear in the
printed QR payload (`geohunt:<id>`).

Responsibilities
----------------
- List and fetch treasures as domain `Treasure` values
- Create treasures from validated admin input
- Seed the default campus catalog on an empty database

Non-Responsibilities
--------------------
- Player progress (see `ProgressService`)
- QR rendering
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Type

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.logging.logger import LogContext, get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models.catalog.treasure import Treasure as TreasureDB
from src.database.models.enums import TreasureCategory
from src.domain.models.treasure import Treasure
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError, ValidationError
from src.modules.shared.validators import TreasureInput

if TYPE_CHECKING:
    from src.core.event.bus import EventBus

logger = get_logger(__name__)


DEFAULT_CATALOG: tuple[TreasureInput, ...] = (
    TreasureInput(
        id="grand-library",
        name="The Grand Library",
        description="Home to over 2 million books and a quiet study atmosphere.",
        clue=(
            "I am where silence speaks volumes and knowledge is stored on wooden shelves. "
            "Find the oldest clock in the main hall."
        ),
        latitude=51.5074,
        longitude=-0.1278,
        points=100,
        category=TreasureCategory.ACADEMIC,
    ),
    TreasureInput(
        id="innovation-hub",
        name="Innovation Hub",
        description="The center for tech-startups and student projects.",
        clue=(
            "Where the future is coded and 3D printers hum all day. "
            "Look for the neon blue wall near the entrance."
        ),
        latitude=51.5085,
        longitude=-0.1285,
        points=150,
        category=TreasureCategory.ACADEMIC,
    ),
    TreasureInput(
        id="student-union-plaza",
        name="Student Union Plaza",
        description="The heartbeat of social life and student activism.",
        clue=(
            "Hungry for debate or just a coffee? "
            "Meet where the banners fly highest near the large fountain."
        ),
        latitude=51.5065,
        longitude=-0.1265,
        points=80,
        category=TreasureCategory.SOCIAL,
    ),
    TreasureInput(
        id="heritage-arch",
        name="Heritage Arch",
        description="The oldest architectural structure on campus.",
        clue=(
            "A stone gateway that has seen generations pass. "
            "Beneath the ivy on the left pillar lies a hidden plaque."
        ),
        latitude=51.5070,
        longitude=-0.1290,
        points=200,
        category=TreasureCategory.HISTORY,
    ),
    TreasureInput(
        id="olympic-athletics-park",
        name="Olympic Athletics Park",
        description="State-of-the-art training facilities for university athletes.",
        clue=(
            "The starting line for champions. "
            "Find the sculpture of the sprinter near the track entrance."
        ),
        latitude=51.5095,
        longitude=-0.1250,
        points=120,
        category=TreasureCategory.SPORTS,
    ),
)


class TreasureRepository(BaseRepository[TreasureDB]):
    def __init__(self) -> None:
        super().__init__(TreasureDB, logger)

    async def list_ordered(self, session: AsyncSession) -> List[TreasureDB]:
        return await self.find_many_where(session, order_by=TreasureDB.id)

    async def load_catalog(self, session: AsyncSession) -> List[Treasure]:
        return [Treasure.from_db(row) for row in await self.list_ordered(session)]


def _to_row(data: TreasureInput) -> TreasureDB:
    return TreasureDB(
        id=data.id,
        name=data.name,
        description=data.description,
        clue=data.clue,
        latitude=data.latitude,
        longitude=data.longitude,
        points=data.points,
        category=data.category,
        trivia=data.trivia,
    )


class TreasureCatalogService(BaseService):
    """Catalog reads and admin writes."""

    def __init__(
        self,
        event_bus: "EventBus",
        config_manager: "Type[ConfigManager] | ConfigManager" = ConfigManager,
        repository: TreasureRepository | None = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self.repository = repository or TreasureRepository()

    async def list_treasures(self) -> List[Treasure]:
        async with DatabaseService.get_session() as session:
            return await self.repository.load_catalog(session)

    async def get_treasure(self, treasure_id: Any) -> Treasure:
        """
        Raises:
            ValidationError: If the id is malformed
            NotFoundError: If no treasure has this id
        """
        treasure_id = InputValidator.validate_treasure_id(treasure_id)
        async with DatabaseService.get_session() as session:
            row = await self.repository.get(session, treasure_id)
        if row is None:
            raise NotFoundError("Treasure", treasure_id)
        return Treasure.from_db(row)

    async def create_treasure(self, **fields: Any) -> Treasure:
        """
        Validate and insert a new treasure.

        Accepts the raw fields of `TreasureInput.from_raw`.

        Raises:
            ValidationError: If a field is invalid or the id is taken
        """
        data = TreasureInput.from_raw(**fields)

        async with LogContext(treasure_id=data.id, operation="create_treasure"):
            self.log_operation("create_treasure", treasure_id=data.id, points=data.points)
            async with DatabaseService.get_transaction() as session:
                if await self.repository.get(session, data.id) is not None:
                    raise ValidationError("id", f"Treasure '{data.id}' already exists")
                row = self.repository.add(session, _to_row(data))
                await self.repository.flush(session)
                treasure = Treasure.from_db(row)

        await self.emit_event(
            "catalog.treasure_created",
            {"treasure_id": treasure.id, "category": treasure.category.value},
        )
        return treasure

    async def seed_default_catalog(self) -> int:
        """
        Insert the default campus treasures when the catalog is empty.

        Returns:
            Number of treasures inserted (0 when the catalog already had rows).
        """
        async with DatabaseService.get_transaction() as session:
            existing = await self.repository.count(session)
            if existing:
                self.log.info(
                    "Catalog already populated; skipping seed",
                    extra={"treasure_count": existing},
                )
                return 0
            self.repository.add_many(session, [_to_row(t) for t in DEFAULT_CATALOG])

        self.log.info("Seeded default catalog", extra={"treasure_count": len(DEFAULT_CATALOG)})
        return len(DEFAULT_CATALOG)
