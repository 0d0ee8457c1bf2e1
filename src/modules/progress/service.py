"""
ProgressService: the unlock engine and player progress operations.

Purpose
-------
Own every write to a player's progress record: awarding a scanned treasure,
resetting, and storing the cosmetic welcome briefing. Reads return immutable
`PlayerProgressView` snapshots.

Unlock flow
-----------
    REQUESTED -> TARGET_RESOLVED -> ALREADY_UNLOCKED | AWARDED
              -> TARGET_NOT_FOUND

1. Validate input (`UnlockRequest`)
2. Resolve the treasure; missing -> `NotFoundError`
3. Under the player's keyed lock, open one transaction and load (or lazily
   create) the progress row with `SELECT ... FOR UPDATE`
4. Already held -> `AlreadyUnlockedError` (no write)
5. Append, add points, recompute level, recompute badges over the whole
   catalog, merge with held badges, persist
6. After commit, publish the aggregate's domain events

Concurrency
-----------
Same-player writers queue on `KeyedLockRegistry`; a writer from another
process that slips past the row lock fails the version check and surfaces
as `ConcurrentModificationError` (retryable, not retried here). Events are
never published for a rolled-back transaction.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, AsyncGenerator, List, Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.exceptions import DatabaseError
from src.core.logging.logger import LogContext, get_logger
from src.core.validation.input_validator import InputValidator
from src.domain.models.base import DomainEvent
from src.domain.models.progress import PlayerProgress, PlayerProgressView, UnlockResult
from src.domain.models.treasure import Treasure
from src.modules.catalog.service import TreasureRepository
from src.modules.flavor.service import FallbackFlavorText, FlavorKind
from src.modules.progress.badges import evaluate_badges, merge_badges
from src.modules.progress.level import calculate_level
from src.modules.progress.store import KeyedLockRegistry, ProgressRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    AlreadyUnlockedError,
    ConcurrentModificationError,
    GeoHuntDomainException,
    NotFoundError,
)
from src.modules.shared.validators import UnlockRequest, WelcomeTextInput

if TYPE_CHECKING:
    from src.core.event.bus import EventBus

logger = get_logger(__name__)


class ProgressService(BaseService):
    """
    Unlock engine plus progress queries and admin reset.

    Args:
        event_bus: Receives `progress.*` events after each commit
        config_manager: Dotted-key config source
        flavor: Briefing generator used by `generate_welcome_text`
        locks: Shared per-player lock registry (one per process)
    """

    def __init__(
        self,
        event_bus: "EventBus",
        config_manager: "Type[ConfigManager] | ConfigManager" = ConfigManager,
        *,
        flavor: Optional[FallbackFlavorText] = None,
        locks: Optional[KeyedLockRegistry] = None,
        progress_repository: Optional[ProgressRepository] = None,
        treasure_repository: Optional[TreasureRepository] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._flavor = flavor or FallbackFlavorText(config_manager=config_manager)
        self._locks = locks or KeyedLockRegistry()
        self._progress = progress_repository or ProgressRepository()
        self._treasures = treasure_repository or TreasureRepository()

    # =========================================================================
    # TRANSACTION SCOPE
    # =========================================================================

    @asynccontextmanager
    async def _player_transaction(self, player_id: str, operation: str) -> AsyncGenerator[Any, None]:
        """
        Keyed lock plus one database transaction for a single player.

        Maps `StaleDataError` to `ConcurrentModificationError` and any other
        SQLAlchemy failure to `DatabaseError`; domain errors pass through.
        """
        async with self._locks.acquire(player_id, operation=operation):
            try:
                async with DatabaseService.get_transaction() as session:
                    yield session
            except StaleDataError as e:
                conflict = ConcurrentModificationError("PlayerProgress", player_id)
                self.log_error(operation, conflict, player_id=player_id)
                raise conflict from e
            except SQLAlchemyError as e:
                failure = DatabaseError(operation, e)
                self.log_error(operation, failure, player_id=player_id)
                raise failure from e

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_progress(self, player_id: Any) -> PlayerProgressView:
        """Current progress; creates the empty record on first access."""
        player_id = InputValidator.validate_player_id(player_id)

        async with LogContext(player_id=player_id, operation="get_progress"):
            async with self._player_transaction(player_id, "get_progress") as session:
                row, _ = await self._progress.get_or_create(session, player_id, for_update=False)
                view = PlayerProgress.from_db(row).to_view(row.updated_at)
        return view

    # =========================================================================
    # UNLOCK
    # =========================================================================

    async def unlock_treasure(self, player_id: Any, treasure_id: Any) -> UnlockResult:
        """
        Award a scanned treasure to a player.

        Raises:
            ValidationError: Malformed player or treasure id
            NotFoundError: No treasure with this id
            AlreadyUnlockedError: The player already holds it (nothing written)
            ConcurrentModificationError: Lost a cross-process race; retryable
            DatabaseError: Persistence failure; transaction rolled back
        """
        request = UnlockRequest.from_raw(player_id, treasure_id)

        async with LogContext(
            player_id=request.player_id,
            treasure_id=request.treasure_id,
            operation="unlock_treasure",
        ):
            self.log_operation(
                "unlock_treasure",
                player_id=request.player_id,
                treasure_id=request.treasure_id,
            )
            try:
                result, events = await self._apply_unlock(request)
            except AlreadyUnlockedError:
                self.log.debug("Treasure already unlocked; nothing to do")
                raise
            except GeoHuntDomainException as e:
                self.log.info(
                    "Unlock rejected",
                    extra={"error_code": e.error_code, "reason": e.message},
                )
                raise

            self.log.info(
                "Treasure unlocked",
                extra={
                    "points_awarded": result.treasure.points,
                    "total_points": result.progress.total_points,
                    "level": result.progress.level,
                    "leveled_up": result.leveled_up,
                    "new_badges": list(result.newly_earned_badges),
                },
            )

        await self.publish_domain_events(events)
        return result

    async def _apply_unlock(self, request: UnlockRequest) -> tuple[UnlockResult, List[DomainEvent]]:
        async with self._player_transaction(request.player_id, "unlock_treasure") as session:
            treasure_row = await self._treasures.get(session, request.treasure_id)
            if treasure_row is None:
                raise NotFoundError("Treasure", request.treasure_id)
            treasure = Treasure.from_db(treasure_row)

            row, _ = await self._progress.get_or_create(session, request.player_id)
            progress = PlayerProgress.from_db(row)
            if progress.has_unlocked(treasure.id):
                raise AlreadyUnlockedError(request.player_id, treasure.id)

            catalog = await self._treasures.load_catalog(session)
            old_level = progress.level
            new_level = calculate_level(progress.total_points + treasure.points)
            evaluated = evaluate_badges((*progress.unlocked_treasure_ids, treasure.id), catalog)

            merged = merge_badges(progress.badges, evaluated)
            newly_earned = progress.record_unlock(treasure, new_level, merged)
            progress.apply_to_db(row)
            await self._progress.flush(session)

            events = progress.clear_domain_events()
            result = UnlockResult(
                progress=progress.to_view(row.updated_at),
                message=f'Unlocked "{treasure.name}" for {treasure.points} points!',
                treasure=treasure,
                newly_earned_badges=newly_earned,
                leveled_up=new_level > old_level,
            )
        return result, events

    # =========================================================================
    # ADMIN & COSMETIC
    # =========================================================================

    async def reset_progress(self, player_id: Any) -> PlayerProgressView:
        """
        Clear a player back to the initial state, welcome text included.

        Raises:
            NotFoundError: If the player has no progress record
        """
        player_id = InputValidator.validate_player_id(player_id)

        async with LogContext(player_id=player_id, operation="reset_progress"):
            self.log_operation("reset_progress", player_id=player_id)
            async with self._player_transaction(player_id, "reset_progress") as session:
                row = await self._progress.find_by_player(session, player_id, for_update=True)
                if row is None:
                    raise NotFoundError("User progress", player_id)

                progress = PlayerProgress.from_db(row)
                progress.reset()
                progress.apply_to_db(row)
                await self._progress.flush(session)
                events = progress.clear_domain_events()
                view = progress.to_view(row.updated_at)

        await self.publish_domain_events(events)
        return view

    async def set_welcome_text(self, player_id: Any, text: Any) -> PlayerProgressView:
        """Store (or clear, with None/blank) the player's briefing text."""
        data = WelcomeTextInput.from_raw(player_id, text)

        async with LogContext(player_id=data.player_id, operation="set_welcome_text"):
            async with self._player_transaction(data.player_id, "set_welcome_text") as session:
                row, _ = await self._progress.get_or_create(session, data.player_id)
                progress = PlayerProgress.from_db(row)
                progress.set_welcome_text(data.text)
                progress.apply_to_db(row)
                await self._progress.flush(session)
                view = progress.to_view(row.updated_at)

        self.log.debug(
            "Welcome text updated",
            extra={"player_id": data.player_id, "cleared": data.text is None},
        )
        return view

    async def generate_welcome_text(self, player_id: Any, username: str) -> PlayerProgressView:
        """Produce a briefing through the flavor generator and store it."""
        text = await self._flavor.generate(FlavorKind.BRIEFING, {"username": username})
        return await self.set_welcome_text(player_id, text)
