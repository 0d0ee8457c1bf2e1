"""
Progress persistence and per-player serialization.

Purpose
-------
- `ProgressRepository`: data access for `player_progress` rows, including
  race-safe lazy creation.
- `KeyedLockRegistry`: in-process single-writer lock per player id.

Concurrency
-----------
Two writers for the same player are serialized twice over:

1. Inside one process, `KeyedLockRegistry.acquire(player_id)` queues them.
2. Across processes, the row is read with `SELECT ... FOR UPDATE` and the
   mapper's `version_id_col` rejects a stale UPDATE with `StaleDataError`.

Lazy creation relies on the unique index on `player_id`: the INSERT runs in
a SAVEPOINT, and on `IntegrityError` the row another writer created is
re-read instead.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging.logger import get_logger
from src.database.models.progression.player_progress import PlayerProgress as PlayerProgressDB
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.constants import RULESET_VERSION, STARTING_LEVEL

logger = get_logger(__name__)


class ProgressRepository(BaseRepository[PlayerProgressDB]):
    """Repository for `PlayerProgress` rows keyed by the opaque player id."""

    def __init__(self) -> None:
        super().__init__(PlayerProgressDB, logger)

    async def find_by_player(
        self,
        session: AsyncSession,
        player_id: str,
        *,
        for_update: bool = False,
        populate_existing: bool = False,
    ) -> Optional[PlayerProgressDB]:
        return await self.find_one_where(
            session,
            PlayerProgressDB.player_id == player_id,
            for_update=for_update,
            populate_existing=populate_existing,
        )

    async def get_or_create(
        self, session: AsyncSession, player_id: str, *, for_update: bool = True
    ) -> Tuple[PlayerProgressDB, bool]:
        """
        Load the player's row, creating an empty one on first access.

        Returns:
            (row, created)
        """
        row = await self.find_by_player(session, player_id, for_update=for_update)
        if row is not None:
            return row, False

        try:
            async with session.begin_nested():
                row = PlayerProgressDB(
                    player_id=player_id,
                    unlocked_treasure_ids=[],
                    total_points=0,
                    level=STARTING_LEVEL,
                    badges=[],
                    welcome_text=None,
                    ruleset_version=RULESET_VERSION,
                )
                self.add(session, row)
                await session.flush()
        except IntegrityError:
            logger.info(
                "Progress row created concurrently; re-reading",
                extra={"player_id": player_id},
            )
            existing = await self.find_by_player(
                session, player_id, for_update=for_update, populate_existing=True
            )
            if existing is None:
                raise
            return existing, False

        logger.info("Created progress record", extra={"player_id": player_id})
        return row, True


class KeyedLockRegistry:
    """
    One `asyncio.Lock` per key, created on demand and dropped when idle.

    Different keys never contend. Usage mirrors a distributed lock:

        async with locks.acquire(player_id, operation="unlock_treasure"):
            ...
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def acquire(
        self, key: str, operation: Optional[str] = None
    ) -> AsyncGenerator[None, None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1

        wait_start = time.monotonic()
        try:
            async with lock:
                waited_ms = (time.monotonic() - wait_start) * 1000.0
                if waited_ms > 100:
                    logger.debug(
                        "Waited for keyed lock",
                        extra={"lock_key": key, "operation": operation, "waited_ms": waited_ms},
                    )
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
