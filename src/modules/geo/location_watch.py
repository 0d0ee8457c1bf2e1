"""
LocationWatch: async observer over a device position stream.

Purpose
-------
Track the player's most recent GPS fix for the proximity gate without ever
blocking the caller. The platform position API is hidden behind an injected
`PositionSource`; this module only manages state, freshness and cleanup.

Responsibilities
----------------
- Consume fixes from the source in a background task
- Mark the watch NO_FIX when nothing arrives within `timeout` seconds
- Expire the current fix after `max_age` seconds
- Move to PERMISSION_DENIED when the source reports a denial
- Release the source on `stop()` or cancellation, in every state

Non-Responsibilities
--------------------
- Distance math (see `proximity`)
- Talking to a real GPS device
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable, Optional, Protocol

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class WatchState(str, Enum):
    WATCHING = "watching"
    HAS_FIX = "has_fix"
    NO_FIX = "no_fix"
    PERMISSION_DENIED = "permission_denied"
    STOPPED = "stopped"


class PositionPermissionDenied(Exception):
    """Raised by a `PositionSource` when the user refuses location access."""


@dataclass(frozen=True)
class PositionFix:
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None
    received_at: float = field(default_factory=time.monotonic)


class PositionSource(Protocol):
    def positions(self) -> AsyncIterator[PositionFix]: ...

    async def close(self) -> None: ...


StateListener = Callable[[WatchState], None]


class LocationWatch:
    """
    Background watcher exposing the freshest known position.

    `max_age <= 0` means a fix never goes stale on its own; it is replaced
    only by the next fix.

    Usage:
        watch = LocationWatch(source)
        watch.start()
        ...
        if is_within_range(watch.current_fix, treasure): ...
        await watch.stop()
    """

    def __init__(
        self,
        source: PositionSource,
        *,
        timeout: Optional[float] = None,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self._source = source
        self._timeout = Config.GPS_FIX_TIMEOUT_SECONDS if timeout is None else timeout
        self._max_age = Config.GPS_FIX_MAX_AGE_SECONDS if max_age is None else max_age
        self._clock = clock
        self._on_state_change = on_state_change

        self._state = WatchState.STOPPED
        self._fix: Optional[PositionFix] = None
        self._fix_seen_at: float = 0.0
        self._task: Optional[asyncio.Task] = None
        self._source_closed = False

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> WatchState:
        if self._state == WatchState.HAS_FIX and self.current_fix is None:
            return WatchState.NO_FIX
        return self._state

    @property
    def current_fix(self) -> Optional[PositionFix]:
        """Latest fix, or None when there is none or it has expired."""
        if self._fix is None:
            return None
        if self._max_age > 0 and self._clock() - self._fix_seen_at > self._max_age:
            return None
        return self._fix

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _set_state(self, state: WatchState) -> None:
        if state == self._state:
            return
        previous = self._state
        self._state = state
        logger.debug(
            "Location watch state changed",
            extra={"previous_state": previous.value, "new_state": state.value},
        )
        if self._on_state_change is not None:
            self._on_state_change(state)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        if self.is_running:
            return
        if self._source_closed:
            raise RuntimeError("LocationWatch cannot be restarted after stop()")
        self._set_state(WatchState.WATCHING)
        self._task = asyncio.create_task(self._run(), name="location-watch")

    async def stop(self) -> None:
        """Cancel the watch task and release the source. Safe to call twice."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_source()
        self._fix = None
        self._set_state(WatchState.STOPPED)

    async def __aenter__(self) -> "LocationWatch":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _release_source(self) -> None:
        if self._source_closed:
            return
        self._source_closed = True
        try:
            await self._source.close()
        except Exception as e:
            logger.warning(
                "Position source failed to close cleanly",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )

    # =========================================================================
    # LOOP
    # =========================================================================

    async def _run(self) -> None:
        iterator = self._source.positions().__aiter__()
        pending: Optional[asyncio.Future] = None
        try:
            while True:
                if pending is None:
                    pending = asyncio.ensure_future(iterator.__anext__())

                # asyncio.wait leaves the pending read alive on timeout
                done, _ = await asyncio.wait({pending}, timeout=self._timeout)
                if not done:
                    if self.current_fix is None:
                        self._set_state(WatchState.NO_FIX)
                    continue

                future, pending = pending, None
                try:
                    fix = future.result()
                except StopAsyncIteration:
                    logger.info("Position stream ended")
                    if self.current_fix is None:
                        self._set_state(WatchState.NO_FIX)
                    return
                except PositionPermissionDenied:
                    logger.warning("Location permission denied")
                    self._fix = None
                    self._set_state(WatchState.PERMISSION_DENIED)
                    return

                self._fix = fix
                self._fix_seen_at = self._clock()
                self._set_state(WatchState.HAS_FIX)
        finally:
            if pending is not None and not pending.done():
                pending.cancel()
            await self._release_source()
