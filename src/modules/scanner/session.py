"""
ScannerSession: camera capture loop that accepts one treasure marker.

Purpose
-------
Drive an injected camera (`FrameSource`) and QR decoder (`QRDecoder`) until
the player points the camera at the marker for the treasure they are
hunting, then hand the treasure id to `on_accept` (normally the unlock
call).

State machine
-------------
    IDLE -> CAMERA_ACTIVE -> DECODING -> CLASSIFY -> ACCEPTED
                               ^            |
                               |            +-> REJECTED (cool-down) --+
                               +---------------------------------------+
    IDLE -> SIMULATING -> ACCEPTED            (camera failed to open)
    any  -> CLOSED                            (close())

Notes
-----
- MALFORMED payloads (foreign QR codes) keep the loop scanning.
- A MISMATCH pauses decoding for the configured cool-down so the same
  wrong marker is not reported on every frame.
- The camera is released on accept, on close and on cancellation.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from src.core.config.config import Config
from src.core.logging.logger import LogContext, get_logger
from src.modules.scanner.qr_validator import ScanClassification, classify

logger = get_logger(__name__)


class ScannerState(str, Enum):
    IDLE = "idle"
    CAMERA_ACTIVE = "camera_active"
    DECODING = "decoding"
    CLASSIFY = "classify"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SIMULATING = "simulating"
    CLOSED = "closed"


class FrameSource(Protocol):
    """Camera handle. `open()` raises when the device is unavailable."""

    async def open(self) -> None: ...

    async def read_frame(self) -> Optional[Any]: ...

    async def close(self) -> None: ...


class QRDecoder(Protocol):
    def decode(self, frame: Any) -> Optional[str]: ...


AcceptCallback = Callable[[str], Awaitable[Any]]
StateListener = Callable[[ScannerState], None]


class ScannerSession:
    """
    One scanning attempt for a single target treasure.

    Args:
        target_id: Treasure the player selected
        frame_source: Camera abstraction
        decoder: QR decoder run on each frame
        on_accept: Awaited with the treasure id once the marker matches
        mismatch_cooldown: Pause after a wrong marker (Config default 2s)
        simulation_delay: Delay before auto-accepting without a camera
        frame_interval: Sleep between empty frames
    """

    def __init__(
        self,
        target_id: str,
        frame_source: FrameSource,
        decoder: QRDecoder,
        on_accept: AcceptCallback,
        *,
        mismatch_cooldown: Optional[float] = None,
        simulation_delay: Optional[float] = None,
        frame_interval: float = 0.0,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        self.target_id = target_id
        self._source = frame_source
        self._decoder = decoder
        self._on_accept = on_accept
        self._cooldown = (
            Config.SCANNER_MISMATCH_COOLDOWN_SECONDS
            if mismatch_cooldown is None
            else mismatch_cooldown
        )
        self._simulation_delay = (
            Config.SCANNER_SIMULATION_DELAY_SECONDS
            if simulation_delay is None
            else simulation_delay
        )
        self._frame_interval = frame_interval
        self._on_state_change = on_state_change

        self._state = ScannerState.IDLE
        self._status_message = "Ready to scan"
        self._camera_open = False
        self._closing = False
        self._task: Optional[asyncio.Task] = None
        self.simulated = False
        self.last_classification: Optional[ScanClassification] = None

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def status_message(self) -> str:
        return self._status_message

    def _set_state(self, state: ScannerState, message: Optional[str] = None) -> None:
        if message is not None:
            self._status_message = message
        if state == self._state:
            return
        self._state = state
        logger.debug(
            "Scanner state changed",
            extra={"treasure_id": self.target_id, "new_state": state.value},
        )
        if self._on_state_change is not None:
            self._on_state_change(state)

    # =========================================================================
    # RUN
    # =========================================================================

    async def run(self) -> Optional[str]:
        """
        Scan until the target marker is accepted.

        Returns:
            The accepted treasure id, or None if the session was closed first.

        Raises:
            RuntimeError: If the session was already run or closed
            Exception: Whatever `on_accept` raises (e.g. AlreadyUnlockedError).
                The session stays ACCEPTED with the camera released, so a
                caller can tell "scanned but unlock refused" from a scan
                failure by checking `state` after catching the error.
        """
        if self._state != ScannerState.IDLE or self._closing:
            raise RuntimeError(f"ScannerSession cannot run from state {self._state.value}")

        self._task = asyncio.current_task()
        async with LogContext(treasure_id=self.target_id, component="scanner"):
            try:
                if not await self._open_camera():
                    return await self._simulate()
                return await self._scan_loop()
            except asyncio.CancelledError:
                if not self._closing:
                    raise
                return None
            finally:
                await self._release_camera()

    async def _open_camera(self) -> bool:
        self._status_message = "Accessing camera..."
        try:
            await self._source.open()
        except Exception as e:
            logger.warning(
                "Camera unavailable, falling back to simulated scan",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            return False
        self._camera_open = True
        self._set_state(ScannerState.CAMERA_ACTIVE, "Point camera at QR code")
        return True

    async def _scan_loop(self) -> Optional[str]:
        while not self._closing:
            self._set_state(ScannerState.DECODING)
            payload = await self._next_payload()
            if payload is None:
                await asyncio.sleep(self._frame_interval)
                continue

            self._set_state(ScannerState.CLASSIFY, "QR Code detected!")
            result = classify(payload, self.target_id)
            self.last_classification = result

            if result == ScanClassification.MATCH:
                return await self._accept()

            if result == ScanClassification.MISMATCH:
                self._set_state(ScannerState.REJECTED, "Wrong QR code! Find the right marker.")
                logger.info("Scanned marker for a different treasure")
                await asyncio.sleep(self._cooldown)
                self._status_message = "Scanning for QR code..."
                continue

            self._status_message = "Not a GeoHunt QR code"
            await asyncio.sleep(self._frame_interval)
        return None

    async def _next_payload(self) -> Optional[str]:
        frame = await self._source.read_frame()
        if frame is None:
            return None
        try:
            return self._decoder.decode(frame)
        except Exception as e:
            # A bad frame is not fatal; the next one usually decodes.
            logger.debug(
                "QR decode failed for frame",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )
            return None

    async def _simulate(self) -> Optional[str]:
        self.simulated = True
        self._set_state(ScannerState.SIMULATING, "Simulating scan...")
        await asyncio.sleep(self._simulation_delay)
        if self._closing:
            return None
        return await self._accept()

    async def _accept(self) -> str:
        self._set_state(ScannerState.ACCEPTED, "Treasure found!")
        await self._release_camera()
        logger.info("Scan accepted", extra={"simulated": self.simulated})
        await self._on_accept(self.target_id)
        return self.target_id

    # =========================================================================
    # CLEANUP
    # =========================================================================

    async def _release_camera(self) -> None:
        if not self._camera_open:
            return
        self._camera_open = False
        try:
            await self._source.close()
        except Exception as e:
            logger.warning(
                "Camera failed to close cleanly",
                extra={"error_type": type(e).__name__, "error": str(e)},
            )

    async def close(self) -> None:
        """Stop scanning and release the camera. Safe in every state."""
        if self._state == ScannerState.CLOSED:
            return
        self._closing = True
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_camera()
        self._set_state(ScannerState.CLOSED, "Scanner closed")

    async def __aenter__(self) -> "ScannerSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
