"""
Unit tests for ScannerSession.

Testing Strategy
----------------
- Fake camera yields payload strings as frames; the fake decoder returns
  them unchanged
- Cool-down and simulation delays are zero so tests run instantly
"""

import asyncio
from typing import List, Optional

import pytest

from src.modules.scanner.qr_validator import ScanClassification
from src.modules.scanner.session import ScannerSession, ScannerState


class FakeCamera:
    def __init__(self, frames: Optional[List[str]] = None, fail_open: bool = False) -> None:
        self.frames = list(frames or [])
        self.fail_open = fail_open
        self.opened = False
        self.closed = False

    async def open(self) -> None:
        if self.fail_open:
            raise PermissionError("camera access denied")
        self.opened = True

    async def read_frame(self) -> Optional[str]:
        return self.frames.pop(0) if self.frames else None

    async def close(self) -> None:
        self.closed = True


class PassthroughDecoder:
    def decode(self, frame):
        if frame == "corrupt":
            raise ValueError("bad frame")
        return frame


def make_session(camera, on_accept, states=None, **kwargs) -> ScannerSession:
    return ScannerSession(
        "grand-library",
        camera,
        PassthroughDecoder(),
        on_accept,
        mismatch_cooldown=0.0,
        simulation_delay=0.0,
        on_state_change=states.append if states is not None else None,
        **kwargs,
    )


@pytest.mark.unit
class TestScanLoop:
    async def test_accepts_matching_marker(self, mocker):
        camera = FakeCamera(["geohunt:grand-library"])
        on_accept = mocker.AsyncMock()
        session = make_session(camera, on_accept)

        result = await session.run()

        assert result == "grand-library"
        on_accept.assert_awaited_once_with("grand-library")
        assert session.state == ScannerState.ACCEPTED
        assert camera.closed is True
        assert session.simulated is False

    async def test_mismatch_rejects_then_keeps_scanning(self, mocker):
        states: List[ScannerState] = []
        camera = FakeCamera(["geohunt:heritage-arch", "geohunt:grand-library"])
        on_accept = mocker.AsyncMock()
        session = make_session(camera, on_accept, states)

        result = await session.run()

        assert result == "grand-library"
        assert ScannerState.REJECTED in states
        rejected_at = states.index(ScannerState.REJECTED)
        assert ScannerState.DECODING in states[rejected_at:]
        on_accept.assert_awaited_once_with("grand-library")

    async def test_malformed_payload_keeps_scanning(self, mocker):
        states: List[ScannerState] = []
        camera = FakeCamera(["https://example.com", "geohunt:", "geohunt:grand-library"])
        session = make_session(camera, mocker.AsyncMock(), states)

        assert await session.run() == "grand-library"
        assert ScannerState.REJECTED not in states
        assert session.last_classification == ScanClassification.MATCH

    async def test_decoder_failure_is_not_fatal(self, mocker):
        camera = FakeCamera(["corrupt", "geohunt:grand-library"])
        session = make_session(camera, mocker.AsyncMock())

        assert await session.run() == "grand-library"

    async def test_accept_error_propagates_and_releases_camera(self, mocker):
        camera = FakeCamera(["geohunt:grand-library"])
        on_accept = mocker.AsyncMock(side_effect=RuntimeError("unlock failed"))
        session = make_session(camera, on_accept)

        with pytest.raises(RuntimeError, match="unlock failed"):
            await session.run()

        assert camera.closed is True
        assert session.state == ScannerState.ACCEPTED


@pytest.mark.unit
class TestCameraFallback:
    async def test_camera_failure_simulates_accept(self, mocker):
        states: List[ScannerState] = []
        camera = FakeCamera(fail_open=True)
        on_accept = mocker.AsyncMock()
        session = make_session(camera, on_accept, states)

        result = await session.run()

        assert result == "grand-library"
        assert session.simulated is True
        assert states == [ScannerState.SIMULATING, ScannerState.ACCEPTED]
        on_accept.assert_awaited_once_with("grand-library")

    async def test_close_during_simulation_skips_accept(self, mocker):
        camera = FakeCamera(fail_open=True)
        on_accept = mocker.AsyncMock()
        session = ScannerSession(
            "grand-library", camera, PassthroughDecoder(), on_accept, simulation_delay=10.0
        )

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.01)
        await session.close()

        assert await task is None
        on_accept.assert_not_awaited()
        assert session.state == ScannerState.CLOSED


@pytest.mark.unit
class TestLifecycle:
    async def test_close_stops_loop_and_releases_camera(self, mocker):
        camera = FakeCamera([])
        session = make_session(camera, mocker.AsyncMock(), frame_interval=0.005)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.03)
        assert camera.opened is True

        await session.close()

        assert await task is None
        assert camera.closed is True
        assert session.state == ScannerState.CLOSED

    async def test_close_before_run_is_safe(self, mocker):
        camera = FakeCamera()
        session = make_session(camera, mocker.AsyncMock())

        await session.close()
        await session.close()

        assert session.state == ScannerState.CLOSED
        with pytest.raises(RuntimeError):
            await session.run()

    async def test_cannot_run_twice(self, mocker):
        session = make_session(FakeCamera(["geohunt:grand-library"]), mocker.AsyncMock())
        await session.run()

        with pytest.raises(RuntimeError):
            await session.run()

    async def test_async_context_manager_closes(self, mocker):
        camera = FakeCamera(["geohunt:grand-library"])
        async with make_session(camera, mocker.AsyncMock()) as session:
            await session.run()

        assert session.state == ScannerState.CLOSED
        assert camera.closed is True
