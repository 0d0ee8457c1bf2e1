"""
Pytest Configuration and Fixtures for the GeoHunt engine
========================================================

Purpose
-------
Centralized fixtures shared by unit and integration tests.

Responsibilities
----------------
- Temp-file SQLite database behind `DatabaseService` for integration tests
- Real and mocked EventBus / ConfigManager
- Domain factories for treasures and catalogs
- Event recording helpers

Architecture Notes
------------------
- Unit tests use mocks and pure functions (fast, isolated)
- Integration tests use a fresh SQLite file per test via aiosqlite, so no
  cleanup between tests is needed
"""

from __future__ import annotations

import os
from typing import AsyncGenerator, Dict, Iterable, List, Tuple

import pytest
import pytest_asyncio

from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger
from src.database.models.enums import TreasureCategory
from src.domain.models.treasure import Coordinate, Treasure

logger = get_logger(__name__)

CAMPUS_CENTER = Coordinate(51.5074, -0.1278)

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture(autouse=True)
def reset_config_manager():
    """Every test starts from the YAML defaults with no overrides."""
    ConfigManager.reset()
    yield
    ConfigManager.reset()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[type[DatabaseService], None]:
    """
    Initialize DatabaseService against a fresh SQLite file.

    Scope: function (new database per test, clean slate)
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'geohunt-test.db'}"
    await DatabaseService.shutdown()
    await DatabaseService.initialize(url)
    await DatabaseService.create_all()
    logger.debug("Test database ready", extra={"url": url})

    yield DatabaseService

    await DatabaseService.shutdown()


# ============================================================================
# EVENT FIXTURES
# ============================================================================


class EventRecorder:
    """Subscribes to the given event names and records payloads in order."""

    def __init__(self, bus: EventBus, names: Iterable[str]) -> None:
        self.events: List[Tuple[str, Dict]] = []
        for name in names:
            bus.subscribe(name, self._listener_for(name))

    def _listener_for(self, name: str):
        def _record(payload: Dict) -> None:
            self.events.append((name, payload))

        return _record

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> List[Dict]:
        return [payload for event_name, payload in self.events if event_name == name]


PROGRESS_EVENTS = (
    "progress.treasure_unlocked",
    "progress.level_up",
    "progress.badge_earned",
    "progress.reset",
)


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus) -> EventRecorder:
    return EventRecorder(event_bus, PROGRESS_EVENTS)


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Scope: function
    Uses: Unit tests that need to mock event publishing
    """
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock()
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """
    Mock ConfigManager for unit tests.

    `get` returns the supplied default, so callers fall back to built-ins.
    """
    mock_config = mocker.MagicMock()
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: default)
    return mock_config


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


def make_treasure(
    treasure_id: str = "grand-library",
    *,
    points: int = 100,
    category: TreasureCategory = TreasureCategory.ACADEMIC,
    latitude: float = CAMPUS_CENTER.latitude,
    longitude: float = CAMPUS_CENTER.longitude,
    name: str | None = None,
) -> Treasure:
    return Treasure(
        id=treasure_id,
        name=name or treasure_id.replace("-", " ").title(),
        description=f"Description of {treasure_id}",
        clue=f"Clue for {treasure_id}",
        coordinate=Coordinate(latitude, longitude),
        points=points,
        category=category,
    )


@pytest.fixture
def campus_catalog() -> List[Treasure]:
    """The five default campus treasures as domain values."""
    return [
        make_treasure("grand-library", points=100, category=TreasureCategory.ACADEMIC),
        make_treasure("innovation-hub", points=150, category=TreasureCategory.ACADEMIC),
        make_treasure("student-union-plaza", points=80, category=TreasureCategory.SOCIAL),
        make_treasure("heritage-arch", points=200, category=TreasureCategory.HISTORY),
        make_treasure("olympic-athletics-park", points=120, category=TreasureCategory.SPORTS),
    ]


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def assert_domain_event_emitted(domain_model, event_name: str) -> bool:
    """
    Assert that a domain model emitted a specific event.

    Usage:
        progress.record_unlock(treasure, 1, ["first-find"])
        assert assert_domain_event_emitted(progress, "progress.treasure_unlocked")
    """
    events = domain_model.get_pending_events()
    return any(event.event_name == event_name for event in events)


def get_domain_event_payloads(domain_model, event_name: str) -> List[dict]:
    """Payloads of every pending event with this name, in emission order."""
    return [
        event.payload
        for event in domain_model.get_pending_events()
        if event.event_name == event_name
    ]
