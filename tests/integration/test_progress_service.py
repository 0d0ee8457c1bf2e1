"""
Integration Tests for ProgressService
=====================================

Exercises the unlock engine end to end against a temp-file SQLite database:
lazy record creation, point and level accounting, badge awarding, duplicate
scans, concurrent writers, reset and the welcome briefing.
"""

import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from src.core.database.circuit_breaker import CircuitBreaker, CircuitState
from src.core.database.service import DatabaseService
from src.core.exceptions import DatabaseError
from src.modules.catalog.service import TreasureCatalogService
from src.modules.flavor.service import FallbackFlavorText, FlavorKind
from src.modules.progress.service import ProgressService
from src.modules.progress.store import KeyedLockRegistry, ProgressRepository
from src.modules.shared.exceptions import (
    AlreadyUnlockedError,
    ConcurrentModificationError,
    NotFoundError,
    ValidationError,
)

ALL_TREASURES = (
    "grand-library",
    "innovation-hub",
    "student-union-plaza",
    "heritage-arch",
    "olympic-athletics-park",
)


@pytest.fixture
async def seeded(database, event_bus):
    await TreasureCatalogService(event_bus).seed_default_catalog()
    return database


@pytest.fixture
def service(event_bus):
    return ProgressService(event_bus, locks=KeyedLockRegistry())


class _FailingFlushRepository(ProgressRepository):
    def __init__(self, error: Exception) -> None:
        super().__init__()
        self._error = error

    async def flush(self, session) -> None:
        raise self._error


# ============================================================================
# QUERIES
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestGetProgress:
    async def test_first_access_creates_empty_record(self, seeded, service):
        view = await service.get_progress("player-1")

        assert view.player_id == "player-1"
        assert view.unlocked_treasure_ids == ()
        assert view.total_points == 0
        assert view.level == 1
        assert view.badges == ()
        assert view.welcome_text is None

    async def test_integer_ids_are_normalized(self, seeded, service):
        await service.unlock_treasure(42, "grand-library")

        view = await service.get_progress("42")

        assert view.unlocked_treasure_ids == ("grand-library",)

    async def test_invalid_player_id(self, seeded, service):
        with pytest.raises(ValidationError):
            await service.get_progress("   ")


# ============================================================================
# UNLOCK
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestUnlockTreasure:
    async def test_first_unlock(self, seeded, service):
        result = await service.unlock_treasure("player-1", "grand-library")

        assert result.message == 'Unlocked "The Grand Library" for 100 points!'
        assert result.treasure.id == "grand-library"
        assert result.progress.total_points == 100
        assert result.progress.level == 1
        assert result.progress.badges == ("first-find",)
        assert result.newly_earned_badges == ("first-find",)
        assert result.leveled_up is False

    async def test_full_campus_run(self, seeded, service):
        results = [await service.unlock_treasure("player-1", t) for t in ALL_TREASURES]

        final = results[-1].progress
        assert final.unlocked_treasure_ids == ALL_TREASURES
        assert final.total_points == 650
        assert final.level == 4
        assert set(final.badges) == {
            "first-find",
            "category-sweep(academic)",
            "category-taste(social)",
            "completionist",
        }
        assert results[1].newly_earned_badges == ("category-sweep(academic)",)
        assert results[2].newly_earned_badges == ("category-taste(social)",)
        assert results[-1].newly_earned_badges == ("completionist",)

        stored = await service.get_progress("player-1")
        assert stored.total_points == 650
        assert stored.badges == final.badges

    async def test_level_up_flag(self, seeded, service):
        await service.unlock_treasure("player-1", "grand-library")

        result = await service.unlock_treasure("player-1", "innovation-hub")

        assert result.progress.total_points == 250
        assert result.progress.level == 2
        assert result.leveled_up is True

    async def test_repeat_scan_changes_nothing(self, seeded, service):
        await service.unlock_treasure("player-1", "heritage-arch")

        with pytest.raises(AlreadyUnlockedError) as exc_info:
            await service.unlock_treasure("player-1", "heritage-arch")

        assert exc_info.value.treasure_id == "heritage-arch"
        view = await service.get_progress("player-1")
        assert view.total_points == 200
        assert view.unlocked_treasure_ids == ("heritage-arch",)

    async def test_unknown_treasure(self, seeded, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.unlock_treasure("player-1", "moon-base")

        assert exc_info.value.resource_type == "Treasure"
        view = await service.get_progress("player-1")
        assert view.total_points == 0

    async def test_players_are_independent(self, seeded, service):
        await service.unlock_treasure("player-1", "grand-library")
        await service.unlock_treasure("player-2", "student-union-plaza")

        first = await service.get_progress("player-1")
        second = await service.get_progress("player-2")

        assert first.unlocked_treasure_ids == ("grand-library",)
        assert second.unlocked_treasure_ids == ("student-union-plaza",)
        assert second.badges == ("first-find", "category-taste(social)")

    async def test_sweep_survives_catalog_growth(self, seeded, service, event_bus):
        await service.unlock_treasure("player-a", "grand-library")
        swept = await service.unlock_treasure("player-a", "innovation-hub")
        assert "category-sweep(academic)" in swept.newly_earned_badges

        await TreasureCatalogService(event_bus).create_treasure(
            id="robotics-lab",
            name="Robotics Lab",
            description="Rovers tested in the basement corridor.",
            clue="Listen for servos.",
            latitude=51.5079,
            longitude=-0.1269,
            points=120,
            category="academic",
        )

        later = await service.unlock_treasure("player-a", "student-union-plaza")
        assert "category-sweep(academic)" in later.progress.badges
        assert later.newly_earned_badges == ("category-taste(social)",)

        await service.unlock_treasure("player-b", "grand-library")
        partial = await service.unlock_treasure("player-b", "innovation-hub")
        assert "category-sweep(academic)" not in partial.progress.badges

        complete = await service.unlock_treasure("player-b", "robotics-lab")
        assert complete.newly_earned_badges == ("category-sweep(academic)",)


# ============================================================================
# CONCURRENCY
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestConcurrentUnlocks:
    async def test_same_treasure_twice_awards_once(self, seeded, service):
        outcomes = await asyncio.gather(
            service.unlock_treasure("player-1", "innovation-hub"),
            service.unlock_treasure("player-1", "innovation-hub"),
            return_exceptions=True,
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyUnlockedError)

        view = await service.get_progress("player-1")
        assert view.total_points == 150
        assert view.unlocked_treasure_ids == ("innovation-hub",)

    async def test_different_treasures_both_land(self, seeded, service):
        await asyncio.gather(
            service.unlock_treasure("player-1", "grand-library"),
            service.unlock_treasure("player-1", "heritage-arch"),
        )

        view = await service.get_progress("player-1")
        assert view.total_points == 300
        assert sorted(view.unlocked_treasure_ids) == ["grand-library", "heritage-arch"]
        assert view.level == 2

    async def test_first_access_race_creates_one_record(self, seeded, service):
        views = await asyncio.gather(*(service.get_progress("player-9") for _ in range(3)))

        assert all(v.player_id == "player-9" for v in views)

    async def test_stale_write_is_reported_as_concurrent_modification(
        self, seeded, event_bus, recorded_events
    ):
        service = ProgressService(
            event_bus, progress_repository=_FailingFlushRepository(StaleDataError("stale"))
        )

        with pytest.raises(ConcurrentModificationError):
            await service.unlock_treasure("player-1", "grand-library")

        assert recorded_events.events == []

    async def test_database_failure_is_wrapped(self, seeded, event_bus, recorded_events):
        service = ProgressService(
            event_bus, progress_repository=_FailingFlushRepository(SQLAlchemyError("disk gone"))
        )

        with pytest.raises(DatabaseError) as exc_info:
            await service.unlock_treasure("player-1", "grand-library")

        assert exc_info.value.operation == "unlock_treasure"
        assert recorded_events.events == []


# ============================================================================
# CIRCUIT BREAKER RECOVERY
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestBreakerRecovery:
    @pytest.fixture
    async def half_open(self, seeded):
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=0.0)
        DatabaseService._circuit_breaker = breaker
        await breaker.record_failure()
        return breaker

    async def test_rejected_unlock_closes_half_open_circuit(self, half_open, service):
        with pytest.raises(NotFoundError):
            await service.unlock_treasure("player-1", "moon-base")

        assert half_open.state == CircuitState.CLOSED
        for _ in range(3):
            view = await service.get_progress("player-1")
        assert view.total_points == 0

    async def test_repeat_scan_closes_half_open_circuit(self, half_open, service):
        await half_open.reset()
        await service.unlock_treasure("player-1", "grand-library")
        await half_open.record_failure()

        with pytest.raises(AlreadyUnlockedError):
            await service.unlock_treasure("player-1", "grand-library")

        assert half_open.state == CircuitState.CLOSED
        result = await service.unlock_treasure("player-1", "heritage-arch")
        assert result.progress.total_points == 300


# ============================================================================
# EVENTS
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestProgressEvents:
    async def test_unlock_events_in_order(self, seeded, service, recorded_events):
        await service.unlock_treasure("player-1", "grand-library")

        assert recorded_events.names() == [
            "progress.treasure_unlocked",
            "progress.badge_earned",
        ]
        unlocked = recorded_events.payloads("progress.treasure_unlocked")[0]
        assert unlocked["points_awarded"] == 100
        assert unlocked["total_points"] == 100

    async def test_level_up_event(self, seeded, service, recorded_events):
        await service.unlock_treasure("player-1", "heritage-arch")

        assert recorded_events.payloads("progress.level_up") == [
            {"player_id": "player-1", "old_level": 1, "new_level": 2}
        ]

    async def test_listener_sees_committed_state(self, seeded, service, event_bus):
        seen = []

        async def on_unlock(payload):
            seen.append(await service.get_progress(payload["player_id"]))

        event_bus.subscribe("progress.treasure_unlocked", on_unlock)

        await service.unlock_treasure("player-1", "olympic-athletics-park")

        assert seen[0].total_points == 120

    async def test_no_events_for_rejected_unlock(self, seeded, service, recorded_events):
        await service.unlock_treasure("player-1", "grand-library")
        recorded_events.events.clear()

        with pytest.raises(AlreadyUnlockedError):
            await service.unlock_treasure("player-1", "grand-library")

        assert recorded_events.events == []


# ============================================================================
# RESET & WELCOME TEXT
# ============================================================================


@pytest.mark.integration
@pytest.mark.database
class TestResetAndWelcome:
    async def test_reset_returns_to_initial_state(self, seeded, service, recorded_events):
        await service.unlock_treasure("player-1", "grand-library")
        await service.set_welcome_text("player-1", "Hello")

        view = await service.reset_progress("player-1")

        assert view.total_points == 0
        assert view.level == 1
        assert view.unlocked_treasure_ids == ()
        assert view.badges == ()
        assert view.welcome_text is None
        assert recorded_events.payloads("progress.reset") == [{"player_id": "player-1"}]

    async def test_treasure_can_be_unlocked_again_after_reset(self, seeded, service):
        await service.unlock_treasure("player-1", "grand-library")
        await service.reset_progress("player-1")

        result = await service.unlock_treasure("player-1", "grand-library")

        assert result.progress.total_points == 100
        assert result.newly_earned_badges == ("first-find",)

    async def test_reset_unknown_player(self, seeded, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.reset_progress("nobody")

        assert exc_info.value.resource_type == "User progress"

    async def test_set_and_clear_welcome_text(self, seeded, service):
        view = await service.set_welcome_text("player-1", "  Go find them!  ")
        assert view.welcome_text == "Go find them!"

        cleared = await service.set_welcome_text("player-1", None)
        assert cleared.welcome_text is None

    async def test_welcome_text_does_not_touch_score(self, seeded, service):
        await service.unlock_treasure("player-1", "grand-library")

        view = await service.set_welcome_text("player-1", "Hi")

        assert view.total_points == 100
        assert view.unlocked_treasure_ids == ("grand-library",)

    async def test_generate_welcome_text_uses_fallback(self, seeded, service):
        view = await service.generate_welcome_text("player-1", "Ada")

        assert view.welcome_text.startswith("Welcome to the adventure, Ada!")

    async def test_generate_welcome_text_uses_generator(self, seeded, event_bus, mocker):
        generator = mocker.MagicMock()
        generator.generate = mocker.AsyncMock(return_value="Ada, the campus awaits.")
        service = ProgressService(event_bus, flavor=FallbackFlavorText(generator))

        view = await service.generate_welcome_text("player-1", "Ada")

        assert view.welcome_text == "Ada, the campus awaits."
        generator.generate.assert_awaited_once_with(FlavorKind.BRIEFING, {"username": "Ada"})
