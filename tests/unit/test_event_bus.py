"""Unit tests for EventBus routing, ordering and error isolation."""

import pytest

from src.core.event.bus import EventBus, ListenerPriority


@pytest.mark.unit
class TestEventBus:
    async def test_publish_delivers_payload(self):
        bus = EventBus()
        received = []
        bus.subscribe("progress.level_up", received.append)

        await bus.publish("progress.level_up", {"new_level": 2})

        assert received == [{"new_level": 2}]

    async def test_wildcard_subscription(self):
        bus = EventBus()
        received = []
        bus.subscribe("progress.*", received.append)

        await bus.publish("progress.badge_earned", {"badge_id": "first-find"})
        await bus.publish("catalog.treasure_created", {"treasure_id": "x"})

        assert received == [{"badge_id": "first-find"}]

    async def test_async_listener(self, mocker):
        bus = EventBus()
        listener = mocker.AsyncMock(return_value="ok")
        bus.subscribe("progress.reset", listener)

        results = await bus.publish("progress.reset", {"player_id": "p-1"})

        listener.assert_awaited_once_with({"player_id": "p-1"})
        assert results == ["ok"]

    async def test_failing_listener_is_isolated(self):
        bus = EventBus()
        received = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe("progress.level_up", broken)
        bus.subscribe("progress.level_up", received.append)

        results = await bus.publish("progress.level_up", {"new_level": 3})

        assert received == [{"new_level": 3}]
        assert results[0] is None
        assert bus.get_metrics().listener_errors == 1

    async def test_priority_listeners_run_first_in_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("e", lambda p: order.append("normal"))
        bus.subscribe("e", lambda p: order.append("high"), priority=ListenerPriority.HIGH)
        bus.subscribe("e", lambda p: order.append("critical"), priority=ListenerPriority.CRITICAL)

        await bus.publish("e", {})

        assert order == ["critical", "high", "normal"]

    async def test_once_listener_fires_once(self):
        bus = EventBus()
        received = []
        bus.subscribe("e", received.append, once=True)

        await bus.publish("e", {"n": 1})
        await bus.publish("e", {"n": 2})

        assert received == [{"n": 1}]

    async def test_unsubscribe(self):
        bus = EventBus()
        received = []
        listener_id = bus.subscribe("e", received.append)

        assert bus.unsubscribe("e", listener_id) is True
        await bus.publish("e", {})

        assert received == []
        assert bus.get_listener_count() == 0

    def test_listener_must_take_one_argument(self):
        bus = EventBus()
        with pytest.raises(ValueError):
            bus.subscribe("e", lambda a, b: None)
