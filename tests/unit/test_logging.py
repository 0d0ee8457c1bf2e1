"""Unit tests for log context propagation and JSON formatting."""

import json
import logging

import pytest

from src.core.logging.logger import (
    ContextFilter,
    JSONFormatter,
    LogContext,
    get_log_context,
)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "src.modules.progress.service", logging.INFO, __file__, 1, message, None, None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestLogContext:
    def test_nested_contexts_inherit_and_restore(self):
        with LogContext(player_id="p-1", operation="unlock_treasure"):
            outer = get_log_context()
            with LogContext(treasure_id="heritage-arch"):
                inner = get_log_context()
            restored = get_log_context()

        assert inner["player_id"] == "p-1"
        assert inner["treasure_id"] == "heritage-arch"
        assert inner["correlation_id"] == outer["correlation_id"]
        assert "treasure_id" not in restored
        assert "player_id" not in get_log_context()

    async def test_async_context(self):
        async with LogContext(player_id="p-2"):
            assert get_log_context()["player_id"] == "p-2"

    def test_filter_copies_context_onto_record(self):
        record = _record()
        with LogContext(player_id="p-1"):
            ContextFilter().filter(record)

        assert record.player_id == "p-1"
        assert record.treasure_id == "N/A"
        assert record.component == "service"


@pytest.mark.unit
class TestJSONFormatter:
    def test_context_and_extra_fields(self):
        record = _record("Treasure unlocked", player_id="p-1", total_points=650)

        payload = json.loads(JSONFormatter().format(record))

        assert payload["message"] == "Treasure unlocked"
        assert payload["level"] == "INFO"
        assert payload["player_id"] == "p-1"
        assert payload["extra"]["total_points"] == 650
