"""Unit tests for FallbackFlavorText: it must never raise."""

import asyncio

import pytest

from src.core.config.manager import ConfigManager
from src.modules.flavor.service import FallbackFlavorText, FlavorKind


class FakeGenerator:
    def __init__(self, text="", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []

    async def generate(self, kind, context):
        self.calls.append((kind, dict(context)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.mark.unit
class TestFallbackFlavorText:
    async def test_without_generator_uses_yaml_fallback(self):
        flavor = FallbackFlavorText()

        text = await flavor.generate(FlavorKind.BRIEFING, {"username": "Ada"})

        assert text.startswith("Welcome to the adventure, Ada!")

    async def test_generator_text_is_returned_trimmed(self):
        generator = FakeGenerator(text="  Fun fact: the arch is 200 years old.  ")
        flavor = FallbackFlavorText(generator)

        text = await flavor.generate(FlavorKind.TRIVIA, {"landmark_name": "Heritage Arch"})

        assert text == "Fun fact: the arch is 200 years old."
        assert generator.calls == [(FlavorKind.TRIVIA, {"landmark_name": "Heritage Arch"})]

    async def test_generator_error_degrades(self):
        flavor = FallbackFlavorText(FakeGenerator(error=ConnectionError("quota exceeded")))

        text = await flavor.generate(FlavorKind.HINT)

        assert text == ConfigManager.get("flavor.fallbacks.hint")

    async def test_empty_output_degrades(self):
        flavor = FallbackFlavorText(FakeGenerator(text="   "))

        text = await flavor.generate(FlavorKind.TRIVIA)

        assert "beloved part of our campus" in text

    async def test_timeout_degrades(self):
        flavor = FallbackFlavorText(FakeGenerator(text="late", delay=1.0), timeout=0.01)

        text = await flavor.generate(FlavorKind.HINT)

        assert text != "late"

    async def test_missing_username_uses_default(self):
        text = await FallbackFlavorText().generate(FlavorKind.BRIEFING)
        assert "Explorer" in text

    async def test_override_template(self):
        ConfigManager.set_override("flavor.fallbacks.hint", "Try the {landmark_name} steps.")

        text = FallbackFlavorText().fallback(FlavorKind.HINT, {"landmark_name": "library"})

        assert text == "Try the library steps."

    def test_unknown_placeholder_left_intact(self, mock_config_manager):
        mock_config_manager.get.side_effect = lambda key, default=None: "Hi {nickname}"
        flavor = FallbackFlavorText(config_manager=mock_config_manager)

        assert flavor.fallback(FlavorKind.BRIEFING) == "Hi {nickname}"
