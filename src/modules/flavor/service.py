"""
Flavor text: mission briefings, landmark trivia and proximity hints.

Purpose
-------
Cosmetic copy may come from an external text generator (an LLM in
production), which is slow and unreliable. `FallbackFlavorText` wraps any
generator so callers always get a usable string: on an exception, a
timeout or empty output it returns the static fallback configured under
`flavor.fallbacks.<kind>` in YAML.

Usage
-----
    flavor = FallbackFlavorText(llm_generator, timeout=5.0)   # built once at startup
    text = await flavor.generate(FlavorKind.BRIEFING, {"username": "Ada"})
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol, Type

from src.core.config.manager import ConfigManager
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class FlavorKind(str, Enum):
    BRIEFING = "briefing"
    TRIVIA = "trivia"
    HINT = "hint"


class FlavorTextGenerator(Protocol):
    async def generate(self, kind: FlavorKind, context: Mapping[str, Any]) -> str: ...


_BUILTIN_FALLBACKS: Dict[FlavorKind, str] = {
    FlavorKind.BRIEFING: (
        "Welcome to the adventure, {username}! Your map shows where our best "
        "campus stories are hidden. Let's go find them!"
    ),
    FlavorKind.TRIVIA: (
        "This place is a beloved part of our campus culture and has many stories to tell!"
    ),
    FlavorKind.HINT: (
        "Look closely at the informational plaques or nearby benches. The marker is very close!"
    ),
}

_CONTEXT_DEFAULTS: Dict[str, Any] = {"username": "Explorer", "landmark_name": "this landmark"}


class _TemplateContext(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


class FallbackFlavorText:
    """
    Never-raising facade over an optional `FlavorTextGenerator`.

    Args:
        generator: Upstream generator; None means always use fallbacks
        config_manager: Source of `flavor.fallbacks.*` templates
        timeout: Seconds to wait for the generator (None waits indefinitely)
    """

    def __init__(
        self,
        generator: Optional[FlavorTextGenerator] = None,
        config_manager: "Type[ConfigManager] | ConfigManager" = ConfigManager,
        timeout: Optional[float] = None,
    ) -> None:
        self._generator = generator
        self._config = config_manager
        self._timeout = timeout

    def fallback(self, kind: FlavorKind, context: Optional[Mapping[str, Any]] = None) -> str:
        template = self._config.get(f"flavor.fallbacks.{kind.value}") or _BUILTIN_FALLBACKS[kind]
        values = _TemplateContext({**_CONTEXT_DEFAULTS, **(context or {})})
        try:
            return str(template).format_map(values)
        except (ValueError, IndexError):
            logger.warning("Malformed flavor fallback template", extra={"kind": kind.value})
            return _BUILTIN_FALLBACKS[kind].format_map(values)

    async def generate(
        self, kind: FlavorKind, context: Optional[Mapping[str, Any]] = None
    ) -> str:
        context = dict(context or {})
        if self._generator is None:
            return self.fallback(kind, context)

        try:
            pending = self._generator.generate(kind, context)
            if self._timeout is not None:
                text = await asyncio.wait_for(pending, self._timeout)
            else:
                text = await pending
        except Exception as e:
            logger.warning(
                "Flavor text generation failed; using fallback",
                extra={"kind": kind.value, "error_type": type(e).__name__, "error": str(e)},
            )
            return self.fallback(kind, context)

        if not isinstance(text, str) or not text.strip():
            logger.info("Flavor text generator returned nothing", extra={"kind": kind.value})
            return self.fallback(kind, context)
        return text.strip()
