"""
EventBus: async publish/subscribe for domain events.

Purpose
-------
Decouple the unlock engine from whatever reacts to progress changes
(notifications, analytics, flavor-text refresh). Services publish after
their transaction commits; listeners never run inside a database
transaction.

Responsibilities
----------------
- Register and remove listeners for exact names or `fnmatch` wildcards
  such as `"progress.*"`
- Run CRITICAL/HIGH listeners sequentially (ordered) and NORMAL/LOW
  listeners concurrently
- Isolate listener failures: one failing listener is logged and never
  prevents delivery to the others or fails the publisher

Examples
--------
>>> bus = EventBus()
>>> bus.subscribe("progress.level_up", on_level_up)
>>> await bus.publish("progress.level_up", {"player_id": "p-1", "new_level": 2})
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatchcase
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from src.core.logging.logger import get_logger

logger = get_logger(__name__)

EventPayload = Dict[str, Any]
CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]

_listener_ids = itertools.count(1)


class ListenerPriority(Enum):
    """Lower value runs earlier."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100


@dataclass(frozen=True)
class EventListener:
    pattern: str
    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False


@dataclass
class EventMetrics:
    published: int = 0
    delivered: int = 0
    listener_errors: int = 0
    per_event: Dict[str, int] = field(default_factory=dict)


class EventBus:
    """In-process async event bus. Instance-based so tests can build their own."""

    def __init__(self) -> None:
        self._listeners: List[EventListener] = []
        self._metrics = EventMetrics()

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Subscribe a single-argument callable to an event or wildcard pattern.

        Returns
        -------
        str
            Listener identifier for `unsubscribe()`.

        Raises
        ------
        ValueError
            If the callback does not take exactly one parameter.
        """
        try:
            params = inspect.signature(callback).parameters
        except (TypeError, ValueError):
            params = None
        if params is not None and len(params) != 1:
            raise ValueError(
                f"Event listener must accept exactly 1 parameter, got {len(params)}"
            )

        listener_id = identifier or f"listener-{next(_listener_ids)}"
        self._listeners.append(
            EventListener(
                pattern=event_name,
                callback=callback,
                priority=priority,
                identifier=listener_id,
                once=once,
            )
        )
        logger.debug(
            "EventBus: subscribed listener",
            extra={"event_name": event_name, "listener_id": listener_id},
        )
        return listener_id

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        before = len(self._listeners)
        self._listeners = [
            listener
            for listener in self._listeners
            if not (listener.pattern == event_name and listener.identifier == identifier)
        ]
        return len(self._listeners) < before

    def clear(self) -> None:
        self._listeners.clear()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return len(self._listeners)
        return len(self._matching(event_name))

    def _matching(self, event_name: str) -> List[EventListener]:
        matches = [
            listener
            for listener in self._listeners
            if listener.pattern == event_name or fnmatchcase(event_name, listener.pattern)
        ]
        return sorted(matches, key=lambda listener: listener.priority.value)

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def _invoke(self, event_name: str, listener: EventListener, payload: EventPayload) -> Any:
        try:
            result = listener.callback(payload)
            if inspect.isawaitable(result):
                result = await result
            self._metrics.delivered += 1
            return result
        except Exception as exc:
            self._metrics.listener_errors += 1
            logger.error(
                "EventBus: listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None

    async def publish(self, event_name: str, data: EventPayload) -> List[Any]:
        """
        Deliver an event to every matching listener.

        Returns listener results in priority order; failed listeners
        contribute `None`.
        """
        self._metrics.published += 1
        self._metrics.per_event[event_name] = self._metrics.per_event.get(event_name, 0) + 1

        listeners = self._matching(event_name)
        once_ids = {l.identifier for l in listeners if l.once}
        if once_ids:
            self._listeners = [l for l in self._listeners if l.identifier not in once_ids]

        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        results: List[Any] = []
        ordered = [l for l in listeners if l.priority.value <= ListenerPriority.HIGH.value]
        concurrent = [l for l in listeners if l.priority.value > ListenerPriority.HIGH.value]

        for listener in ordered:
            results.append(await self._invoke(event_name, listener, data))

        if concurrent:
            results.extend(
                await asyncio.gather(
                    *(self._invoke(event_name, listener, data) for listener in concurrent)
                )
            )

        return results

    def get_metrics(self) -> EventMetrics:
        return self._metrics
