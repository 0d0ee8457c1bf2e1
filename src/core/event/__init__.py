"""
Event system.

Provides the async `EventBus` and a process-wide default instance. Services
accept a bus in their constructor, so tests build their own.
"""

from .bus import CallbackType, EventBus, EventListener, EventMetrics, EventPayload, ListenerPriority

# Global runtime EventBus
event_bus = EventBus()

__all__ = [
    "event_bus",
    "EventBus",
    "EventPayload",
    "EventMetrics",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
]
