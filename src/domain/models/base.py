"""
Base domain model classes.

Purpose
-------
Foundations for rich domain models that hold game rules and state
transitions, kept separate from the SQLAlchemy schema.

Responsibilities
----------------
- `Entity` / `AggregateRoot` with identity equality and pending domain events
- `DomainEvent` records published by services after commit
- Small validation helpers raising `DomainValidationError`

Non-Responsibilities
--------------------
- Persistence (repositories)
- Transactions and event publishing (services)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, List, Optional


@dataclass
class DomainEvent:
    """
    A state change that other parts of the system may react to.

    Attributes
    ----------
    event_name : str
        Dotted name, e.g. "progress.level_up"
    payload : Dict[str, Any]
        JSON-friendly event data
    occurred_at : datetime
        When the change happened (UTC)
    """

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Entity:
    """
    Object defined by identity rather than attributes.

    Two entities with the same id compare equal even if their state differs.
    """

    def __init__(self, entity_id: Hashable) -> None:
        self._id = entity_id
        self._domain_events: List[DomainEvent] = []

    @property
    def id(self) -> Hashable:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity) or type(other) is not type(self):
            return False
        return self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))

    def add_domain_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._domain_events.append(DomainEvent(event_name=event_name, payload=payload))

    def clear_domain_events(self) -> List[DomainEvent]:
        """Return and forget all pending events."""
        events = list(self._domain_events)
        self._domain_events.clear()
        return events

    def get_pending_events(self) -> List[DomainEvent]:
        return list(self._domain_events)


class AggregateRoot(Entity):
    """
    Consistency boundary for a cluster of domain state.

    All changes go through the root's methods so its invariants hold after
    every operation.
    """


class DomainValidationError(ValueError):
    """Raised when a domain object would violate its invariants."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def validate_positive(value: int, field_name: str) -> None:
    if value <= 0:
        raise DomainValidationError(f"{field_name} must be positive, got {value}", field=field_name)


def validate_non_negative(value: int, field_name: str) -> None:
    if value < 0:
        raise DomainValidationError(
            f"{field_name} must be non-negative, got {value}", field=field_name
        )


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    if not (min_val <= value <= max_val):
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}",
            field=field_name,
        )


def validate_not_empty(value: str, field_name: str) -> None:
    if not value or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field=field_name)
