"""
Domain exceptions for the GeoHunt progress engine.

Purpose
-------
Game-rule outcomes that callers translate into player-facing responses:
missing treasures, repeated unlocks, malformed input and lost write races.

Design Notes
------------
- All domain exceptions inherit from `GeoHuntDomainException`, which shares
  the structured metadata of `src.core.exceptions.StructuredError`.
- `AlreadyUnlockedError` is an idempotent no-op, not a validation failure:
  it has DEBUG severity and does not subclass `ValidationError`.
- Scan classification results are values, never exceptions.
"""

from __future__ import annotations

from typing import Any, Optional

from src.core.exceptions import (
    ErrorSeverity,
    StructuredError,
    get_error_severity,
    should_alert,
)


class GeoHuntDomainException(StructuredError):
    """Base class for game-rule errors."""


class NotFoundError(GeoHuntDomainException):
    """
    Raised when a treasure or progress record does not exist.

    Args:
        resource_type: "Treasure", "Player progress", ...
        identifier: Optional identifier of the missing resource
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        message = f"{resource_type} not found"
        if identifier is not None:
            message = f"{message}: {identifier}"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
        )


class AlreadyUnlockedError(GeoHuntDomainException):
    """Raised when a player re-scans a treasure they already hold."""

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, player_id: str, treasure_id: str) -> None:
        self.player_id = player_id
        self.treasure_id = treasure_id
        super().__init__(
            "Treasure already unlocked",
            details={"player_id": player_id, "treasure_id": treasure_id},
            error_code="ALREADY_UNLOCKED",
        )


class ValidationError(GeoHuntDomainException):
    """
    Raised when input fails validation.

    Args:
        field: Name of the offending field
        message: Why it was rejected
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field, "reason": message},
            error_code="VALIDATION_ERROR",
        )


class ConcurrentModificationError(GeoHuntDomainException):
    """
    Raised when another writer changed a progress record mid-transaction.

    The unlock was not applied and may safely be retried.
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, resource_type: str, identifier: Any) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(
            f"{resource_type} {identifier} was modified concurrently",
            details={"resource_type": resource_type, "identifier": identifier},
            error_code="CONCURRENT_MODIFICATION",
        )


__all__ = [
    "ErrorSeverity",
    "GeoHuntDomainException",
    "NotFoundError",
    "AlreadyUnlockedError",
    "ValidationError",
    "ConcurrentModificationError",
    "get_error_severity",
    "should_alert",
]
