"""
GeoHunt Shared Module

Purpose
-------
Domain-level foundations for every feature module:
- Domain exceptions and error metadata
- Base service and repository patterns
- Ruleset constants

Request schemas live in `src.modules.shared.validators` and are imported
from there directly.

Usage
-----
    from src.modules.shared import (
        BaseService,
        BaseRepository,
        NotFoundError,
        AlreadyUnlockedError,
    )
"""

from __future__ import annotations

from .base_repository import BaseRepository
from .base_service import BaseService
from .constants import (
    POINTS_PER_LEVEL,
    PROXIMITY_THRESHOLD_METERS,
    QR_NAMESPACE,
    RULESET_VERSION,
)
from .exceptions import (
    AlreadyUnlockedError,
    ConcurrentModificationError,
    ErrorSeverity,
    GeoHuntDomainException,
    NotFoundError,
    ValidationError,
    get_error_severity,
    should_alert,
)

__all__ = [
    "BaseRepository",
    "BaseService",
    "POINTS_PER_LEVEL",
    "PROXIMITY_THRESHOLD_METERS",
    "QR_NAMESPACE",
    "RULESET_VERSION",
    "AlreadyUnlockedError",
    "ConcurrentModificationError",
    "ErrorSeverity",
    "GeoHuntDomainException",
    "NotFoundError",
    "ValidationError",
    "get_error_severity",
    "should_alert",
]
