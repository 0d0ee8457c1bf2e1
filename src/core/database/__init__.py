"""
Database subsystem.

Async SQLAlchemy engine and session management with a circuit breaker
around transactions. Also exports the ORM base classes and mixins for model
definitions.
"""

from src.core.database.base import Base, IdMixin, TimestampMixin, utcnow
from src.core.database.circuit_breaker import CircuitBreaker, CircuitBreakerMetrics, CircuitState
from src.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = [
    # ORM Base & Mixins
    "Base",
    "IdMixin",
    "TimestampMixin",
    "utcnow",
    # Main service
    "DatabaseService",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
    # Resilience
    "CircuitBreaker",
    "CircuitBreakerMetrics",
    "CircuitState",
]
