"""
Infrastructure exceptions for the GeoHunt progress engine.

Purpose
-------
Define the exception hierarchy for engineering-level failures: database
errors, misconfiguration and open circuit breakers. Game-rule violations
live in `src.modules.shared.exceptions` and share the same structured base.

Design Notes
------------
- `StructuredError` carries `message`, `details`, `severity`,
  `is_retryable` and `error_code`, and serializes with `to_dict()`.
- Infrastructure exceptions inherit from `GeoHuntInfrastructureException`.
- `get_error_severity` and `should_alert` work for both domain and
  infrastructure exceptions; `BaseService.log_error` uses them to pick
  the log level.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected no-ops (e.g., repeated unlocks)
    INFO = "info"  # Normal rejections (e.g., validation failures)
    WARNING = "warning"  # Handled but worth noticing (e.g., lost write races)
    ERROR = "error"
    CRITICAL = "critical"


class StructuredError(Exception):
    """
    Exception with machine-readable metadata.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Stable code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r})"
        )


class GeoHuntInfrastructureException(StructuredError):
    """Base class for persistence, configuration and resilience failures."""


class ConfigurationError(GeoHuntInfrastructureException):
    """Raised when a configuration key is invalid or missing."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(GeoHuntInfrastructureException):
    """
    Raised when a database operation fails.

    Usually transient (connection loss, timeouts, lock waits). The unlock
    engine surfaces it without retrying; retry policy belongs to the caller.
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class CircuitBreakerError(GeoHuntInfrastructureException):
    """Raised while a circuit breaker is open and rejecting calls."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, service: str, failure_count: int, retry_after: float) -> None:
        self.service = service
        self.failure_count = failure_count
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker open for {service} "
            f"({failure_count} failures, retry after {retry_after:.1f}s)",
            details={
                "service": service,
                "failure_count": failure_count,
                "retry_after": retry_after,
            },
            error_code="CIRCUIT_BREAKER_OPEN",
        )


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    if isinstance(exc, StructuredError):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: BaseException) -> bool:
    """True for ERROR and CRITICAL severities."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
