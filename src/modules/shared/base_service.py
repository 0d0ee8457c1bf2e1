"""
Base Service Pattern

Purpose
-------
Common plumbing for domain services: dotted-key config reads, event
emission and structured operation logging. Services own their
transactions through `DatabaseService`; this class manages none.

Usage
-----
    class ProgressService(BaseService):
        async def unlock_treasure(self, player_id: str, treasure_id: str):
            self.log_operation("unlock_treasure", player_id=player_id)
            ...
            await self.emit_event("progress.treasure_unlocked", {...})
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional, Type

from src.core.exceptions import get_error_severity, should_alert

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.domain.models.base import DomainEvent


class BaseService:
    """
    Base class for domain services.

    Args:
        config_manager: ConfigManager class (or compatible object with `get`)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: "Type[ConfigManager] | ConfigManager",
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(self, key: str, default: Optional[Any] = None, required: bool = False) -> Any:
        """
        Read a configuration value.

        Raises:
            ConfigurationError: If required=True and the key is missing
        """
        from src.core.exceptions import ConfigurationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    async def emit_event(self, event_type: str, data: Dict[str, Any]) -> None:
        await self._events.publish(event_type, data)

    async def publish_domain_events(self, events: Iterable[DomainEvent]) -> None:
        """Publish events collected from an aggregate, in order."""
        for event in events:
            await self.emit_event(event.event_name, event.payload)

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """Log at error level when the error should alert, warning otherwise."""
        log = self.log.error if should_alert(error) else self.log.warning
        log(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "severity": get_error_severity(error).value,
                **context,
            },
        )
