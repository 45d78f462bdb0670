"""
Base Service Foundation

Purpose
-------
Foundation class for the progression services. Services implement the
business rules, own their transactions through DatabaseService, raise
domain exceptions and publish domain events after commit.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access (`get_config`, `get_int_config`)
- Event emission helper

It does NOT manage database transactions (DatabaseService does) and holds
no domain rules.

Usage
-----
    class ActivityService(BaseService):
        def __init__(self, config_manager, event_bus, logger, progress_service):
            super().__init__(config_manager, event_bus, logger)
            self._progress = progress_service
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from campusconnect.core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from logging import Logger

    from campusconnect.core.config.manager import ConfigManager
    from campusconnect.core.event.bus import EventBus


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Configuration manager (class or instance exposing ``get``)
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    def get_int_config(self, key: str, default: int, minimum: int = 0) -> int:
        """Integer config value; malformed or out-of-range values are a config error."""
        value = self._config.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ConfigurationError(
                key, f"expected an integer >= {minimum}, got {value!r}"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Publish a domain event. Call only after the transaction committed."""
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(self, operation: str, error: Exception, **context: Any) -> None:
        """Log a service error with its structured details."""
        self.log.error(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                **context,
            },
        )
