"""
Infrastructure exceptions for CampusConnect.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
storage failures and configuration errors. Domain rule violations live in
`campusconnect.modules.shared.exceptions`.

Design Notes
------------
- All infrastructure exceptions inherit from `CampusInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the operation can be retried
  - `error_code`: short, stable identifier for programmatic use
- `is_transient_error`, `get_error_severity` and `should_alert` understand
  both hierarchies through the shared attribute contract.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # Expected, user-facing (validation, not found)
    WARNING = "warning"  # Handled but worth a look (version conflicts)
    ERROR = "error"
    CRITICAL = "critical"  # Startup cannot continue


class CampusInfrastructureException(Exception):
    """
    Base exception for all CampusConnect infrastructure errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling
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
        """Convert exception to dictionary for logging/serialization."""
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
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(CampusInfrastructureException):
    """
    Raised when a configuration file or key is invalid.

    Args:
        config_key: The configuration key (or file) that has issues
        reason: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, reason: str) -> None:
        self.config_key = config_key
        self.reason = reason
        super().__init__(
            f"Configuration error for {config_key}: {reason}",
            details={"config_key": config_key, "reason": reason},
            error_code="CONFIG_ERROR",
        )


class PersistenceError(CampusInfrastructureException):
    """
    Raised when reading or writing progression state fails.

    Covers driver errors surfaced by SQLAlchemy and lost optimistic-lock
    races (the version-guarded update matched no row). In both cases the
    surrounding transaction has been rolled back and the caller may retry.

    Args:
        operation: Description of the storage operation that failed
        original_error: The underlying exception, if any
        details: Extra context merged into the structured details
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.operation = operation
        self.original_error = original_error

        reason = str(original_error) if original_error is not None else "no rows affected"
        merged: Dict[str, Any] = {
            "operation": operation,
            "error": reason,
            "error_type": type(original_error).__name__ if original_error else None,
        }
        merged.update(details or {})

        super().__init__(
            f"Persistence failure during {operation}: {reason}",
            details=merged,
            error_code="PERSISTENCE_ERROR",
        )


class ConcurrentModificationError(PersistenceError):
    """Version-guarded update lost a race with another writer."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, entity: str, identifier: Any, expected_version: int) -> None:
        self.entity = entity
        self.identifier = identifier
        self.expected_version = expected_version
        super().__init__(
            operation=f"update {entity}",
            details={
                "entity": entity,
                "identifier": identifier,
                "expected_version": expected_version,
            },
        )
        self.error_code = "CONCURRENT_MODIFICATION"


# Utility functions for exception handling patterns


def is_transient_error(exc: Exception) -> bool:
    """True if the exception advertises itself as retryable."""
    return bool(getattr(exc, "is_retryable", False))


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Severity of a structured exception; ERROR for anything unknown."""
    severity = getattr(exc, "severity", None)
    if isinstance(severity, ErrorSeverity):
        return severity
    return ErrorSeverity.ERROR


def should_alert(exc: Exception) -> bool:
    """True if severity is ERROR or CRITICAL."""
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
