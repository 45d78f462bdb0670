"""
Domain exceptions for the CampusConnect progression core.

Purpose
-------
Structured, user-facing errors raised by services for business rule
violations: unknown users or missions, invalid input and disallowed
state transitions. The UI layer translates these into messages.

Design Notes
------------
- All domain exceptions inherit from `CampusDomainException`.
- Same attribute contract as the infrastructure hierarchy (`message`,
  `details`, `severity`, `is_retryable`, `error_code`, `to_dict()`), so the
  helpers in `campusconnect.core.exceptions` work on both.
- Domain errors are never retryable: repeating the call yields the same result.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from campusconnect.core.exceptions import ErrorSeverity


class CampusDomainException(Exception):
    """
    Base exception for all CampusConnect domain errors.

    Example:
        >>> raise CampusDomainException(
        ...     "Mission cannot be toggled",
        ...     {"mission_id": 12}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.INFO
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
            f"severity={self.severity.value!r}"
            ")"
        )


class NotFoundError(CampusDomainException):
    """
    Raised when a requested record does not exist for the caller.

    A mission owned by another user is reported the same way as a missing
    one, so callers cannot probe for other users' ids.

    Args:
        resource_type: Type of resource (e.g., "UserProgress", "Mission")
        identifier: Optional identifier for the missing resource
    """

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if identifier is not None:
            message = f"{resource_type} not found: {identifier}"
        else:
            message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(CampusDomainException):
    """
    Raised when caller input fails validation.

    Args:
        field: Name of the field that failed validation
        message: Explanation of why validation failed
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(CampusDomainException):
    """
    Raised when an action is not allowed in the record's current state.

    Example:
        >>> raise InvalidOperationError(
        ...     "cancel_session",
        ...     "Session is already cancelled"
        ... )
    """

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )
