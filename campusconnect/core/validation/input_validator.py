"""
Input Validation Layer for CampusConnect

Purpose
-------
Centralized validation for every value that crosses into the progression
core from the UI layer: user ids, XP deltas, record ids, limits and free
text. Fails fast with a domain `ValidationError` and a readable message.

Non-Responsibilities
--------------------
- Business rules (ownership, state transitions) belong to services
- Database constraints

Observability
-------------
Every failure is logged at debug level with field_name, raw_value (repr)
and reason, so investigations are possible without noisy production logs.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, NoReturn, Optional, Sequence

from campusconnect.core.logging.logger import get_logger
from campusconnect.modules.shared.constants import (
    MAX_FULL_NAME_LENGTH,
    MAX_REFERENCE_ID_LENGTH,
    MAX_USER_ID_LENGTH,
    MAX_XP_DELTA,
)
from campusconnect.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

# Auth-provider ids: UUIDs in production, short slugs in fixtures
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:@-]*$")


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    logger.debug(
        "Input validation failed",
        extra={
            "field_name": field_name,
            "raw_value": repr(value),
            "reason": message,
        },
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Stateless validators. Each returns the normalized value or raises
    ValidationError.
    """

    # =========================================================================
    # INTEGER VALIDATION
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
        allow_zero: bool = True,
    ) -> int:
        """
        Validate and convert value to integer with optional bounds checking.

        Numeric strings are accepted ("15" -> 15); booleans and floats with a
        fractional part are not.
        """
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        if isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number, got a boolean")

        if isinstance(value, float) and not value.is_integer():
            _raise_validation_error(field_name, value, f"Must be a whole number, got {value}")

        try:
            int_value = int(value)
        except (ValueError, TypeError):
            _raise_validation_error(
                field_name,
                value,
                f"Must be a whole number, got '{value}'",
            )

        if not allow_zero and int_value == 0:
            _raise_validation_error(field_name, int_value, "Cannot be zero")

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Must be at least {min_value}, got {int_value}",
            )

        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name,
                int_value,
                f"Cannot exceed {max_value}, got {int_value}",
            )

        return int_value

    @staticmethod
    def validate_positive_integer(
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> int:
        return InputValidator.validate_integer(
            value, field_name, min_value=1, max_value=max_value, allow_zero=False
        )

    @staticmethod
    def validate_xp_delta(value: Any, field_name: str = "delta") -> int:
        """
        Validate a signed XP delta.

        Strict: only real ``int`` values (not bool, not numeric strings) are
        accepted, since a delta never comes from free-form user input.
        """
        if isinstance(value, bool) or not isinstance(value, int):
            _raise_validation_error(
                field_name,
                value,
                f"XP delta must be an integer, got {type(value).__name__}",
            )
        if abs(value) > MAX_XP_DELTA:
            _raise_validation_error(
                field_name, value, f"XP delta must be between -{MAX_XP_DELTA} and {MAX_XP_DELTA}"
            )
        return value

    @staticmethod
    def validate_limit(
        value: Any,
        field_name: str = "limit",
        default: int = 10,
        max_value: int = 100,
    ) -> int:
        """Validate a page-size style limit; ``None`` means ``default``."""
        if value is None:
            return default
        return InputValidator.validate_integer(
            value, field_name, min_value=1, max_value=max_value, allow_zero=False
        )

    # =========================================================================
    # ID VALIDATION
    # =========================================================================

    @staticmethod
    def validate_identifier(
        value: Any,
        field_name: str,
        max_length: int = MAX_REFERENCE_ID_LENGTH,
    ) -> str:
        """Validate an opaque external identifier (auth user, college, mentor)."""
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a string identifier")

        str_value = str(value).strip()
        if not str_value:
            _raise_validation_error(field_name, value, "Cannot be empty")
        if len(str_value) > max_length:
            _raise_validation_error(
                field_name, str_value, f"Cannot exceed {max_length} characters"
            )
        if not _IDENTIFIER_PATTERN.match(str_value):
            _raise_validation_error(field_name, str_value, "Contains invalid characters")
        return str_value

    @staticmethod
    def validate_user_id(value: Any, field_name: str = "user_id") -> str:
        return InputValidator.validate_identifier(value, field_name, MAX_USER_ID_LENGTH)

    @staticmethod
    def validate_record_id(value: Any, field_name: str = "id") -> int:
        """Database surrogate keys are positive integers."""
        return InputValidator.validate_positive_integer(value, field_name, max_value=2**63 - 1)

    # =========================================================================
    # STRING / CHOICE VALIDATION
    # =========================================================================

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
    ) -> str:
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        str_value = str(value).strip()

        if min_length is not None and len(str_value) < min_length:
            _raise_validation_error(
                field_name, str_value, f"Must be at least {min_length} characters"
            )
        if max_length is not None and len(str_value) > max_length:
            _raise_validation_error(
                field_name, str_value, f"Cannot exceed {max_length} characters"
            )
        return str_value

    @staticmethod
    def validate_full_name(value: Any, field_name: str = "full_name") -> Optional[str]:
        if value is None:
            return None
        name = InputValidator.validate_string(value, field_name, max_length=MAX_FULL_NAME_LENGTH)
        return name or None

    @staticmethod
    def validate_choice(
        value: Any,
        field_name: str,
        valid_choices: Sequence[str],
    ) -> str:
        """Case-insensitive membership check; returns the lowercased choice."""
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")

        normalized = str(value).strip().lower()
        allowed = [c.lower() for c in valid_choices]
        if normalized not in allowed:
            _raise_validation_error(
                field_name,
                value,
                f"Must be one of: {', '.join(valid_choices)}",
            )
        return normalized

    @staticmethod
    def validate_boolean(value: Any, field_name: str) -> bool:
        if not isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be true or false")
        return value

    # =========================================================================
    # DATETIME VALIDATION
    # =========================================================================

    @staticmethod
    def validate_datetime(value: Any, field_name: str) -> datetime:
        """
        Accept a datetime or an ISO-8601 string, normalized to UTC.

        Naive values are taken as UTC; aware values are converted to UTC.
        """
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
            except ValueError:
                _raise_validation_error(field_name, value, "Must be an ISO-8601 date/time")
        else:
            _raise_validation_error(field_name, value, "Must be a date/time")

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        else:
            parsed = parsed.astimezone(timezone.utc)
        return parsed
