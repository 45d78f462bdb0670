"""Input validation for values entering the progression core."""

from campusconnect.core.validation.input_validator import InputValidator

__all__ = ["InputValidator"]
