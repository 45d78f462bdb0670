"""
Unit tests for InputValidator.
"""

from datetime import datetime, timezone

import pytest

from campusconnect.core.validation import InputValidator
from campusconnect.modules.shared.constants import MAX_XP_DELTA
from campusconnect.modules.shared.exceptions import ValidationError

pytestmark = pytest.mark.unit


class TestIntegerValidation:
    """Test integer coercion and bounds."""

    def test_accepts_numeric_string(self):
        """Numeric strings are coerced."""
        assert InputValidator.validate_integer("15", "amount") == 15

    def test_accepts_integral_float(self):
        """Integral floats are coerced."""
        assert InputValidator.validate_integer(3.0, "amount") == 3

    @pytest.mark.parametrize("value", [True, 2.5, "abc", None, [1]])
    def test_rejects_non_integers(self, value):
        """Non-integral values are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_integer(value, "amount")

        assert exc_info.value.field == "amount"
        assert exc_info.value.error_code == "VALIDATION_AMOUNT"

    def test_bounds(self):
        """Values outside min/max are rejected."""
        with pytest.raises(ValidationError):
            InputValidator.validate_integer(0, "amount", min_value=1)
        with pytest.raises(ValidationError):
            InputValidator.validate_integer(11, "amount", max_value=10)

    def test_positive_integer_rejects_zero(self):
        """Zero is not a positive integer."""
        with pytest.raises(ValidationError):
            InputValidator.validate_positive_integer(0, "mission_id")


class TestXpDelta:
    """Test strict XP delta validation."""

    @pytest.mark.parametrize("value", [0, 15, -15, 10_000, MAX_XP_DELTA, -MAX_XP_DELTA])
    def test_accepts_ints(self, value):
        """Plain ints within range pass unchanged."""
        assert InputValidator.validate_xp_delta(value) == value

    @pytest.mark.parametrize("value", [True, False, 1.5, 2.0, "10", None])
    def test_rejects_everything_else(self, value):
        """Bools, floats, strings and None are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            InputValidator.validate_xp_delta(value)

        assert exc_info.value.field == "delta"

    @pytest.mark.parametrize("value", [MAX_XP_DELTA + 1, -MAX_XP_DELTA - 1, 2**40])
    def test_rejects_out_of_range(self, value):
        """Deltas beyond the allowed magnitude are rejected."""
        with pytest.raises(ValidationError):
            InputValidator.validate_xp_delta(value)


class TestLimit:
    """Test page-size limits."""

    def test_none_means_default(self):
        """None selects the default limit."""
        assert InputValidator.validate_limit(None, default=7) == 7

    def test_range(self):
        """Limits must be between 1 and the maximum."""
        assert InputValidator.validate_limit(100, max_value=100) == 100
        with pytest.raises(ValidationError):
            InputValidator.validate_limit(0)
        with pytest.raises(ValidationError):
            InputValidator.validate_limit(101, max_value=100)


class TestIdentifiers:
    """Test user and record identifiers."""

    def test_user_id_is_stripped(self):
        """Surrounding whitespace is removed."""
        assert InputValidator.validate_user_id("  3f2c-user  ") == "3f2c-user"

    @pytest.mark.parametrize("value", [None, "", "   ", "bad id", "x" * 65, True, 1.5])
    def test_rejects_bad_user_ids(self, value):
        """Empty, oversized or malformed ids are rejected."""
        with pytest.raises(ValidationError):
            InputValidator.validate_user_id(value)

    def test_accepts_uuid_and_email_like_ids(self):
        """UUIDs and email-like ids are valid."""
        assert InputValidator.validate_identifier(
            "2b7d9a4e-0c1f-4e1a-9d53-6a0f4b1f2e11", "user_id"
        )
        assert InputValidator.validate_identifier("auth0:student@campus.edu", "user_id")

    def test_record_id(self):
        """Record ids must be positive integers."""
        assert InputValidator.validate_record_id("42") == 42
        with pytest.raises(ValidationError):
            InputValidator.validate_record_id(-1)


class TestStringsAndChoices:
    """Test free text, choices and booleans."""

    def test_full_name_optional(self):
        """A missing full name is allowed."""
        assert InputValidator.validate_full_name(None) is None
        assert InputValidator.validate_full_name("   ") is None
        assert InputValidator.validate_full_name(" Ada ") == "Ada"

    def test_full_name_too_long(self):
        """Over-long full names are rejected."""
        with pytest.raises(ValidationError):
            InputValidator.validate_full_name("a" * 121)

    def test_choice_is_case_insensitive(self):
        """Choices match regardless of case."""
        assert InputValidator.validate_choice("Confirmed", "status", ["confirmed", "cancelled"]) == "confirmed"
        with pytest.raises(ValidationError):
            InputValidator.validate_choice("pending", "status", ["confirmed", "cancelled"])

    def test_boolean_is_strict(self):
        """Only real booleans are accepted."""
        assert InputValidator.validate_boolean(False, "completed") is False
        with pytest.raises(ValidationError):
            InputValidator.validate_boolean(1, "completed")
        with pytest.raises(ValidationError):
            InputValidator.validate_boolean("true", "completed")


class TestDatetime:
    """Test date/time parsing and UTC normalization."""

    def test_iso_string_with_z(self):
        """A trailing Z is read as UTC."""
        parsed = InputValidator.validate_datetime("2026-03-01T10:30:00Z", "scheduled_date")
        assert parsed == datetime(2026, 3, 1, 10, 30, tzinfo=timezone.utc)

    def test_naive_datetime_becomes_utc(self):
        """Naive datetimes are taken as UTC."""
        parsed = InputValidator.validate_datetime(datetime(2026, 3, 1, 9), "scheduled_date")
        assert parsed.tzinfo is timezone.utc

    def test_offset_is_converted_to_utc(self):
        """Offset datetimes are converted to the same instant in UTC."""
        parsed = InputValidator.validate_datetime("2030-01-15T16:00:00+05:30", "scheduled_date")
        assert parsed == datetime(2030, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert parsed.tzinfo is timezone.utc
        assert parsed.hour == 10

    @pytest.mark.parametrize("value", ["next tuesday", 12345, None])
    def test_rejects_garbage(self, value):
        """Unparsable values are rejected."""
        with pytest.raises(ValidationError):
            InputValidator.validate_datetime(value, "scheduled_date")
