"""
Tests for gavel/utils/duration.py

Covers parsing, range checking and formatting of punishment durations.
"""

import pytest

from gavel.core.constants import MS_PER_DAY, MS_PER_HOUR, MS_PER_MINUTE
from gavel.core.errors import ErrorCode, InvalidFormat, OutOfRange
from gavel.utils.duration import (
    format_duration,
    parse_duration,
    parse_timeout_duration,
    validate_timeout_duration,
)


# =============================================================================
# parse_duration() Tests
# =============================================================================

class TestParseDuration:
    """Tests for parse_duration function."""

    def test_parse_basic_units(self):
        assert parse_duration("30s") == 30_000
        assert parse_duration("10m") == 600_000
        assert parse_duration("1h") == 3_600_000
        assert parse_duration("2d") == 172_800_000
        assert parse_duration("1w") == 7 * MS_PER_DAY

    def test_parse_decimal_amount(self):
        assert parse_duration("1.5h") == 90 * MS_PER_MINUTE

    def test_parse_word_units(self):
        assert parse_duration("10 minutes") == 600_000
        assert parse_duration("2 days") == 2 * MS_PER_DAY
        assert parse_duration("1hour") == MS_PER_HOUR

    def test_parse_is_case_insensitive(self):
        assert parse_duration("10M") == 600_000
        assert parse_duration("  1H ") == MS_PER_HOUR

    @pytest.mark.parametrize("text", ["banana", "", "   ", "10", "10x", "m10", "-5m", "0m"])
    def test_parse_rejects_invalid_input(self, text):
        with pytest.raises(InvalidFormat) as exc_info:
            parse_duration(text)
        assert exc_info.value.code == ErrorCode.VALIDATION_INVALID_DURATION
        assert exc_info.value.terminal is True


# =============================================================================
# Timeout Range Tests
# =============================================================================

class TestTimeoutRange:
    """Tests for the [1s, 28d] timeout window."""

    def test_bounds_are_inclusive(self):
        assert validate_timeout_duration(1000) == 1000
        assert validate_timeout_duration(28 * MS_PER_DAY) == 28 * MS_PER_DAY

    def test_below_minimum_is_rejected(self):
        with pytest.raises(OutOfRange):
            validate_timeout_duration(999)

    def test_above_maximum_is_rejected_not_clamped(self):
        with pytest.raises(OutOfRange):
            validate_timeout_duration(28 * MS_PER_DAY + 1)

    def test_parse_timeout_duration(self):
        assert parse_timeout_duration("10m") == 600_000
        with pytest.raises(OutOfRange):
            parse_timeout_duration("29d")
        with pytest.raises(InvalidFormat):
            parse_timeout_duration("soon")


# =============================================================================
# format_duration() Tests
# =============================================================================

class TestFormatDuration:
    """Tests for format_duration function."""

    def test_format_days_hours(self):
        assert format_duration(26 * MS_PER_HOUR) == "1d 2h"

    def test_format_hours_minutes(self):
        assert format_duration(3 * MS_PER_HOUR + 4 * MS_PER_MINUTE) == "3h 4m"

    def test_format_minutes_seconds(self):
        assert format_duration(5 * MS_PER_MINUTE + 6000) == "5m 6s"

    def test_format_seconds(self):
        assert format_duration(7000) == "7s"
