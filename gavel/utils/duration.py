"""
Duration Utilities
==================

Parsing and formatting of punishment durations. All values are
milliseconds.

Usage:
    from gavel.utils.duration import parse_duration, format_duration

    ms = parse_duration("10m")            # 600000
    ms = parse_timeout_duration("2d")     # 172800000, range checked
    display = format_duration(5400000)    # "1h 30m"
"""

import re

from gavel.core.constants import (
    MAX_TIMEOUT_MS,
    MIN_TIMEOUT_MS,
    MS_PER_DAY,
    MS_PER_HOUR,
    MS_PER_MINUTE,
    MS_PER_SECOND,
    MS_PER_WEEK,
)
from gavel.core.errors import InvalidFormat, OutOfRange


# =============================================================================
# Time Constants
# =============================================================================

TIME_MULTIPLIERS = {
    "w": MS_PER_WEEK,
    "d": MS_PER_DAY,
    "h": MS_PER_HOUR,
    "m": MS_PER_MINUTE,
    "s": MS_PER_SECOND,
}

# Full word aliases mapping to short forms
TIME_UNIT_ALIASES = {
    # Weeks
    "week": "w", "weeks": "w", "wk": "w", "wks": "w",
    # Days
    "day": "d", "days": "d",
    # Hours
    "hour": "h", "hours": "h", "hr": "h", "hrs": "h",
    # Minutes
    "minute": "m", "minutes": "m", "min": "m", "mins": "m",
    # Seconds
    "second": "s", "seconds": "s", "sec": "s", "secs": "s",
}

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([a-z]+)$")


# =============================================================================
# Parsing Functions
# =============================================================================

def parse_duration(duration_str: str) -> int:
    """
    Parse a single unit-suffixed duration token into milliseconds.

    Accepted forms:
        - "30s", "10m", "1h", "2d", "1w"
        - Decimal amounts: "1.5h"
        - Full words: "10 minutes", "2 days", "1hour"

    A bare number is rejected: the unit is never guessed.

    Args:
        duration_str: Duration text supplied by a moderator.

    Returns:
        Duration in milliseconds (always positive).

    Raises:
        InvalidFormat: If the text is empty, non-numeric, unit-less or
            uses an unknown unit.

    Examples:
        >>> parse_duration("10m")
        600000
        >>> parse_duration("2 days")
        172800000
    """
    if not duration_str or not duration_str.strip():
        raise InvalidFormat("Duration is required. Use formats like 10m, 1h, 1d.")

    match = _DURATION_PATTERN.match(duration_str.strip().lower())
    if not match:
        raise InvalidFormat(details={"input": duration_str})

    amount, unit = match.groups()
    unit = TIME_UNIT_ALIASES.get(unit, unit)
    multiplier = TIME_MULTIPLIERS.get(unit)
    if multiplier is None:
        raise InvalidFormat(details={"input": duration_str})

    total = int(round(float(amount) * multiplier))
    if total <= 0:
        raise InvalidFormat(details={"input": duration_str})
    return total


def validate_timeout_duration(duration_ms: int) -> int:
    """
    Check a timeout length against the platform window.

    The bounds are inclusive: exactly 1 second and exactly 28 days are
    both accepted. Values outside are rejected, never clamped.

    Raises:
        OutOfRange: If the duration falls outside [1s, 28d].
    """
    if duration_ms < MIN_TIMEOUT_MS or duration_ms > MAX_TIMEOUT_MS:
        raise OutOfRange(details={"duration_ms": duration_ms})
    return duration_ms


def parse_timeout_duration(duration_str: str) -> int:
    """Parse and range-check a timeout duration in one step."""
    return validate_timeout_duration(parse_duration(duration_str))


# =============================================================================
# Formatting Functions
# =============================================================================

def format_duration(duration_ms: int) -> str:
    """
    Format milliseconds as a short two-unit string.

    Examples:
        >>> format_duration(93600000)
        '1d 2h'
        >>> format_duration(5400000)
        '1h 30m'
        >>> format_duration(45000)
        '45s'
    """
    seconds = duration_ms // MS_PER_SECOND
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days}d {hours % 24}h"
    if hours > 0:
        return f"{hours}h {minutes % 60}m"
    if minutes > 0:
        return f"{minutes}m {seconds % 60}s"
    return f"{seconds}s"


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "TIME_MULTIPLIERS",
    "TIME_UNIT_ALIASES",
    "parse_duration",
    "validate_timeout_duration",
    "parse_timeout_duration",
    "format_duration",
]
