"""
Gavel - Utils Package
=====================

Stateless helpers usable anywhere in the engine.

Available Utilities:
    Async: gather_with_logging, safe_async_operation, create_safe_task, KeyedLock
    Duration: Parse and format punishment durations
    Members: discord.py snapshot builders (import gavel.utils.members directly)
"""

# =============================================================================
# Utility Imports
# =============================================================================

from .async_utils import KeyedLock, create_safe_task, gather_with_logging, safe_async_operation
from .duration import format_duration, parse_duration, parse_timeout_duration, validate_timeout_duration


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Async
    "KeyedLock",
    "create_safe_task",
    "gather_with_logging",
    "safe_async_operation",
    # Duration
    "format_duration",
    "parse_duration",
    "parse_timeout_duration",
    "validate_timeout_duration",
]
