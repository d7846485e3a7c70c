"""
Gavel - Configuration Module
============================

Centralized configuration loaded from environment variables.

DESIGN:
    A single Config dataclass is built once by load_config() and shared
    through get_config(). Every setting is optional: the defaults are the
    engine's documented thresholds, and environment variables only tune
    them within safe bounds.

    A .env file in the working directory is honoured through python-dotenv.
    Variables already present in the environment take precedence.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from gavel.core.constants import (
    HISTORY_LIMIT,
    SPAM_MESSAGE_THRESHOLD,
    SPAM_TIMEFRAME_MS,
    SPAM_TIMEOUT_MS,
    XP_COOLDOWN_MS,
    XP_MAX,
    XP_MIN,
    MS_PER_HOUR,
    MAX_TIMEOUT_MS,
)


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Engine configuration loaded from environment variables.

    Attributes:
        error_webhook_url: Optional Discord webhook for error alerts.
        spam_threshold: Messages tolerated inside one spam window.
        spam_timeframe_ms: Length of the sliding spam window.
        spam_timeout_ms: Timeout applied to spammers when possible.
        xp_cooldown_ms: Minimum gap between XP-eligible messages.
        xp_min: Lower bound of a random XP award (inclusive).
        xp_max: Upper bound of a random XP award (inclusive).
        history_limit: Default page size for moderation history lookups.
    """

    # -------------------------------------------------------------------------
    # Optional: Webhooks
    # -------------------------------------------------------------------------

    error_webhook_url: Optional[str] = None

    # -------------------------------------------------------------------------
    # Optional: Auto-Moderation
    # -------------------------------------------------------------------------

    spam_threshold: int = SPAM_MESSAGE_THRESHOLD
    spam_timeframe_ms: int = SPAM_TIMEFRAME_MS
    spam_timeout_ms: int = SPAM_TIMEOUT_MS

    # -------------------------------------------------------------------------
    # Optional: Leveling
    # -------------------------------------------------------------------------

    xp_cooldown_ms: int = XP_COOLDOWN_MS
    xp_min: int = XP_MIN
    xp_max: int = XP_MAX

    # -------------------------------------------------------------------------
    # Optional: Limits
    # -------------------------------------------------------------------------

    history_limit: int = HISTORY_LIMIT


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when configuration is inconsistent."""

    pass


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Read an integer setting, falling back or clamping with a warning.

    Args:
        value: Raw environment value (None or empty means unset).
        default: Used when the value is unset or not an integer.
        name: Variable name, for the warning.
        min_val: Inclusive lower bound.
        max_val: Inclusive upper bound.

    Returns:
        The parsed value, clamped into [min_val, max_val].
    """
    from gavel.core.logger import logger

    if not value:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning(f"Config {name}='{value}' is not an integer, using {default}")
        return default

    clamped = parsed
    if min_val is not None:
        clamped = max(clamped, min_val)
    if max_val is not None:
        clamped = min(clamped, max_val)
    if clamped != parsed:
        logger.warning(f"Config {name}={parsed} out of range, using {clamped}")
    return clamped


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return an http(s) URL unchanged; anything else is ignored with a warning."""
    if not value:
        return None
    if value.startswith(("https://", "http://")):
        return value
    from gavel.core.logger import logger
    logger.warning(f"Config {name} is not an http(s) URL, ignoring")
    return None


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.

    Raises:
        ConfigValidationError: If XP bounds are inverted.
    """
    load_dotenv(override=False)

    xp_min = _parse_int_with_default(os.getenv("GAVEL_XP_MIN"), XP_MIN, "GAVEL_XP_MIN", min_val=0, max_val=1000)
    xp_max = _parse_int_with_default(os.getenv("GAVEL_XP_MAX"), XP_MAX, "GAVEL_XP_MAX", min_val=0, max_val=1000)
    if xp_min > xp_max:
        raise ConfigValidationError(f"GAVEL_XP_MIN ({xp_min}) is greater than GAVEL_XP_MAX ({xp_max})")

    return Config(
        error_webhook_url=_validate_url(os.getenv("GAVEL_ERROR_WEBHOOK_URL"), "GAVEL_ERROR_WEBHOOK_URL"),
        spam_threshold=_parse_int_with_default(
            os.getenv("GAVEL_SPAM_THRESHOLD"), SPAM_MESSAGE_THRESHOLD, "GAVEL_SPAM_THRESHOLD", min_val=1, max_val=100
        ),
        spam_timeframe_ms=_parse_int_with_default(
            os.getenv("GAVEL_SPAM_TIMEFRAME_MS"), SPAM_TIMEFRAME_MS, "GAVEL_SPAM_TIMEFRAME_MS", min_val=100, max_val=MS_PER_HOUR
        ),
        spam_timeout_ms=_parse_int_with_default(
            os.getenv("GAVEL_SPAM_TIMEOUT_MS"), SPAM_TIMEOUT_MS, "GAVEL_SPAM_TIMEOUT_MS", min_val=1000, max_val=MAX_TIMEOUT_MS
        ),
        xp_cooldown_ms=_parse_int_with_default(
            os.getenv("GAVEL_XP_COOLDOWN_MS"), XP_COOLDOWN_MS, "GAVEL_XP_COOLDOWN_MS", min_val=0, max_val=MS_PER_HOUR
        ),
        xp_min=xp_min,
        xp_max=xp_max,
        history_limit=_parse_int_with_default(
            os.getenv("GAVEL_HISTORY_LIMIT"), HISTORY_LIMIT, "GAVEL_HISTORY_LIMIT", min_val=1, max_val=100
        ),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Returns:
        The global Config instance.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached Config so the next get_config() reloads it."""
    global _config
    _config = None


def validate_and_log_config() -> Config:
    """
    Load the configuration, wire the error webhook and log a summary.

    Returns:
        The loaded Config.
    """
    from gavel.core.logger import logger

    config = get_config()
    logger.set_webhook(config.error_webhook_url)

    logger.tree("Configuration Validated", [
        ("Spam Window", f"{config.spam_threshold} msgs / {config.spam_timeframe_ms}ms"),
        ("Spam Timeout", f"{config.spam_timeout_ms}ms"),
        ("XP Award", f"{config.xp_min}-{config.xp_max} every {config.xp_cooldown_ms}ms"),
        ("Error Webhook", "Set" if config.error_webhook_url else "Not set"),
    ], emoji="⚙️")
    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "reset_config",
    "validate_and_log_config",
]
