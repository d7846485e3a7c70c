"""
Gavel - Core Package
====================

Configuration, logging, errors, domain models, authorization and
persistence shared by every service.

DESIGN:
    Core modules are singletons or global instances so state stays
    consistent across the process:
    - get_config() returns the same Config instance
    - get_db() returns the same DatabaseManager instance
    - logger is a global TreeLogger instance
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import Config, ConfigValidationError, get_config

from .logger import logger, TreeLogger

from .errors import ErrorCode, ModerationError

from .database import DatabaseManager, get_db

from .authorization import can_moderate, is_admin, is_moderator, validate_can_moderate


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "get_config",
    # Logger
    "logger",
    "TreeLogger",
    # Errors
    "ErrorCode",
    "ModerationError",
    # Database
    "DatabaseManager",
    "get_db",
    # Authorization
    "can_moderate",
    "is_admin",
    "is_moderator",
    "validate_can_moderate",
]
