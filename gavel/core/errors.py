"""
Gavel - Error System
====================

Error codes and the exception hierarchy raised by moderation operations.

Every error carries a human-readable message for the invoking moderator
and a flag saying whether it is terminal (retrying the same request will
fail the same way) or transient.
"""

from enum import Enum
from typing import Any, Dict, Optional


# =============================================================================
# Error Codes
# =============================================================================

class ErrorCode(str, Enum):
    """
    Error codes for moderation operations.

    Format: CATEGORY_SPECIFIC_ERROR
    """

    # Authorization
    AUTH_NOT_MODERATOR = "AUTH_NOT_MODERATOR"
    AUTH_NOT_ADMIN = "AUTH_NOT_ADMIN"

    # Hierarchy
    USER_SELF_ACTION = "USER_SELF_ACTION"
    USER_IS_OWNER = "USER_IS_OWNER"
    USER_HIGHER_ROLE = "USER_HIGHER_ROLE"

    # Bot permissions
    BOT_MISSING_PERMISSIONS = "BOT_MISSING_PERMISSIONS"

    # Validation
    VALIDATION_INVALID_DURATION = "VALIDATION_INVALID_DURATION"
    VALIDATION_DURATION_RANGE = "VALIDATION_DURATION_RANGE"
    VALIDATION_INVALID_FIELD = "VALIDATION_INVALID_FIELD"

    # Lookup
    USER_NOT_IN_GUILD = "USER_NOT_IN_GUILD"
    USER_NOT_BANNED = "USER_NOT_BANNED"
    CASE_NOT_FOUND = "CASE_NOT_FOUND"
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"

    # Infrastructure
    SERVER_DATABASE_ERROR = "SERVER_DATABASE_ERROR"
    SERVER_DISCORD_ERROR = "SERVER_DISCORD_ERROR"


# =============================================================================
# Error Messages
# =============================================================================

ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.AUTH_NOT_MODERATOR: "You do not have permission to use this command.",
    ErrorCode.AUTH_NOT_ADMIN: "This action requires administrator privileges.",

    ErrorCode.USER_SELF_ACTION: "You cannot moderate yourself.",
    ErrorCode.USER_IS_OWNER: "You cannot moderate the server owner.",
    ErrorCode.USER_HIGHER_ROLE: "You cannot moderate this user due to role hierarchy.",

    ErrorCode.BOT_MISSING_PERMISSIONS: "I do not have permission to do that to this user.",

    ErrorCode.VALIDATION_INVALID_DURATION: "Invalid duration format. Use formats like 10m, 1h, 1d.",
    ErrorCode.VALIDATION_DURATION_RANGE: "Duration must be between 1 second and 28 days.",
    ErrorCode.VALIDATION_INVALID_FIELD: "Invalid configuration field.",

    ErrorCode.USER_NOT_IN_GUILD: "User is not in this server.",
    ErrorCode.USER_NOT_BANNED: "This user is not banned.",
    ErrorCode.CASE_NOT_FOUND: "Case not found.",
    ErrorCode.POLICY_NOT_FOUND: "This server has no configuration yet.",

    ErrorCode.SERVER_DATABASE_ERROR: "A database error occurred.",
    ErrorCode.SERVER_DISCORD_ERROR: "Discord rejected the request. Try again later.",
}


# =============================================================================
# Exceptions
# =============================================================================

class ModerationError(Exception):
    """
    Base exception for every failure surfaced to the invoking actor.

    Attributes:
        code: Machine-readable error code.
        message: Human-readable message for the actor.
        details: Extra context for logs.
    """

    terminal: bool = True

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "An error occurred.")
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class Unauthorized(ModerationError):
    """Actor lacks moderator or admin standing in the guild."""

    def __init__(self, code: ErrorCode = ErrorCode.AUTH_NOT_MODERATOR, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)


class Forbidden(ModerationError):
    """Actor may moderate, but not this target."""

    def __init__(self, code: ErrorCode = ErrorCode.USER_HIGHER_ROLE, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)


class InsufficientBotPermission(ModerationError):
    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(ErrorCode.BOT_MISSING_PERMISSIONS, message, **kwargs)


class InvalidFormat(ModerationError):
    def __init__(self, message: Optional[str] = None, code: ErrorCode = ErrorCode.VALIDATION_INVALID_DURATION, **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)


class OutOfRange(ModerationError):
    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(ErrorCode.VALIDATION_DURATION_RANGE, message, **kwargs)


class NotFound(ModerationError):
    def __init__(self, code: ErrorCode = ErrorCode.CASE_NOT_FOUND, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)


class TransientIO(ModerationError):
    """Storage or platform failure that may succeed if tried again later."""

    terminal = False

    def __init__(self, code: ErrorCode = ErrorCode.SERVER_DATABASE_ERROR, message: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(code, message, **kwargs)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "ModerationError",
    "Unauthorized",
    "Forbidden",
    "InsufficientBotPermission",
    "InvalidFormat",
    "OutOfRange",
    "NotFound",
    "TransientIO",
]
