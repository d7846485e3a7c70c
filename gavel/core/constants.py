"""
Gavel - Constants
=================

Fixed values shared across the engine. Timing values are milliseconds.
"""

# =============================================================================
# Time
# =============================================================================

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
MS_PER_WEEK = 7 * MS_PER_DAY


# =============================================================================
# Timeouts
# =============================================================================

MIN_TIMEOUT_MS = MS_PER_SECOND
MAX_TIMEOUT_MS = 28 * MS_PER_DAY
"""Platform ceiling for member timeouts (inclusive)."""


# =============================================================================
# Auto-Moderation
# =============================================================================

SPAM_MESSAGE_THRESHOLD = 5
"""More than this many messages inside the window is spam."""

SPAM_TIMEFRAME_MS = 5 * MS_PER_SECOND
SPAM_TIMEOUT_MS = 5 * MS_PER_MINUTE
SPAM_TIMEOUT_REASON = "Auto-mod: Spam"

CAPS_MIN_LENGTH = 10
CAPS_RATIO_THRESHOLD = 0.7

DEFAULT_MAX_MENTIONS = 5
DEFAULT_MAX_EMOJIS = 10

AUTOMOD_NOTICE_DELETE_AFTER = 5
"""Seconds before the violation notice removes itself."""

SPAM_WINDOW_CLEANUP_INTERVAL = 300
"""Seconds between sweeps of idle spam windows."""


# =============================================================================
# Leveling
# =============================================================================

XP_COOLDOWN_MS = MS_PER_MINUTE
XP_MIN = 10
XP_MAX = 25
XP_PER_LEVEL = 100
XP_BASE = 100
LEVEL_UP_NOTICE_DELETE_AFTER = 10


# =============================================================================
# Cases
# =============================================================================

DEFAULT_REASON = "No reason provided"
UNKNOWN_USER_TAG = "Unknown#0000"
HISTORY_LIMIT = 10
TOP_WARNED_LIMIT = 5
MAX_DELETE_MESSAGE_DAYS = 7


# =============================================================================
# Database
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0
"""Seconds sqlite3.connect waits for a locked database."""

SQLITE_BUSY_TIMEOUT = 5000
"""Milliseconds SQLite retries a busy database before failing."""


__all__ = [
    "MS_PER_SECOND",
    "MS_PER_MINUTE",
    "MS_PER_HOUR",
    "MS_PER_DAY",
    "MS_PER_WEEK",
    "MIN_TIMEOUT_MS",
    "MAX_TIMEOUT_MS",
    "SPAM_MESSAGE_THRESHOLD",
    "SPAM_TIMEFRAME_MS",
    "SPAM_TIMEOUT_MS",
    "SPAM_TIMEOUT_REASON",
    "CAPS_MIN_LENGTH",
    "CAPS_RATIO_THRESHOLD",
    "DEFAULT_MAX_MENTIONS",
    "DEFAULT_MAX_EMOJIS",
    "AUTOMOD_NOTICE_DELETE_AFTER",
    "SPAM_WINDOW_CLEANUP_INTERVAL",
    "XP_COOLDOWN_MS",
    "XP_MIN",
    "XP_MAX",
    "XP_PER_LEVEL",
    "XP_BASE",
    "LEVEL_UP_NOTICE_DELETE_AFTER",
    "DEFAULT_REASON",
    "UNKNOWN_USER_TAG",
    "HISTORY_LIMIT",
    "TOP_WARNED_LIMIT",
    "MAX_DELETE_MESSAGE_DAYS",
    "DB_CONNECTION_TIMEOUT",
    "SQLITE_BUSY_TIMEOUT",
]
