"""
Gavel - Database Module
=======================

SQLite persistence for guild policies, moderation cases and user records.
"""

from gavel.core.database.manager import (
    DatabaseManager,
    get_db,
    storage_errors,
    DATA_DIR,
    DB_PATH,
)

__all__ = [
    "DatabaseManager",
    "get_db",
    "storage_errors",
    "DATA_DIR",
    "DB_PATH",
]
