"""
Gavel - Database Manager
========================

SQLite storage shared by every engine component.

DESIGN:
    One connection per process, opened in WAL mode and guarded by a
    threading.Lock. Every call is short and synchronous; callers on the
    event loop never hold the lock across an await.

    Multi-statement writes go through transaction(), which takes the lock
    for the whole block and issues BEGIN IMMEDIATE so the write lock is
    claimed before the first read. That is what makes case allocation
    (read max, insert max + 1) safe.
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from gavel.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from gavel.core.errors import ErrorCode, TransientIO
from gavel.core.logger import logger

from gavel.core.database.cases import CasesMixin
from gavel.core.database.policies import PoliciesMixin
from gavel.core.database.schema import SchemaMixin
from gavel.core.database.users import UsersMixin


# =============================================================================
# Paths
# =============================================================================

# gavel/core/database/manager.py -> project root
DATA_DIR: Path = Path(__file__).resolve().parents[3] / "data"
DB_PATH: Path = DATA_DIR / "gavel.db"

_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA synchronous=NORMAL",
    "PRAGMA foreign_keys=ON",
    f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}",
)


# =============================================================================
# Transactions
# =============================================================================

class Transaction:
    """
    Cursor wrapper handed out by DatabaseManager.transaction().

    Only execute/fetchone/rowcount are exposed; the block commits when it
    exits cleanly and rolls back otherwise.
    """

    __slots__ = ("_cursor",)

    def __init__(self, cursor: sqlite3.Cursor) -> None:
        self._cursor = cursor

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        return self._cursor.execute(query, params)

    def fetchone(self) -> Optional[sqlite3.Row]:
        return self._cursor.fetchone()

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


# =============================================================================
# Database Manager (Singleton)
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    PoliciesMixin,
    CasesMixin,
    UsersMixin,
):
    """
    Process-wide SQLite access for policies, cases and user records.

    Constructing it twice returns the same instance. Tests reset
    DatabaseManager._instance to get a fresh database.
    """

    _instance: Optional["DatabaseManager"] = None
    _instance_lock = threading.Lock()

    def __new__(cls) -> "DatabaseManager":
        with cls._instance_lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._initialized = False
                cls._instance = instance
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._path: Path = DB_PATH
        self._db_lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()
        self._init_tables()
        self._initialized = True

        logger.tree("Database Ready", [
            ("Path", str(self._path)),
            ("Journal", "WAL"),
        ], emoji="🗄️")

    # =========================================================================
    # Connection
    # =========================================================================

    def _connect(self) -> None:
        try:
            conn = sqlite3.connect(
                str(self._path),
                timeout=DB_CONNECTION_TIMEOUT,
                check_same_thread=False,
            )
            for pragma in _PRAGMAS:
                conn.execute(pragma)
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [
                ("Path", str(self._path)),
                ("Error", str(e)),
            ])
            raise
        conn.row_factory = sqlite3.Row
        self._conn = conn

    def _ensure_connection(self) -> sqlite3.Connection:
        """Return the open connection, reopening it if it was closed."""
        if self._conn is None:
            self._connect()
        return self._conn

    def close(self) -> None:
        with self._db_lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
        logger.info("Database Connection Closed")

    # =========================================================================
    # Queries
    # =========================================================================

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Run one write statement and commit it."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        with self._db_lock:
            return self._ensure_connection().execute(query, params).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        with self._db_lock:
            return self._ensure_connection().execute(query, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Run a block of statements atomically.

        Usage:
            with db.transaction() as tx:
                tx.execute("UPDATE ...", (...))
                tx.execute("INSERT ...", (...))

        Raises:
            sqlite3.Error: Whatever the block raised, after rolling back.
        """
        with self._db_lock:
            conn = self._ensure_connection()
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield Transaction(conn.cursor())
            except BaseException as e:
                conn.rollback()
                logger.warning("Database Transaction Rolled Back", [
                    ("Error Type", type(e).__name__),
                    ("Error", str(e)[:100]),
                ])
                raise
            conn.commit()


def get_db() -> DatabaseManager:
    """Get the shared DatabaseManager."""
    return DatabaseManager()


@contextmanager
def storage_errors(operation: str, **context: object) -> Iterator[None]:
    """
    Surface SQLite failures inside the block as TransientIO.

    Usage:
        with storage_errors("Load Policy", guild=guild_id):
            policy = db.get_guild_policy(guild_id)
    """
    try:
        yield
    except sqlite3.Error as e:
        logger.error(f"{operation} Failed", [
            *((key.capitalize(), str(value)) for key, value in context.items()),
            ("Error", str(e)[:100]),
        ])
        raise TransientIO(ErrorCode.SERVER_DATABASE_ERROR, details={"error": str(e)}) from e


__all__ = ["DatabaseManager", "Transaction", "get_db", "storage_errors", "DB_PATH", "DATA_DIR"]
