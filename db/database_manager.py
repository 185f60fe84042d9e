"""
DatabaseManager: SQLite connection and query execution for session history.

Ensures parameterized queries, a single serialized connection, and
translation of sqlite3 errors into ``db.exceptions``.
"""

import logging
import sqlite3
import threading
from typing import Any, List, Optional, Sequence, Tuple

from helpers.debug_util import DebugUtil

from .exceptions import DBConnectionError, translate_sqlite_error

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Thin wrapper over a sqlite3 connection.

    The connection is shared across threads, so every call is serialized by
    an internal lock.
    """

    def __init__(self, db_path: Optional[str] = None, debug_util: Optional[DebugUtil] = None) -> None:
        """Open (or create) the database.

        Args:
            db_path: Path to the SQLite file, or None for an in-memory database.
            debug_util: Optional DebugUtil for query tracing.

        Raises:
            DBConnectionError: If the database cannot be opened.
        """
        self.db_path: str = db_path or ":memory:"
        self.debug_util = debug_util or DebugUtil()
        self._lock = threading.Lock()
        try:
            self.conn: sqlite3.Connection = sqlite3.connect(self.db_path, check_same_thread=False)
        except sqlite3.Error as e:
            logger.error("Failed to open database %s: %s", self.db_path, e)
            raise DBConnectionError(f"Failed to open database {self.db_path}: {e}") from e
        self.conn.row_factory = sqlite3.Row
        self._closed = False

    def initialize_tables(self) -> None:
        """
        Create the session_records table and its indexes if they do not exist.
        """
        self.execute(
            """
            CREATE TABLE IF NOT EXISTS session_records (
                record_id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL UNIQUE,
                user_id TEXT NOT NULL,
                recorded_at TEXT NOT NULL,
                language TEXT NOT NULL,
                duration REAL NOT NULL CHECK (duration >= 0),
                gross_wpm REAL NOT NULL,
                net_wpm REAL NOT NULL CHECK (net_wpm >= 0),
                accuracy REAL NOT NULL CHECK (accuracy BETWEEN 0 AND 100),
                errors INTEGER NOT NULL,
                corrections INTEGER NOT NULL,
                total_characters INTEGER NOT NULL,
                correct_characters INTEGER NOT NULL,
                elapsed_time REAL NOT NULL,
                snippet_length INTEGER NOT NULL,
                difficulty REAL NOT NULL
            );
            """,
            commit=True,
        )
        self.execute(
            "CREATE INDEX IF NOT EXISTS idx_session_records_user ON session_records (user_id);",
            commit=True,
        )
        self.execute(
            "CREATE INDEX IF NOT EXISTS idx_session_records_net_wpm "
            "ON session_records (net_wpm DESC, recorded_at ASC);",
            commit=True,
        )

    def _run(self, query: str, params: Tuple[Any, ...], commit: bool, fetch: str = "") -> Any:
        if self._closed:
            raise DBConnectionError("Database connection is closed")
        self.debug_util.debugMessage(f"SQL: {' '.join(query.split())} {params}")
        with self._lock:
            try:
                cursor = self.conn.cursor()
                cursor.execute(query, params)
                if commit:
                    self.conn.commit()
                if fetch == "one":
                    return cursor.fetchone()
                if fetch == "all":
                    return cursor.fetchall()
                return cursor
            except sqlite3.Error as e:
                if commit:
                    self.conn.rollback()
                raise translate_sqlite_error(e) from e

    def execute(
        self, query: str, params: Tuple[Any, ...] = (), commit: bool = False
    ) -> sqlite3.Cursor:
        """Execute a parameterized statement and return its cursor."""
        return self._run(query, params, commit)

    def fetchone(self, query: str, params: Tuple[Any, ...] = ()) -> Optional[sqlite3.Row]:
        """
        Execute a query and return the first row, or None if no results.
        Args:
            query: SQL query string (parameterized)
            params: Query parameters
        Returns:
            The first sqlite3.Row or None
        """
        return self._run(query, params, False, fetch="one")

    def fetchall(self, query: str, params: Tuple[Any, ...] = ()) -> List[sqlite3.Row]:
        """
        Execute a query and return all rows as a list.
        Args:
            query: SQL query string (parameterized)
            params: Query parameters
        Returns:
            A list of sqlite3.Row objects.
        """
        return self._run(query, params, False, fetch="all")

    def table_exists(self, table_name: str) -> bool:
        row = self.fetchone(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table_name,)
        )
        return row is not None

    def list_tables(self) -> Sequence[str]:
        rows = self.fetchall(
            "SELECT name FROM sqlite_master WHERE type = 'table' "
            "AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [str(row["name"]) for row in rows]

    def close(self) -> None:
        if self._closed:
            return
        with self._lock:
            self.conn.close()
            self._closed = True

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
