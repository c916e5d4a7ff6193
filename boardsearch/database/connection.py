"""
SQLite connection management for the forum search engine.

Provides context managers for safe connection handling with WAL mode,
and the per-request Database session the search core runs on. A search
must stay on one connection because its temporary staging tables only
exist there.
"""

import re
import sqlite3
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any, Generator, Iterable, List, Optional, Pattern, Sequence

from ..core import get_config, get_logger, DatabaseError
from .permissions import Viewer

logger = get_logger(__name__)


def _regexp(pattern: str, value: Optional[str]) -> bool:
    """Backs the SQL REGEXP operator: `value REGEXP pattern`."""
    if value is None:
        return False
    try:
        return re.search(pattern, value, re.IGNORECASE) is not None
    except re.error:
        return False


@lru_cache(maxsize=256)
def _like_pattern(pattern: str, escape: Optional[str]) -> Pattern:
    parts = []
    chars = iter(pattern)
    for char in chars:
        if escape is not None and char == escape:
            parts.append(re.escape(next(chars, "")))
        elif char == "%":
            parts.append(".*")
        elif char == "_":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return re.compile("".join(parts), re.IGNORECASE | re.DOTALL)


def _like(pattern: Optional[str], value: Any, escape: Optional[str] = None) -> Optional[bool]:
    """
    Backs the SQL LIKE operator: `value LIKE pattern [ESCAPE escape]`.

    Replaces the built-in, which only folds ASCII letters, so lower-cased
    search words also match "Ärger" or "ÉCOLE" in message bodies.
    """
    if pattern is None or value is None:
        return None
    return _like_pattern(str(pattern), escape).fullmatch(str(value)) is not None


class DatabaseManager:
    """
    Manages SQLite database connections with proper lifecycle handling.

    Enables WAL mode, registers the REGEXP function used by regex word
    matching and a Unicode-aware LIKE, and hands out Database sessions
    for searches.
    """

    def __init__(self, db_path: Path = None):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file. Defaults to config value.
        """
        if db_path is None:
            db_path = get_config().paths.database_path
        self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new database connection with search-friendly settings."""
        try:
            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )

            conn.row_factory = sqlite3.Row

            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA temp_store=MEMORY")
            conn.execute("PRAGMA foreign_keys=ON")

            conn.create_function("REGEXP", 2, _regexp, deterministic=True)
            conn.create_function("like", 2, _like, deterministic=True)
            conn.create_function("like", 3, _like, deterministic=True)

            return conn

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to connect to database: {e}")

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Context manager for database connections.

        Yields:
            SQLite connection with Row factory enabled.
        """
        conn = self._create_connection()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def cursor(self, commit: bool = True) -> Generator[sqlite3.Cursor, None, None]:
        """
        Context manager for database cursors with automatic commit/rollback.

        Args:
            commit: Whether to commit on successful exit.

        Yields:
            SQLite cursor for query execution.
        """
        conn = self._create_connection()
        cursor = conn.cursor()

        try:
            yield cursor
            if commit:
                conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    @contextmanager
    def session(
        self,
        viewer: Viewer = None,
        support_ignore: bool = True,
        postmod_active: bool = False
    ) -> Generator["Database", None, None]:
        """
        Open a Database session bound to a single connection.

        Args:
            viewer: Member the session searches for. Defaults to an admin view.
            support_ignore: Whether INSERT OR IGNORE may be used.
            postmod_active: Whether unapproved messages are hidden.

        Yields:
            Database session, committed and closed on exit.
        """
        db = Database(
            self._create_connection(),
            viewer=viewer,
            support_ignore=support_ignore,
            postmod_active=postmod_active
        )
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class Database:
    """
    One request's view of the forum datastore.

    Wraps a single connection and exposes the small surface the search
    core needs: parametrized queries, affected-row counts, whether
    conflict-ignoring inserts are available and the viewer's board
    visibility predicate.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        viewer: Viewer = None,
        support_ignore: bool = True,
        postmod_active: bool = False
    ):
        self.conn = conn
        self.viewer = viewer or Viewer.admin()
        self._support_ignore = support_ignore
        self.postmod_active = postmod_active

    @property
    def supports_ignore(self) -> bool:
        """Whether INSERT OR IGNORE may be used instead of manual dedup."""
        return self._support_ignore

    def query(self, sql: str, params: Any = ()) -> List[sqlite3.Row]:
        """Run a SELECT and return every row."""
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Query failed: {e}")
            raise DatabaseError(f"Query failed: {e}", {"sql": sql})

    def query_one(self, sql: str, params: Any = ()) -> Optional[sqlite3.Row]:
        """Run a SELECT and return the first row or None."""
        try:
            return self.conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Query failed: {e}")
            raise DatabaseError(f"Query failed: {e}", {"sql": sql})

    def execute(self, sql: str, params: Any = ()) -> int:
        """
        Run a write statement.

        Returns:
            Number of rows affected.
        """
        try:
            cur = self.conn.execute(sql, params)
            return max(cur.rowcount, 0)
        except sqlite3.Error as e:
            logger.error(f"Statement failed: {e}")
            raise DatabaseError(f"Statement failed: {e}", {"sql": sql})

    def try_execute(self, sql: str, params: Any = ()) -> bool:
        """
        Run a statement whose failure the caller can work around.

        Returns:
            True on success, False if SQLite refused the statement.
        """
        try:
            self.conn.execute(sql, params)
            return True
        except sqlite3.Error as e:
            logger.warning(f"Statement skipped: {e}")
            return False

    def insert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Iterable[Sequence[Any]],
        ignore: bool = False
    ) -> int:
        """
        Insert many rows into a table.

        Args:
            table: Target table.
            columns: Column names in row order.
            rows: Row value sequences.
            ignore: Use INSERT OR IGNORE (only if supported).

        Returns:
            Number of rows inserted.
        """
        rows = [tuple(row) for row in rows]
        if not rows:
            return 0

        verb = "INSERT OR IGNORE" if ignore and self.supports_ignore else "INSERT"
        placeholders = ", ".join("?" for _ in columns)
        sql = f"{verb} INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        try:
            before = self.conn.total_changes
            self.conn.executemany(sql, rows)
            return self.conn.total_changes - before
        except sqlite3.Error as e:
            logger.error(f"Insert into {table} failed: {e}")
            raise DatabaseError(f"Insert into {table} failed: {e}", {"table": table})

    def query_see_board(self, alias: str = "b") -> str:
        """The viewer's board visibility predicate for the given alias."""
        return self.viewer.see_board_clause(alias)

    def max_msg_id(self) -> int:
        row = self.query_one("SELECT COALESCE(MAX(id_msg), 0) AS max_id FROM messages")
        return int(row["max_id"])

    def count_boards(self) -> int:
        row = self.query_one("SELECT COUNT(*) AS count FROM boards")
        return int(row["count"])

    def commit(self) -> None:
        self.conn.commit()

    def rollback(self) -> None:
        self.conn.rollback()

    def close(self) -> None:
        self.conn.close()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get the singleton DatabaseManager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


@contextmanager
def get_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Get a database connection via context manager.

    Yields:
        SQLite connection.
    """
    with get_db_manager().connection() as conn:
        yield conn


@contextmanager
def get_cursor(commit: bool = True) -> Generator[sqlite3.Cursor, None, None]:
    """
    Get a database cursor via context manager.

    Args:
        commit: Whether to auto-commit on exit.

    Yields:
        SQLite cursor.
    """
    with get_db_manager().cursor(commit=commit) as cur:
        yield cur
