"""
Database schema definitions for the forum search engine.

Defines the forum tables the search reads (categories, boards, members,
topics, messages), the search indexes (subject words, hashed body words,
FTS5 over messages) and the per-search log tables.
"""

import sqlite3
from typing import Optional

from ..core import get_logger, DatabaseError
from .connection import DatabaseManager, get_db_manager

logger = get_logger(__name__)


FORUM_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS categories (
        id_cat INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL DEFAULT '',
        cat_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS boards (
        id_board INTEGER PRIMARY KEY AUTOINCREMENT,
        id_cat INTEGER NOT NULL DEFAULT 0,
        name TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        redirect TEXT NOT NULL DEFAULT '',
        num_topics INTEGER NOT NULL DEFAULT 0,
        num_posts INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS members (
        id_member INTEGER PRIMARY KEY AUTOINCREMENT,
        member_name TEXT NOT NULL DEFAULT '',
        real_name TEXT NOT NULL DEFAULT '',
        email_address TEXT NOT NULL DEFAULT '',
        posts INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS topics (
        id_topic INTEGER PRIMARY KEY AUTOINCREMENT,
        id_board INTEGER NOT NULL DEFAULT 0,
        id_first_msg INTEGER NOT NULL DEFAULT 0,
        id_last_msg INTEGER NOT NULL DEFAULT 0,
        id_member_started INTEGER NOT NULL DEFAULT 0,
        num_replies INTEGER NOT NULL DEFAULT 0,
        num_views INTEGER NOT NULL DEFAULT 0,
        num_likes INTEGER NOT NULL DEFAULT 0,
        is_sticky INTEGER NOT NULL DEFAULT 0,
        locked INTEGER NOT NULL DEFAULT 0,
        id_poll INTEGER NOT NULL DEFAULT 0,
        approved INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id_msg INTEGER PRIMARY KEY AUTOINCREMENT,
        id_topic INTEGER NOT NULL DEFAULT 0,
        id_board INTEGER NOT NULL DEFAULT 0,
        poster_time INTEGER NOT NULL DEFAULT 0,
        id_member INTEGER NOT NULL DEFAULT 0,
        subject TEXT NOT NULL DEFAULT '',
        poster_name TEXT NOT NULL DEFAULT '',
        poster_email TEXT NOT NULL DEFAULT '',
        poster_ip TEXT NOT NULL DEFAULT '',
        body TEXT NOT NULL DEFAULT '',
        icon TEXT NOT NULL DEFAULT 'xx',
        smileys_enabled INTEGER NOT NULL DEFAULT 1,
        modified_time INTEGER NOT NULL DEFAULT 0,
        modified_name TEXT NOT NULL DEFAULT '',
        approved INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS settings (
        variable TEXT PRIMARY KEY,
        value TEXT NOT NULL DEFAULT ''
    )
    """,
]

FORUM_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_messages_topic ON messages(id_topic, id_msg)",
    "CREATE INDEX IF NOT EXISTS idx_messages_board ON messages(id_board, id_msg)",
    "CREATE INDEX IF NOT EXISTS idx_messages_member ON messages(id_member, id_msg)",
    "CREATE INDEX IF NOT EXISTS idx_messages_poster_time ON messages(poster_time)",
    "CREATE INDEX IF NOT EXISTS idx_topics_board ON topics(id_board)",
    "CREATE INDEX IF NOT EXISTS idx_members_real_name ON members(real_name)",
]

SEARCH_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS log_search_subjects (
        word TEXT NOT NULL,
        id_topic INTEGER NOT NULL,
        PRIMARY KEY (word, id_topic)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_search_subjects_topic ON log_search_subjects(id_topic)",
    """
    CREATE TABLE IF NOT EXISTS log_search_messages (
        id_search INTEGER NOT NULL DEFAULT 0,
        id_msg INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (id_search, id_msg)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS log_search_topics (
        id_search INTEGER NOT NULL DEFAULT 0,
        id_topic INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (id_search, id_topic)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS log_search_results (
        id_search INTEGER NOT NULL DEFAULT 0,
        result_key INTEGER NOT NULL DEFAULT 0,
        id_topic INTEGER NOT NULL DEFAULT 0,
        id_msg INTEGER NOT NULL DEFAULT 0,
        relevance INTEGER NOT NULL DEFAULT 0,
        num_matches INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (id_search, result_key)
    )
    """,
]

WORD_INDEX_TABLE = """
CREATE TABLE IF NOT EXISTS log_search_words (
    id_word INTEGER NOT NULL DEFAULT 0,
    id_msg INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (id_word, id_msg)
)
"""

FTS_TABLE = """
CREATE VIRTUAL TABLE IF NOT EXISTS messages_fts USING fts5(
    body,
    content='messages',
    content_rowid='id_msg',
    tokenize='unicode61'
)
"""

FTS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS messages_ai AFTER INSERT ON messages BEGIN
        INSERT INTO messages_fts(rowid, body)
        VALUES (new.id_msg, new.body);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS messages_ad AFTER DELETE ON messages BEGIN
        INSERT INTO messages_fts(messages_fts, rowid, body)
        VALUES ('delete', old.id_msg, old.body);
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS messages_au AFTER UPDATE OF body ON messages BEGIN
        INSERT INTO messages_fts(messages_fts, rowid, body)
        VALUES ('delete', old.id_msg, old.body);
        INSERT INTO messages_fts(rowid, body)
        VALUES (new.id_msg, new.body);
    END
    """
]


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    """Check sqlite_master for a table or virtual table."""
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,)
    ).fetchone()
    return row is not None


def init_schema(manager: Optional[DatabaseManager] = None) -> None:
    """
    Initialize database schema if not exists.

    Creates forum tables, search log tables, the word index and, when the
    SQLite build has FTS5, the fulltext table with its sync triggers.

    Args:
        manager: Database to initialize. Defaults to the configured one.
    """
    manager = manager or get_db_manager()
    logger.info(f"Initializing database schema in {manager.db_path}")

    with manager.cursor() as cur:
        for table_sql in FORUM_TABLES:
            cur.execute(table_sql)

        for index_sql in FORUM_INDEXES:
            cur.execute(index_sql)

        for table_sql in SEARCH_TABLES:
            cur.execute(table_sql)

        cur.execute(WORD_INDEX_TABLE)

        try:
            cur.execute(FTS_TABLE)
        except sqlite3.OperationalError as e:
            if "already exists" in str(e):
                pass
            elif "no such module" in str(e):
                logger.warning(f"FTS5 unavailable, fulltext search disabled: {e}")
                return
            else:
                raise DatabaseError(f"Failed to create FTS table: {e}")

        for trigger_sql in FTS_TRIGGERS:
            try:
                cur.execute(trigger_sql)
            except sqlite3.OperationalError as e:
                if "already exists" not in str(e):
                    raise DatabaseError(f"Failed to create trigger: {e}")

    logger.info("Schema initialization complete")


def reset_schema(manager: Optional[DatabaseManager] = None) -> None:
    """
    Drop and recreate all tables.

    Warning: This deletes all forum and index data.
    """
    manager = manager or get_db_manager()
    logger.warning("Resetting database schema - all data will be deleted")

    with manager.cursor() as cur:
        cur.execute("DROP TRIGGER IF EXISTS messages_ai")
        cur.execute("DROP TRIGGER IF EXISTS messages_ad")
        cur.execute("DROP TRIGGER IF EXISTS messages_au")
        cur.execute("DROP TABLE IF EXISTS messages_fts")
        for table in (
            "log_search_results", "log_search_topics", "log_search_messages",
            "log_search_words", "log_search_subjects", "settings", "messages",
            "topics", "members", "boards", "categories",
        ):
            cur.execute(f"DROP TABLE IF EXISTS {table}")

    init_schema(manager)

    logger.info("Schema reset complete")


def get_statistics(manager: Optional[DatabaseManager] = None) -> dict:
    """
    Get database statistics for the console sidebar.

    Returns:
        Dictionary with forum counts and index sizes.
    """
    manager = manager or get_db_manager()

    with manager.connection() as conn:
        stats = {}

        for key, sql in (
            ("total_boards", "SELECT COUNT(*) AS count FROM boards"),
            ("total_topics", "SELECT COUNT(*) AS count FROM topics"),
            ("total_messages", "SELECT COUNT(*) AS count FROM messages"),
            ("total_members", "SELECT COUNT(*) AS count FROM members"),
            ("subject_index_rows", "SELECT COUNT(*) AS count FROM log_search_subjects"),
            ("word_index_rows", "SELECT COUNT(*) AS count FROM log_search_words"),
        ):
            stats[key] = conn.execute(sql).fetchone()["count"]

        row = conn.execute(
            "SELECT MAX(poster_time) AS newest FROM messages"
        ).fetchone()
        stats["newest_post_time"] = row["newest"]
        stats["fulltext_available"] = table_exists(conn, "messages_fts")

    return stats
