"""
Database module for SQLite persistence of the forum and its search logs.

Provides connection management, the per-search Database session, schema
definitions with FTS5 and word indexes, viewer permissions and forum
content writes.
"""

from .connection import get_connection, get_cursor, get_db_manager, DatabaseManager, Database
from .permissions import Viewer
from .schema import init_schema, reset_schema, get_statistics, table_exists
from .repository import ForumRepository, Board, Message

__all__ = [
    "get_connection",
    "get_cursor",
    "get_db_manager",
    "DatabaseManager",
    "Database",
    "Viewer",
    "init_schema",
    "reset_schema",
    "get_statistics",
    "table_exists",
    "ForumRepository",
    "Board",
    "Message"
]
