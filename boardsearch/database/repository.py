"""
Forum repository for writing and reading boards, topics and messages.

The search core only reads the forum tables; this repository is what the
console, the indexer demo data and the tests use to populate them while
keeping topic counters (first/last message, replies) consistent.
"""

import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..core import get_logger, DatabaseError
from .connection import DatabaseManager, get_db_manager

logger = get_logger(__name__)


@dataclass
class Board:
    """A board as listed in the search console."""
    id_board: int
    id_cat: int
    name: str
    category_name: str
    num_topics: int
    num_posts: int


@dataclass
class Message:
    """A single forum post."""
    id_msg: int
    id_topic: int
    id_board: int
    id_member: int
    poster_name: str
    poster_time: int
    subject: str
    body: str
    approved: bool


class ForumRepository:
    """
    Repository for forum content.

    Every write runs in its own transaction so counters on topics and
    boards never drift from the messages they describe.
    """

    def __init__(self, manager: DatabaseManager = None):
        self.manager = manager or get_db_manager()

    def add_category(self, name: str, cat_order: int = 0) -> int:
        with self.manager.cursor() as cur:
            cur.execute(
                "INSERT INTO categories (name, cat_order) VALUES (?, ?)",
                (name, cat_order)
            )
            return cur.lastrowid

    def add_board(self, name: str, id_cat: int, description: str = "") -> int:
        with self.manager.cursor() as cur:
            cur.execute(
                "INSERT INTO boards (id_cat, name, description) VALUES (?, ?, ?)",
                (id_cat, name, description)
            )
            return cur.lastrowid

    def add_member(self, member_name: str, real_name: str = None, email: str = "") -> int:
        with self.manager.cursor() as cur:
            cur.execute(
                "INSERT INTO members (member_name, real_name, email_address) VALUES (?, ?, ?)",
                (member_name, real_name or member_name, email)
            )
            return cur.lastrowid

    def add_topic(
        self,
        id_board: int,
        subject: str,
        body: str,
        id_member: int = 0,
        poster_name: str = "",
        poster_time: int = None,
        is_sticky: bool = False,
        approved: bool = True
    ) -> Tuple[int, int]:
        """
        Start a topic with its first message.

        Args:
            id_board: Board the topic is posted in.
            subject: Subject of the first message.
            body: Body of the first message.
            id_member: Poster, 0 for a guest.
            poster_name: Display name, looked up from members when empty.
            poster_time: Unix timestamp, defaults to now.
            is_sticky: Whether the topic is pinned.
            approved: Moderation state of topic and message.

        Returns:
            Tuple of (id_topic, id_msg).
        """
        with self.manager.cursor() as cur:
            cur.execute(
                "INSERT INTO topics (id_board, id_member_started, is_sticky, approved) VALUES (?, ?, ?, ?)",
                (id_board, id_member, int(is_sticky), int(approved))
            )
            id_topic = cur.lastrowid

            id_msg = self._insert_message(
                cur, id_topic, id_board, subject, body,
                id_member, poster_name, poster_time, approved
            )

            cur.execute(
                "UPDATE topics SET id_first_msg = ?, id_last_msg = ? WHERE id_topic = ?",
                (id_msg, id_msg, id_topic)
            )
            cur.execute(
                "UPDATE boards SET num_topics = num_topics + 1, num_posts = num_posts + 1 WHERE id_board = ?",
                (id_board,)
            )

        logger.debug(f"Created topic {id_topic} with message {id_msg} on board {id_board}")
        return id_topic, id_msg

    def add_reply(
        self,
        id_topic: int,
        body: str,
        subject: str = None,
        id_member: int = 0,
        poster_name: str = "",
        poster_time: int = None,
        approved: bool = True
    ) -> int:
        """
        Append a reply to a topic.

        Returns:
            The new message id.

        Raises:
            DatabaseError: If the topic does not exist.
        """
        with self.manager.cursor() as cur:
            topic = cur.execute(
                """
                SELECT t.id_board, m.subject
                FROM topics AS t
                    INNER JOIN messages AS m ON (m.id_msg = t.id_first_msg)
                WHERE t.id_topic = ?
                """,
                (id_topic,)
            ).fetchone()

            if topic is None:
                raise DatabaseError(f"Topic {id_topic} does not exist", {"id_topic": id_topic})

            id_msg = self._insert_message(
                cur, id_topic, topic["id_board"], subject or "Re: " + topic["subject"], body,
                id_member, poster_name, poster_time, approved
            )

            cur.execute(
                "UPDATE topics SET id_last_msg = ?, num_replies = num_replies + 1 WHERE id_topic = ?",
                (id_msg, id_topic)
            )
            cur.execute(
                "UPDATE boards SET num_posts = num_posts + 1 WHERE id_board = ?",
                (topic["id_board"],)
            )

        return id_msg

    def _insert_message(
        self, cur, id_topic, id_board, subject, body,
        id_member, poster_name, poster_time, approved
    ) -> int:
        if not poster_name and id_member:
            row = cur.execute(
                "SELECT real_name FROM members WHERE id_member = ?",
                (id_member,)
            ).fetchone()
            poster_name = row["real_name"] if row else ""

        cur.execute(
            """
            INSERT INTO messages
            (id_topic, id_board, poster_time, id_member, subject, poster_name, body, approved)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                id_topic, id_board, int(poster_time if poster_time is not None else time.time()),
                id_member, subject, poster_name, body, int(approved)
            )
        )

        if id_member:
            cur.execute("UPDATE members SET posts = posts + 1 WHERE id_member = ?", (id_member,))

        return cur.lastrowid

    def set_topic_likes(self, id_topic: int, num_likes: int) -> None:
        with self.manager.cursor() as cur:
            cur.execute("UPDATE topics SET num_likes = ? WHERE id_topic = ?", (num_likes, id_topic))

    def get_message(self, id_msg: int) -> Optional[Message]:
        """
        Fetch a message by its ID.

        Args:
            id_msg: Message id.

        Returns:
            Message object or None.
        """
        with self.manager.connection() as conn:
            row = conn.execute("SELECT * FROM messages WHERE id_msg = ?", (id_msg,)).fetchone()

        if row is None:
            return None

        return Message(
            id_msg=row["id_msg"],
            id_topic=row["id_topic"],
            id_board=row["id_board"],
            id_member=row["id_member"],
            poster_name=row["poster_name"],
            poster_time=row["poster_time"],
            subject=row["subject"],
            body=row["body"],
            approved=bool(row["approved"])
        )

    def list_boards(self) -> List[Board]:
        """All boards ordered by category and name."""
        with self.manager.connection() as conn:
            rows = conn.execute("""
                SELECT b.id_board, b.id_cat, b.name, COALESCE(c.name, '') AS category_name,
                    b.num_topics, b.num_posts
                FROM boards AS b
                    LEFT JOIN categories AS c ON (c.id_cat = b.id_cat)
                ORDER BY c.cat_order, b.name
            """).fetchall()

        return [
            Board(
                id_board=row["id_board"],
                id_cat=row["id_cat"],
                name=row["name"],
                category_name=row["category_name"],
                num_topics=row["num_topics"],
                num_posts=row["num_posts"]
            )
            for row in rows
        ]

    def count_messages(self) -> int:
        with self.manager.connection() as conn:
            return conn.execute("SELECT COUNT(*) AS count FROM messages").fetchone()["count"]

    def get_setting(self, variable: str, default: str = None) -> Optional[str]:
        with self.manager.connection() as conn:
            row = conn.execute(
                "SELECT value FROM settings WHERE variable = ?",
                (variable,)
            ).fetchone()
        return row["value"] if row else default

    def set_setting(self, variable: str, value: str) -> None:
        with self.manager.cursor() as cur:
            cur.execute(
                "INSERT OR REPLACE INTO settings (variable, value) VALUES (?, ?)",
                (variable, str(value))
            )
