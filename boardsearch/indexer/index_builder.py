"""
Offline builder for the search indexes.

Rebuilds the subject index, the hashed custom word index and the FTS5
table from the forum tables. Searches only read these indexes; nothing
here runs during a request.
"""

import json
import math
import sqlite3
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..core import get_config, get_logger, Config, DatabaseError, IndexingError
from ..database import init_schema, reset_schema, table_exists, DatabaseManager, get_db_manager
from ..search.backends.custom import INDEX_SETTINGS_KEY, STOPWORDS_KEY
from ..utils import text2words, text2word_ids

logger = get_logger(__name__)


@dataclass
class IndexingStats:
    """Statistics from an indexing run."""
    topics_indexed: int = 0
    subject_words: int = 0
    messages_indexed: int = 0
    word_rows: int = 0
    stopwords_removed: int = 0
    fulltext_rebuilt: bool = False
    errors: List[str] = field(default_factory=list)


class SearchIndexBuilder:
    """
    Rebuilds the search indexes of a forum database.

    Works through messages in batches and reports progress through an
    optional callback(done, total, step).
    """

    def __init__(
        self,
        manager: DatabaseManager = None,
        config: Config = None,
        reset: bool = False,
        progress_callback: Callable[[int, int, str], None] = None
    ):
        """
        Initialize the index builder.

        Args:
            manager: Database to index. Defaults to the configured one.
            config: Application configuration. Defaults to the global one.
            reset: If True, drop and recreate the whole schema first.
            progress_callback: Optional callback(done, total, step).
        """
        self.config = config or get_config()
        self.manager = manager or get_db_manager()
        self.reset = reset
        self.progress_callback = progress_callback

        self.bytes_per_word = self.config.custom_index.bytes_per_word
        self.batch_size = max(self.config.custom_index.batch_size, 1)
        self.stopword_percentage = self.config.custom_index.stopword_percentage
        self.min_word_length = self.config.search.min_word_length

    def _progress(self, done: int, total: int, step: str) -> None:
        if self.progress_callback:
            self.progress_callback(done, total, step)

    def _message_batches(self, conn, columns: str):
        """Yield lists of message rows in id order, batch_size at a time."""
        last_id = 0
        while True:
            rows = conn.execute(
                f"SELECT {columns} FROM messages WHERE id_msg > ? ORDER BY id_msg LIMIT ?",
                (last_id, self.batch_size)
            ).fetchall()
            if not rows:
                break
            yield rows
            last_id = rows[-1]["id_msg"]

    def build_subject_index(self) -> int:
        """
        Index the words of every topic subject.

        Returns:
            Number of (word, topic) rows written.
        """
        logger.info("Rebuilding subject index")

        with self.manager.cursor() as cur:
            cur.execute("DELETE FROM log_search_subjects")

            rows = cur.execute("""
                SELECT t.id_topic, m.subject
                FROM topics AS t
                    INNER JOIN messages AS m ON (m.id_msg = t.id_first_msg)
            """).fetchall()

            inserts = [
                (word, row["id_topic"])
                for row in rows
                for word in text2words(row["subject"])
            ]
            cur.executemany(
                "INSERT OR IGNORE INTO log_search_subjects (word, id_topic) VALUES (?, ?)",
                inserts
            )

        self._progress(len(rows), len(rows), "subjects")
        logger.info(f"Subject index: {len(inserts)} words over {len(rows)} topics")
        return len(inserts)

    def message_word_ids(self, body: str) -> List[int]:
        """Hashed ids of the indexable words of a message body."""
        return text2word_ids(body, self.bytes_per_word, self.min_word_length)

    def build_custom_index(self) -> int:
        """
        Hash every message body into log_search_words.

        The word width used is stored in settings so the search backend
        hashes queries the same way.

        Returns:
            Number of (word, message) rows written.
        """
        logger.info(f"Rebuilding custom word index ({self.bytes_per_word} bytes per word)")

        with self.manager.connection() as conn:
            total = conn.execute("SELECT COUNT(*) AS count FROM messages").fetchone()["count"]

            conn.execute("DELETE FROM log_search_words")
            conn.execute("DELETE FROM settings WHERE variable = ?", (STOPWORDS_KEY,))

            done = 0
            word_rows = 0
            for rows in self._message_batches(conn, "id_msg, body"):
                inserts = [
                    (word_id, row["id_msg"])
                    for row in rows
                    for word_id in self.message_word_ids(row["body"])
                ]
                before = conn.total_changes
                conn.executemany(
                    "INSERT OR IGNORE INTO log_search_words (id_word, id_msg) VALUES (?, ?)",
                    inserts
                )
                word_rows += conn.total_changes - before
                conn.commit()

                done += len(rows)
                self._progress(done, total, "words")
                logger.debug(f"Custom index: {done}/{total} messages")

            conn.execute(
                "INSERT OR REPLACE INTO settings (variable, value) VALUES (?, ?)",
                (INDEX_SETTINGS_KEY, json.dumps({"bytes_per_word": self.bytes_per_word}))
            )
            conn.commit()

        logger.info(f"Custom index: {word_rows} rows over {total} messages")
        return word_rows

    def remove_common_words(self) -> List[int]:
        """
        Drop words found in too many messages from the custom index.

        A word is common when it occurs in more than stopword_percentage
        percent of all messages. The removed word ids are stored as the
        stopword setting so searches skip them too.

        Returns:
            The removed word ids.
        """
        with self.manager.cursor() as cur:
            total = cur.execute("SELECT COUNT(*) AS count FROM messages").fetchone()["count"]
            max_messages = math.ceil(self.stopword_percentage * total / 100)

            stopwords = [
                row["id_word"]
                for row in cur.execute(
                    """
                    SELECT id_word
                    FROM log_search_words
                    GROUP BY id_word
                    HAVING COUNT(id_word) > ?
                    ORDER BY id_word
                    """,
                    (max_messages,)
                ).fetchall()
            ]

            cur.execute(
                "INSERT OR REPLACE INTO settings (variable, value) VALUES (?, ?)",
                (STOPWORDS_KEY, ",".join(str(word_id) for word_id in stopwords))
            )

            if stopwords:
                placeholders = ", ".join("?" for _ in stopwords)
                cur.execute(f"DELETE FROM log_search_words WHERE id_word IN ({placeholders})", stopwords)

        logger.info(f"Removed {len(stopwords)} common word(s) from the custom index")
        return stopwords

    def rebuild_fulltext(self) -> bool:
        """
        Rebuild the FTS5 table from the messages table.

        Returns:
            False when this SQLite build has no FTS5 table.
        """
        with self.manager.cursor() as cur:
            if not table_exists(cur.connection, "messages_fts"):
                logger.warning("No fulltext table, skipping rebuild")
                return False
            cur.execute("INSERT INTO messages_fts(messages_fts) VALUES('rebuild')")

        logger.info("Fulltext index rebuilt")
        return True

    def build_all(self, custom: bool = True, fulltext: bool = True) -> IndexingStats:
        """
        Rebuild every search index.

        Args:
            custom: Build the custom word index.
            fulltext: Rebuild the FTS5 table.

        Returns:
            IndexingStats with counts and any errors encountered.
        """
        stats = IndexingStats()

        logger.info("Starting search index rebuild")

        if self.reset:
            reset_schema(self.manager)
        else:
            init_schema(self.manager)

        with self.manager.connection() as conn:
            stats.topics_indexed = conn.execute("SELECT COUNT(*) AS count FROM topics").fetchone()["count"]
            stats.messages_indexed = conn.execute("SELECT COUNT(*) AS count FROM messages").fetchone()["count"]

        steps = [("subjects", self._build_subjects)]
        if custom:
            steps.append(("custom", self._build_custom))
        if fulltext:
            steps.append(("fulltext", self._build_fulltext))

        for name, step in steps:
            try:
                step(stats)
            except IndexingError as e:
                stats.errors.append(f"{name}: {e.message}")
                logger.error(f"Index step '{name}' failed: {e.message}")

        logger.info(
            f"Index rebuild complete: {stats.subject_words} subject words, "
            f"{stats.word_rows} word rows, {stats.stopwords_removed} stopwords, "
            f"{len(stats.errors)} error(s)"
        )

        return stats

    def _build_subjects(self, stats: IndexingStats) -> None:
        stats.subject_words = self._guard("subject index", self.build_subject_index)

    def _build_custom(self, stats: IndexingStats) -> None:
        stats.word_rows = self._guard("custom index", self.build_custom_index)
        stats.stopwords_removed = len(self._guard("common words", self.remove_common_words))
        if stats.stopwords_removed:
            with self.manager.connection() as conn:
                stats.word_rows = conn.execute("SELECT COUNT(*) AS count FROM log_search_words").fetchone()["count"]

    def _build_fulltext(self, stats: IndexingStats) -> None:
        stats.fulltext_rebuilt = self._guard("fulltext index", self.rebuild_fulltext)

    def _guard(self, step: str, func: Callable):
        try:
            return func()
        except (sqlite3.Error, DatabaseError) as e:
            raise IndexingError(f"Failed to build {step}: {e}", {"step": step})


def rebuild_indexes(manager: Optional[DatabaseManager] = None, config: Config = None) -> IndexingStats:
    """Convenience wrapper: rebuild every index of the configured database."""
    return SearchIndexBuilder(manager, config).build_all()
