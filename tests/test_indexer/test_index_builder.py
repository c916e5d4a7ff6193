"""
Tests for the index builder.

Rebuilds the subject, custom word and fulltext indexes of the seeded
forum and checks what ends up in the index tables.
"""

import json
import sqlite3

import pytest

from boardsearch.database import table_exists
from boardsearch.indexer import SearchIndexBuilder, IndexingStats, rebuild_indexes
from boardsearch.search.backends.custom import INDEX_SETTINGS_KEY, STOPWORDS_KEY
from boardsearch.utils import word_to_id


def count_rows(manager, table: str) -> int:
    with manager.connection() as conn:
        return conn.execute(f"SELECT COUNT(*) AS count FROM {table}").fetchone()["count"]


def all_bodies(manager) -> list:
    with manager.connection() as conn:
        return [row["body"] for row in conn.execute("SELECT body FROM messages ORDER BY id_msg")]


class TestIndexingStats:
    """Tests for IndexingStats dataclass."""

    def test_stats_creation(self):
        stats = IndexingStats()

        assert stats.topics_indexed == 0
        assert stats.word_rows == 0
        assert stats.fulltext_rebuilt is False
        assert stats.errors == []


class TestSubjectIndex:
    """Tests for build_subject_index."""

    def test_indexes_first_message_subjects(self, manager, config, forum):
        """Test that every word of every topic subject is indexed once."""
        rows = SearchIndexBuilder(manager, config).build_subject_index()

        # world news / hello world / greetings / upgrade problem / old hello world
        assert rows == 10
        assert count_rows(manager, "log_search_subjects") == 10

    def test_rebuild_replaces_rows(self, manager, config, forum):
        builder = SearchIndexBuilder(manager, config)

        builder.build_subject_index()
        builder.build_subject_index()

        assert count_rows(manager, "log_search_subjects") == 10

    def test_replies_not_indexed(self, manager, config, forum):
        forum.repo.add_reply(forum.topics.hello, "unrelated", subject="Different subject")

        SearchIndexBuilder(manager, config).build_subject_index()

        with manager.connection() as conn:
            row = conn.execute("SELECT 1 FROM log_search_subjects WHERE word = 'different'").fetchone()
        assert row is None


class TestCustomIndex:
    """Tests for build_custom_index and remove_common_words."""

    def test_message_word_ids_skip_short_words(self, manager, config):
        """Test that words below the minimum length are not hashed."""
        builder = SearchIndexBuilder(manager, config)

        ids = builder.message_word_ids("a is the forum forum")

        assert ids == [word_to_id("the", 4), word_to_id("forum", 4)]

    def test_writes_word_rows(self, manager, config, forum):
        builder = SearchIndexBuilder(manager, config)
        expected = sum(len(builder.message_word_ids(body)) for body in all_bodies(manager))

        rows = builder.build_custom_index()

        assert rows == expected
        assert count_rows(manager, "log_search_words") == expected

    def test_stores_word_width(self, manager, config, forum):
        """Test that the hash width is saved for the search backend."""
        config.custom_index.bytes_per_word = 3

        SearchIndexBuilder(manager, config).build_custom_index()

        value = forum.repo.get_setting(INDEX_SETTINGS_KEY)
        assert json.loads(value) == {"bytes_per_word": 3}

    def test_common_words_kept_under_threshold(self, manager, config, forum):
        """Test that words in 5 of 8 messages survive a 60% threshold."""
        builder = SearchIndexBuilder(manager, config)
        builder.build_custom_index()

        assert builder.remove_common_words() == []
        assert forum.repo.get_setting(STOPWORDS_KEY) == ""

    def test_common_words_removed_over_threshold(self, manager, config, forum):
        config.custom_index.stopword_percentage = 30
        builder = SearchIndexBuilder(manager, config)
        builder.build_custom_index()

        removed = builder.remove_common_words()

        common = sorted([word_to_id("hello", 4), word_to_id("world", 4)])
        assert removed == common
        assert forum.repo.get_setting(STOPWORDS_KEY) == ",".join(str(w) for w in common)
        with manager.connection() as conn:
            placeholders = ", ".join("?" for _ in common)
            left = conn.execute(
                f"SELECT COUNT(*) AS count FROM log_search_words WHERE id_word IN ({placeholders})", common
            ).fetchone()["count"]
        assert left == 0

    def test_rebuild_clears_stopwords(self, manager, config, forum):
        config.custom_index.stopword_percentage = 30
        builder = SearchIndexBuilder(manager, config)
        builder.build_custom_index()
        builder.remove_common_words()

        builder.build_custom_index()

        assert forum.repo.get_setting(STOPWORDS_KEY) is None

    def test_progress_reported_per_batch(self, manager, config, forum):
        """Test that progress is reported after each batch of messages."""
        calls = []
        builder = SearchIndexBuilder(manager, config, progress_callback=lambda *args: calls.append(args))

        builder.build_custom_index()

        assert calls == [(3, 8, "words"), (6, 8, "words"), (8, 8, "words")]


class TestFulltext:
    """Tests for rebuild_fulltext."""

    def test_rebuild(self, manager, config, forum):
        with manager.connection() as conn:
            if not table_exists(conn, "messages_fts"):
                pytest.skip("SQLite built without FTS5")

        assert SearchIndexBuilder(manager, config).rebuild_fulltext() is True

        with manager.connection() as conn:
            rows = conn.execute("SELECT rowid FROM messages_fts WHERE messages_fts MATCH 'upgrade'").fetchall()
        assert [row["rowid"] for row in rows] == [6]


class TestBuildAll:
    """Tests for build_all and rebuild_indexes."""

    def test_build_all_stats(self, manager, config, forum):
        stats = SearchIndexBuilder(manager, config).build_all()

        assert stats.topics_indexed == 5
        assert stats.messages_indexed == 8
        assert stats.subject_words == 10
        assert stats.word_rows == count_rows(manager, "log_search_words")
        assert stats.stopwords_removed == 0
        assert stats.errors == []

    def test_skips_optional_indexes(self, manager, config, forum):
        stats = SearchIndexBuilder(manager, config).build_all(custom=False, fulltext=False)

        assert stats.word_rows == 0
        assert stats.fulltext_rebuilt is False
        assert count_rows(manager, "log_search_words") == 0

    def test_stopwords_counted(self, manager, config, forum):
        """Test that word_rows is recounted after common words are removed."""
        config.custom_index.stopword_percentage = 30

        stats = SearchIndexBuilder(manager, config).build_all(fulltext=False)

        assert stats.stopwords_removed == 2
        assert stats.word_rows == count_rows(manager, "log_search_words")

    def test_failed_step_recorded(self, manager, config, forum, monkeypatch):
        """Test that a failing step is reported and the others still run."""
        builder = SearchIndexBuilder(manager, config)

        def broken():
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(builder, "build_custom_index", broken)

        stats = builder.build_all(fulltext=False)

        assert len(stats.errors) == 1
        assert stats.errors[0].startswith("custom: Failed to build custom index")
        assert stats.subject_words == 10

    def test_reset_drops_forum(self, manager, config, forum):
        stats = SearchIndexBuilder(manager, config, reset=True).build_all()

        assert stats.messages_indexed == 0
        assert count_rows(manager, "messages") == 0

    def test_rebuild_indexes(self, manager, config, forum):
        stats = rebuild_indexes(manager, config)

        assert stats.messages_indexed == 8
        assert stats.errors == []
