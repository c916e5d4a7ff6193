"""
Integration tests for the full indexing and search pipeline.

Seeds a forum through the repository, rebuilds every index and searches
it through each backend, the way the console and the scripts do.
"""

import time

import pytest

from boardsearch.database import ForumRepository, table_exists, get_statistics
from boardsearch.indexer import SearchIndexBuilder
from boardsearch.search import SearchEngine


TOPICS = [
    ("Database upgrade fails", "the upgrade script fails on the database step"),
    ("Theme colours", "how do I change the theme colours of the board"),
    ("Upgrade to the new release", "the upgrade went fine, thanks for the database fix"),
    ("Attachment limits", "raise the attachment size limit in the admin panel"),
    ("Database backup", "make a database backup before any upgrade"),
    ("Welcome", "welcome to the community board"),
]


class TestFullPipeline:
    """
    Integration tests for the complete index-and-search pipeline.

    These tests verify that:
    1. Forum content can be written and indexed
    2. Every backend finds the same topics
    3. Results page through the encoded token
    4. Statistics are accurate
    """

    @pytest.fixture
    def integrated_system(self, manager, config):
        """Seed a forum and rebuild every index."""
        repo = ForumRepository(manager)
        now = int(time.time())

        id_cat = repo.add_category("Community")
        id_board = repo.add_board("Help", id_cat)
        member = repo.add_member("carol")

        for offset, (subject, body) in enumerate(TOPICS):
            id_topic, _ = repo.add_topic(
                id_board, subject, body, id_member=member, poster_time=now - (10 - offset) * 3600
            )
            repo.add_reply(id_topic, "any news on this?", poster_name="visitor", poster_time=now - 60)

        config.search.recycle_board = 0
        config.custom_index.stopword_percentage = 100
        stats = SearchIndexBuilder(manager, config).build_all()

        return {"manager": manager, "config": config, "stats": stats}

    def _search(self, system, params, index="standard", **kwargs):
        system["config"].search.index = index
        with system["manager"].session() as db:
            return SearchEngine(db, system["config"]).search(params, **kwargs)

    def test_indexing_stats(self, integrated_system):
        stats = integrated_system["stats"]

        assert stats.topics_indexed == 6
        assert stats.messages_indexed == 12
        assert stats.errors == []

    def test_statistics(self, integrated_system):
        stats = get_statistics(integrated_system["manager"])

        assert stats["total_topics"] == 6
        assert stats["total_messages"] == 12
        assert stats["subject_index_rows"] > 0

    def test_standard_search(self, integrated_system):
        outcome = self._search(integrated_system, {"search": "database upgrade"})

        assert outcome.backend == "standard"
        assert {m.subject for m in outcome.page.messages} == {
            "Database upgrade fails", "Upgrade to the new release", "Database backup"
        }

    def test_custom_backend_agrees(self, integrated_system):
        """Test that the hashed word index finds the same topics as a body scan."""
        standard = self._search(integrated_system, {"search": "database upgrade -backup"})
        custom = self._search(integrated_system, {"search": "database upgrade -backup"}, index="custom")

        assert custom.backend == "custom"
        assert {m.id_topic for m in custom.page.messages} == {m.id_topic for m in standard.page.messages}
        assert len(custom.page.messages) == 2

    def test_fulltext_backend_agrees(self, integrated_system):
        with integrated_system["manager"].connection() as conn:
            if not table_exists(conn, "messages_fts"):
                pytest.skip("SQLite built without FTS5")

        standard = self._search(integrated_system, {"search": "attachment"})
        fulltext = self._search(integrated_system, {"search": "attachment"}, index="fulltext")

        assert fulltext.backend == "fulltext"
        assert [m.id_topic for m in fulltext.page.messages] == [m.id_topic for m in standard.page.messages]

    def test_results_in_relevance_order(self, integrated_system):
        outcome = self._search(integrated_system, {"search": "upgrade"})

        assert len(outcome.page.rows) == 3
        assert outcome.page.rows == sorted(outcome.page.rows, key=lambda r: -r.relevance)

    def test_pagination_through_token(self, integrated_system):
        """Test that pages of the same search never repeat a topic."""
        first = self._search(integrated_system, {"search": "theme database", "searchtype": 2}, limit=2)

        second = self._search(integrated_system, {}, encoded=first.token, start=2, limit=2)

        assert first.num_results == 4
        assert len(first.page.messages) == 2
        assert len(second.page.messages) == 2
        assert not {m.id_topic for m in first.page.messages} & {m.id_topic for m in second.page.messages}
        assert second.page.page == 2
        assert second.page.total_pages == 2
