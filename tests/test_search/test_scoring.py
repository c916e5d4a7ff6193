"""
Tests for relevance weights, the scorer and the result assembler.

Tests weight normalization, the relevance bound, result uniqueness,
page ordering and the per-page metadata.
"""

import pytest

from boardsearch.core import WeightsConfig
from boardsearch.database import Viewer
from boardsearch.search import SearchEngine
from boardsearch.search.models import SearchQuery
from boardsearch.search.weights import DEFAULT_WEIGHTS, WeightProfile


def result_rows(db, search_id: int = 1):
    return db.query(
        "SELECT result_key, id_topic, id_msg, relevance, num_matches FROM log_search_results WHERE id_search = ?",
        (search_id,)
    )


class TestWeightProfile:
    """Tests for WeightProfile."""

    def test_all_zero_uses_defaults(self):
        profile = WeightProfile.from_config(WeightsConfig())

        assert profile.weights == DEFAULT_WEIGHTS
        assert profile.total == 100

    def test_negative_weights_count_as_zero(self):
        profile = WeightProfile({"frequency": -5, "age": 10, "unknown": 50})

        assert profile.weights["frequency"] == 0
        assert profile.weights["age"] == 10
        assert profile.total == 10

    def test_relevance_without_weighted_factors(self):
        """Test that a profile with no weight on the given factors scores zero."""
        profile = WeightProfile({"age": 10})

        assert profile.build_relevance({"frequency": "1"}) == "0"

    def test_relevance_expression_is_clamped(self, db):
        """Test that out-of-range factors cannot push relevance past 1000."""
        profile = WeightProfile({"frequency": 1, "age": 1})

        sql = profile.build_relevance({"frequency": "5", "age": "-3"})
        value = db.query_one(f"SELECT {sql} AS relevance")["relevance"]

        assert value == 500

    def test_relevance_params_guard_divisors(self):
        params = WeightProfile().relevance_params(SearchQuery(min_msg=4, recent_msg=0), 0)

        assert params == {"min_msg": 4, "recent_msg": 1, "huge_topic_posts": 1}


class TestRelevanceScorer:
    """Tests for scoring through a full search."""

    def test_relevance_within_bounds(self, engine, db):
        engine.search({"search": "hello world", "searchtype": 2})

        rows = result_rows(db)
        assert rows
        assert all(0 <= row["relevance"] <= 1000 for row in rows)

    def test_one_row_per_topic(self, engine, db, forum):
        """Test that grouped results count the matching messages of each topic."""
        engine.search({"search": "hello world -spam"})

        rows = result_rows(db)
        assert [(row["id_topic"], row["num_matches"]) for row in rows] == [(forum.topics.hello, 2)]
        assert rows[0]["id_msg"] == forum.messages.hello_reply

    def test_one_row_per_message_when_verbatim(self, engine, db):
        engine.search({"search": "hello world", "show_complete": 1})

        rows = result_rows(db)
        assert sorted(row["result_key"] for row in rows) == [2, 3, 5]
        assert all(row["num_matches"] == 1 for row in rows)
        assert all(row["result_key"] == row["id_msg"] for row in rows)

    def test_single_factor_weight(self, db, config, forum):
        """Test that only weighted factors contribute to relevance."""
        db.execute("UPDATE topics SET is_sticky = 1 WHERE id_topic = ?", (forum.topics.hello,))
        config.weights = WeightsConfig(sticky=1)

        SearchEngine(db, config).search({"search": "hello world -spam"})

        assert result_rows(db)[0]["relevance"] == 1000

    def test_frequency_factor(self, db, config):
        """Test that two matches in a topic with two replies score two thirds."""
        config.weights = WeightsConfig(frequency=1)

        SearchEngine(db, config).search({"search": "hello world -spam"})

        assert result_rows(db)[0]["relevance"] == 666

    def test_result_ceiling(self, db, config):
        config.search.max_results = 1

        outcome = SearchEngine(db, config).search({"search": "hello world", "searchtype": 2})

        assert outcome.num_results == 1
        assert len(result_rows(db)) == 1

    def test_results_replaced_on_rerun(self, engine, db):
        """Test that reusing a search id replaces the earlier results."""
        engine.search({"search": "hello world", "searchtype": 2})
        engine.search({"search": "upgrade"})

        assert len(result_rows(db)) == 1

    def test_other_searches_untouched(self, engine, db):
        engine.search({"search": "upgrade"}, search_id=7)
        engine.search({"search": "hello world", "searchtype": 2}, search_id=8)

        assert len(result_rows(db, 7)) == 1
        assert len(result_rows(db, 8)) == 4


class TestResultAssembler:
    """Tests for page assembly."""

    @pytest.mark.parametrize("sort, expected", [
        ("id_msg|asc", [1, 3, 7]),
        ("id_msg|desc", [7, 3, 1]),
    ])
    def test_page_follows_sort(self, engine, sort, expected):
        outcome = engine.search({"search": "hello world -spam", "searchtype": 2, "sort": sort})

        assert [row.id_msg for row in outcome.page.rows] == expected
        assert [message.id_msg for message in outcome.page.messages] == expected

    def test_pagination_window(self, engine):
        """Test that pages slice the same ordered results."""
        params = {"search": "hello world -spam", "searchtype": 2, "sort": "id_msg|asc"}

        first = engine.search(params, limit=2)
        second = engine.search(params, start=2, limit=2)

        assert [m.id_msg for m in first.page.messages] == [1, 3]
        assert [m.id_msg for m in second.page.messages] == [7]
        assert first.page.total_results == second.page.total_results == 3
        assert second.page.page == 2

    def test_message_metadata(self, engine, forum):
        outcome = engine.search({"search": "upgrade"})

        message = outcome.page.messages[0]
        assert message.id_topic == forum.topics.upgrade
        assert message.board_name == "Support"
        assert message.cat_name == "Main"
        assert message.first_member_name == "bob"
        assert message.last_member_name == "helper"
        assert message.num_replies == 1
        assert 0 <= message.relevance <= 100

    def test_posters_exclude_guests(self, engine, forum):
        outcome = engine.search({"search": "hello", "show_complete": 1})

        assert sorted(outcome.page.posters) == [forum.members.alice, forum.members.bob]

    def test_participation(self, manager, forum, config):
        """Test that topics the viewer posted in are flagged."""
        viewer = Viewer(id_member=forum.members.bob, is_admin=True)

        with manager.session(viewer=viewer) as db:
            outcome = SearchEngine(db, config).search({"search": "hello world -spam", "searchtype": 2})

        flags = {message.id_topic: message.participated for message in outcome.page.messages}
        assert flags == {forum.topics.news: False, forum.topics.hello: True, forum.topics.upgrade: True}

    def test_replies_sort_becomes_id_sort_in_topic(self, engine, forum):
        """Test that a topic search sorted by replies is ordered by message id."""
        engine.search({"search": "hello", "topic": forum.topics.hello})
        query = SearchQuery(topic=forum.topics.hello, sort="num_replies", sort_dir="asc")

        page = engine.assemble_page(1, query)

        assert [row.id_msg for row in page.rows] == [forum.messages.hello_first, forum.messages.hello_reply]
