"""
Tests for the query builder.

Tests board resolution, topic searches, age bounds, member filters,
sorting and the precedence of encoded tokens over form values.
"""

import pytest

from boardsearch.database import Viewer
from boardsearch.search.codec import encode_params
from boardsearch.search.models import SearchType
from boardsearch.search.query_builder import QueryBuilder, build_query


@pytest.fixture
def builder(db, config) -> QueryBuilder:
    return QueryBuilder(db, config.search)


class TestBoards:
    """Tests for board resolution."""

    def test_default_skips_redirect_and_recycle_boards(self, builder, forum):
        """Test that a plain search covers the visible content boards."""
        query, errors = builder.build({"search": "hello"})

        assert not errors
        assert query.brd == (forum.boards.general, forum.boards.support)
        assert query.board_query == f"IN ({forum.boards.general}, {forum.boards.support})"

    def test_admin_advanced_boards_used_as_given(self, builder, forum):
        boards = [forum.boards.general, forum.boards.support, forum.boards.recycle, forum.boards.links]

        query, _ = builder.build({"search": "hello", "brd": boards, "advanced": 1})

        assert query.brd == tuple(boards)
        assert query.board_query == ""

    def test_all_but_recycle_board(self, builder, forum):
        """Test that excluding only the recycle board uses an inequality."""
        boards = [forum.boards.general, forum.boards.support, forum.boards.links]

        query, _ = builder.build({"search": "hello", "brd": boards})

        assert query.board_query == f"!= {forum.boards.recycle}"

    def test_board_string_param(self, builder, forum):
        query, _ = builder.build({"search": "hello", "brd": f"{forum.boards.support}"})

        assert query.brd == (forum.boards.support,)

    def test_search_selection_board(self, builder, forum):
        query, _ = builder.build({
            "search": "hello",
            "search_selection": "board",
            "sd_brd": forum.boards.support
        })

        assert query.brd == (forum.boards.support,)

    def test_member_limited_to_visible_boards(self, manager, forum, config):
        """Test that a member never searches boards they cannot see."""
        viewer = Viewer.guest([forum.boards.general, forum.boards.recycle])

        with manager.session(viewer=viewer) as db:
            query, errors = QueryBuilder(db, config.search).build({
                "search": "hello",
                "brd": [forum.boards.general, forum.boards.support]
            })

        assert not errors
        assert query.brd == (forum.boards.general,)

    def test_no_visible_boards(self, manager, forum, config):
        with manager.session(viewer=Viewer.guest([])) as db:
            _, errors = QueryBuilder(db, config.search).build({"search": "hello"})

        assert "no_boards_selected" in errors


class TestTopic:
    """Tests for single-topic searches."""

    def test_topic_search(self, builder, forum):
        """Test that a topic search shows every message on the topic's board."""
        query, errors = builder.build({"search": "hello", "topic": forum.topics.hello})

        assert not errors
        assert query.topic == forum.topics.hello
        assert query.show_complete
        assert query.brd == (forum.boards.general,)

    def test_search_selection_topic(self, builder, forum):
        query, _ = builder.build({
            "search": "hello",
            "search_selection": "topic",
            "sd_topic": forum.topics.upgrade
        })

        assert query.topic == forum.topics.upgrade

    def test_missing_topic(self, builder):
        _, errors = builder.build({"search": "hello", "topic": 9999})

        assert "topic_gone" in errors

    def test_invisible_topic(self, manager, forum, config):
        with manager.session(viewer=Viewer.guest([forum.boards.support])) as db:
            _, errors = QueryBuilder(db, config.search).build({"search": "hello", "topic": forum.topics.hello})

        assert "topic_gone" in errors


class TestAge:
    """Tests for age bounds."""

    def test_maxage_sets_lowest_message(self, builder, forum):
        """Test that messages older than maxage days are cut off."""
        query, errors = builder.build({"search": "world", "maxage": 30})

        assert not errors
        assert query.min_msg_id == forum.messages.hello_first
        assert query.max_msg_id == 0

    def test_minage_sets_highest_message(self, builder):
        query, _ = builder.build({"search": "world", "minage": 10})

        assert query.max_msg_id == 1
        assert query.min_msg_id == 0

    def test_empty_time_frame(self, builder):
        """Test that a window without messages is reported."""
        query, errors = builder.build({"search": "world", "minage": 200})

        assert "no_messages_in_time_frame" in errors
        assert query.max_msg_id == 0

    def test_max_maxage_means_unbounded(self, builder):
        query, _ = builder.build({"search": "world", "maxage": 9999})

        assert query.maxage == 0
        assert query.min_msg_id == 0

    def test_recent_window(self, builder):
        """Test that the recent window covers the newest 30 percent of ids."""
        query, _ = builder.build({"search": "world"})

        assert query.min_msg == 5
        assert query.recent_msg == 3


class TestUserQuery:
    """Tests for member filters."""

    def test_member_name(self, builder, forum):
        user_query, params = builder.build_user_query("alice")

        assert f"m.id_member IN ({forum.members.alice})" in user_query
        assert params == {"possible_user_0": "alice"}

    def test_guest_name_pattern(self, builder):
        """Test that names without members filter guest posts only."""
        user_query, params = builder.build_user_query("spam*")

        assert user_query.startswith("m.id_member = 0 AND")
        assert params == {"possible_user_0": "spam%"}

    def test_quoted_and_listed_names(self, builder, forum):
        user_query, params = builder.build_user_query('"alice", bob')

        assert f"IN ({forum.members.alice}, {forum.members.bob})" in user_query
        assert sorted(params.values()) == ["alice", "bob"]

    def test_like_wildcards_escaped(self, builder):
        _, params = builder.build_user_query("some_name?")

        assert params == {"possible_user_0": "some\\_name_"}

    def test_too_many_members_drops_filter(self, db, config):
        config.search.max_members_to_search = 0

        assert QueryBuilder(db, config.search).build_user_query("alice") == ("", {})

    def test_star_userspec_ignored(self, builder):
        query, _ = builder.build({"search": "hello", "userspec": "*"})

        assert query.userspec == ""
        assert query.user_query == ""


class TestSortAndType:
    """Tests for sorting and search type."""

    def test_defaults(self, builder):
        query, _ = builder.build({"search": "hello"})

        assert query.searchtype == SearchType.ALL
        assert (query.sort, query.sort_dir) == ("relevance", "desc")

    def test_sort_param(self, builder):
        query, _ = builder.build({"search": "hello", "sort": "num_replies|asc", "searchtype": 2})

        assert (query.sort, query.sort_dir) == ("num_replies", "asc")
        assert query.searchtype == SearchType.ANY

    def test_invalid_sort_falls_back(self, builder):
        query, _ = builder.build({"search": "hello", "sort": "poster_name|sideways"})

        assert (query.sort, query.sort_dir) == ("relevance", "desc")

    def test_topic_search_cannot_sort_by_replies(self, builder, forum):
        query, _ = builder.build({"search": "hello", "topic": forum.topics.hello, "sort": "num_replies|desc"})

        assert query.sort == "id_msg"


class TestEncodedParams:
    """Tests for continuing a search from its token."""

    def test_stored_values_win(self, db, config):
        """Test that the token's values override the form."""
        token = encode_params({"search": "stored words", "searchtype": 2, "sort": "id_msg", "sort_dir": "asc"})

        query, _ = build_query(db, config.search, {"search": "form words", "sort": "relevance|desc"}, token)

        assert query.search == "stored words"
        assert query.searchtype == SearchType.ANY
        assert (query.sort, query.sort_dir) == ("id_msg", "asc")

    def test_query_params_round_trip(self, builder, forum):
        """Test that a query rebuilt from its own token is the same query."""
        query, _ = builder.build({"search": "hello", "maxage": 30, "brd": [forum.boards.general], "searchtype": 2})

        again, _ = builder.build({}, encode_params(query.params()))

        assert again == query
