"""
Tests for the search backends and their registry.

Tests fallback to the standard backend, word preparation and match
operators, and the SQL of the indexed backends.
"""

import pytest

from boardsearch.core import SearchConfig
from boardsearch.database import table_exists
from boardsearch.indexer import SearchIndexBuilder
from boardsearch.search.backends import (
    CustomSearch,
    FulltextSearch,
    IndexedWordSearcher,
    SearchData,
    StandardSearch,
    find_search_backend,
)
from boardsearch.search.backends.fulltext import fts_phrase
from boardsearch.search.models import OrBranch
from boardsearch.utils import word_to_id


class TestRegistry:
    """Tests for find_search_backend."""

    def test_standard_backend(self, db, config):
        assert find_search_backend("standard", db, config.search).name == "standard"

    def test_unknown_backend_falls_back(self, db, config):
        """Test that an unknown name never fails the search."""
        backend = find_search_backend("sphinx", db, config.search)

        assert isinstance(backend, StandardSearch)

    def test_custom_without_index_falls_back(self, db, config):
        assert find_search_backend("custom", db, config.search).name == "standard"

    def test_custom_after_index_build(self, manager, forum, config):
        """Test that the custom backend loads the settings of the built index."""
        config.custom_index.bytes_per_word = 3
        config.custom_index.stopword_percentage = 30
        builder = SearchIndexBuilder(manager, config)
        builder.build_custom_index()
        builder.remove_common_words()

        with manager.session() as db:
            backend = find_search_backend("custom", db, config.search)

        assert backend.name == "custom"
        assert backend.bytes_per_word == 3
        assert word_to_id("hello", 3) in backend.stopwords

    def test_fulltext_backend(self, db, config):
        backend = find_search_backend("fulltext", db, config.search)

        expected = "fulltext" if table_exists(db.conn, "messages_fts") else "standard"
        assert backend.name == expected

    def test_standard_has_no_index(self):
        assert not isinstance(StandardSearch(SearchConfig()), IndexedWordSearcher)


class TestWordMatching:
    """Tests for prepare_word and match_clause."""

    def test_like_pattern_escapes_wildcards(self):
        backend = StandardSearch(SearchConfig())

        assert backend.prepare_word("50%_off", no_regexp=False) == "%50\\%\\_off%"
        assert backend.match_clause("m.body", "p", False) == "m.body LIKE :p ESCAPE '\\'"

    def test_whole_word_regexp(self):
        """Test that match_words switches to whole-word regular expressions."""
        backend = StandardSearch(SearchConfig(match_words=True))

        assert backend.prepare_word("c++", no_regexp=False) == r"\bc\+\+\b"
        assert backend.match_clause("m.body", "p", False, negate=True) == "m.body NOT REGEXP :p"

    def test_numeric_entity_forces_like(self):
        backend = StandardSearch(SearchConfig(match_words=True))

        assert backend.match_operator(no_regexp=True) == "LIKE"
        assert backend.prepare_word("caf", no_regexp=True) == "%caf%"

    def test_long_words_first_with_excluded_last(self):
        backend = StandardSearch(SearchConfig())
        backend.set_excluded_words(["excludedword"])

        words = sorted(["ab", "excludedword", "abcd"], key=backend.search_sort)

        assert words == ["abcd", "ab", "excludedword"]


class TestCustomSearch:
    """Tests for the custom word index query."""

    def test_chained_joins_and_anti_join(self):
        backend = CustomSearch(SearchConfig())
        branch = OrBranch(indexed_words=[11, 22, 33], words=["hello"])

        parts = backend.indexed_word_query(branch, SearchData(excluded_index_words=[33], board_query="IN (1)"))
        sql = parts.to_sql()

        assert "log_search_words AS lsw1 ON (lsw1.id_msg = m.id_msg)" in sql
        assert "log_search_words AS lsw2 ON (lsw2.id_msg = lsw1.id_msg)" in sql
        assert "LEFT JOIN log_search_words AS lsw3" in sql
        assert "(lsw3.id_word IS NULL)" in sql
        assert "m.id_board IN (1)" in sql
        assert parts.params["word_id_3"] == 33

    def test_force_index_skips_subject_exclusions(self):
        backend = CustomSearch(SearchConfig(force_index=True))
        branch = OrBranch(indexed_words=[11])

        parts = backend.indexed_word_query(branch, SearchData(excluded_subject_words=["spam"]))

        assert "m.subject" not in parts.to_sql()


class TestFulltextSearch:
    """Tests for the FTS5 match expression."""

    def test_match_expression(self):
        backend = FulltextSearch(SearchConfig())
        branch = OrBranch(indexed_words=["hello", "world", "spam"])

        assert backend.build_match(branch, ["spam"]) == '("hello" AND "world") NOT "spam"'

    def test_only_excluded_words(self):
        """Test that a branch without a required word cannot use the index."""
        backend = FulltextSearch(SearchConfig())
        branch = OrBranch(indexed_words=["spam"])

        assert backend.indexed_word_query(branch, SearchData(excluded_index_words=["spam"])) is None

    @pytest.mark.parametrize("word, expected", [
        ("hello", '"hello"'),
        ("exact phrase", '"exact phrase"'),
        ('say "hi"', '"say ""hi"""'),
    ])
    def test_fts_phrase_quoting(self, word, expected):
        assert fts_phrase(word) == expected
