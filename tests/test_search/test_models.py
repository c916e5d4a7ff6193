"""
Tests for search data models.

Tests SearchQuery, SearchErrors, BranchSet and the result page dataclasses.
"""

from boardsearch.search.models import (
    BranchSet,
    OrBranch,
    ResultPage,
    ResultRow,
    SearchErrors,
    SearchQuery,
    SearchType,
    WordSet,
)


class TestSearchQuery:
    """Tests for SearchQuery dataclass."""

    def test_defaults(self):
        """Test that a bare query searches all words by relevance."""
        query = SearchQuery(search="forum")

        assert query.searchtype == SearchType.ALL
        assert query.sort == "relevance"
        assert query.sort_dir == "desc"
        assert not query.is_verbatim

    def test_topic_or_show_complete_is_verbatim(self):
        assert SearchQuery(topic=3).is_verbatim
        assert SearchQuery(show_complete=True).is_verbatim

    def test_params_for_token(self):
        """Test that only meaningful parameters are stored."""
        query = SearchQuery(search="hello", searchtype=SearchType.ANY, brd=(1, 2), maxage=30)

        params = query.params()

        assert params["search"] == "hello"
        assert params["searchtype"] == 2
        assert params["brd"] == [1, 2]
        assert params["maxage"] == 30
        assert "topic" not in params
        assert "minage" not in params

    def test_user_parameters(self):
        query = SearchQuery(user_params=(("possible_user_0", "alice"),))

        assert query.user_parameters == {"possible_user_0": "alice"}


class TestSearchErrors:
    """Tests for SearchErrors."""

    def test_accumulates_codes(self):
        """Test that several codes are kept at once."""
        errors = SearchErrors()
        errors.add("topic_gone")
        errors.add("no_boards_selected")
        errors.add("topic_gone")

        assert len(errors) == 2
        assert "topic_gone" in errors
        assert errors.codes == ["no_boards_selected", "topic_gone"]

    def test_empty_is_false(self):
        assert not SearchErrors()

    def test_messages(self):
        errors = SearchErrors(["query_not_specific_enough", "custom_code"])

        assert errors.messages() == ["custom code", "Your search query was not specific enough."]

    def test_update(self):
        errors = SearchErrors(["topic_gone"])
        errors.update(SearchErrors(["no_boards_selected"]))

        assert errors.codes == ["no_boards_selected", "topic_gone"]


class TestWordSetAndBranches:
    """Tests for WordSet and BranchSet."""

    def test_word_set_exclusion(self):
        word_set = WordSet(tokens=["hello"], excluded_words=["spam"])

        assert word_set.is_excluded("spam")
        assert not word_set.is_excluded("hello")
        assert not word_set.is_empty()

    def test_branch_set_behaves_like_list(self):
        branches = BranchSet(branches=[OrBranch(all_words=["a"]), OrBranch(all_words=["b"])])

        assert len(branches) == 2
        assert branches[1].all_words == ["b"]
        assert [b.all_words[0] for b in branches] == ["a", "b"]


class TestResultPage:
    """Tests for ResultRow and ResultPage."""

    def test_display_relevance(self):
        """Test that stored relevance is shown divided by ten."""
        assert ResultRow(id_topic=1, id_msg=1, relevance=873, num_matches=1).display_relevance == 87.3

    def test_page_numbers(self):
        page = ResultPage(total_results=25, start=20, limit=10)

        assert page.total_pages == 3
        assert page.page == 3

    def test_empty_page(self):
        page = ResultPage()

        assert page.is_empty()
        assert page.total_pages == 1
