"""
Sidebar component for the search console.

Displays forum statistics, the search options and help text.
"""

import streamlit as st
from typing import Dict

from ...database import get_statistics, ForumRepository
from ..state import get_state, set_state


MATCH_TYPES = {
    1: "Match all words",
    2: "Match any word",
}

SORT_OPTIONS = {
    "relevance|desc": "Relevance",
    "num_replies|desc": "Largest topics first",
    "num_replies|asc": "Smallest topics first",
    "id_msg|desc": "Most recent first",
    "id_msg|asc": "Oldest first",
}


def render_sidebar(manager=None) -> Dict:
    """
    Render the sidebar with stats and options.

    Args:
        manager: DatabaseManager of the forum database.

    Returns:
        Form parameters for QueryBuilder.build plus "results_per_page".
    """
    with st.sidebar:
        st.title("Forum Search")

        st.subheader("Statistics")
        _render_statistics(manager)

        st.divider()

        st.subheader("Options")
        options = _render_options(manager)

        st.divider()

        _render_help()

    return options


def _render_statistics(manager) -> None:
    """Display forum and index statistics."""
    try:
        stats = get_statistics(manager)

        col1, col2 = st.columns(2)

        with col1:
            st.metric("Topics", f"{stats['total_topics']:,}")

        with col2:
            st.metric("Messages", f"{stats['total_messages']:,}")

        st.caption(
            f"Subject index: {stats['subject_index_rows']:,} rows, "
            f"word index: {stats['word_index_rows']:,} rows"
        )
        if not stats["fulltext_available"]:
            st.caption("Fulltext index unavailable")

    except Exception as e:
        st.warning(f"Could not load statistics: {e}")


def _render_options(manager) -> Dict:
    """Render search option controls."""
    searchtype = st.radio(
        "Match",
        options=list(MATCH_TYPES),
        format_func=MATCH_TYPES.get,
        index=0,
        key="searchtype_radio"
    )

    sort = st.selectbox(
        "Order results by",
        options=list(SORT_OPTIONS),
        format_func=SORT_OPTIONS.get,
        key="sort_select"
    )

    subject_only = st.checkbox("Search in subjects only", key="subject_only_checkbox")
    show_complete = st.checkbox(
        "Show results as messages",
        key="show_complete_checkbox",
        help="One result per matching message instead of one per topic"
    )

    userspec = st.text_input("By user", key="userspec_input", help="Use * and ? as wildcards")

    col1, col2 = st.columns(2)
    with col1:
        minage = st.number_input("From (days ago)", min_value=0, max_value=9999, value=0, key="minage_input")
    with col2:
        maxage = st.number_input("To (days ago)", min_value=0, max_value=9999, value=9999, key="maxage_input")

    brd = []
    try:
        boards = ForumRepository(manager).list_boards()
        labels = {board.id_board: f"{board.category_name} / {board.name}" for board in boards}
        brd = st.multiselect(
            "Boards",
            options=list(labels),
            format_func=labels.get,
            key="boards_multiselect",
            help="Leave empty to search every board"
        )
    except Exception as e:
        st.warning(f"Could not load boards: {e}")

    results_per_page = st.slider(
        "Results per page",
        min_value=10,
        max_value=100,
        value=get_state("results_per_page", 30),
        step=10,
        key="results_slider"
    )
    set_state("results_per_page", results_per_page)

    return {
        "searchtype": searchtype,
        "sort": sort,
        "subject_only": subject_only,
        "show_complete": show_complete,
        "userspec": userspec,
        "minage": int(minage),
        "maxage": int(maxage),
        "brd": brd,
        "advanced": 1,
        "results_per_page": results_per_page
    }


def _render_help() -> None:
    """Display search help text."""
    with st.expander("Search help"):
        st.markdown("""
        **Simple search:**
        - Type words to find topics containing all of them
        - Words shorter than two letters and common words are ignored

        **Operators:**
        - `"exact phrase"` - Matches the phrase as written
        - `-word` - Excludes messages containing the word
        - `-"some phrase"` - Excludes messages containing the phrase

        **Examples:**
        - `hello world -spam`
        - `"error message" upgrade`
        """)
