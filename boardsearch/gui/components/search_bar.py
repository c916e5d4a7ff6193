"""
Search bar component for the search console.

Provides the search input, the results header and the notices shown
when a search finds nothing.
"""

import streamlit as st
from typing import Tuple

from ..state import get_state, set_state, clear_search_state


def render_search_bar() -> Tuple[str, bool]:
    """
    Render the search input bar.

    Returns:
        Tuple of (query_text, was_submitted).
    """
    col1, col2 = st.columns([5, 1])

    with col1:
        query = st.text_input(
            "Search",
            value=get_state("search_query", ""),
            placeholder="Search the forum...",
            key="search_input",
            label_visibility="collapsed"
        )

    with col2:
        submitted = st.button(
            "Search",
            type="primary",
            use_container_width=True
        )

    previous_query = get_state("search_query", "")
    query_changed = query != previous_query and query.strip() != ""

    if query_changed or submitted:
        clear_search_state()
        set_state("search_query", query)

    return query, submitted or query_changed


def render_search_header(outcome) -> None:
    """
    Render the results header.

    Args:
        outcome: SearchOutcome of the last search.
    """
    if not outcome:
        return

    col1, col2, col3 = st.columns([2, 2, 1])

    with col1:
        st.markdown(f"**{outcome.page.total_results:,}** results ({outcome.backend} index)")

    with col2:
        st.caption(f"Query: \"{outcome.query.search}\"")

    with col3:
        st.caption(f"{outcome.execution_time_ms:.0f} ms")

    if outcome.suggestion is not None:
        st.markdown(f"Did you mean: {outcome.suggestion.display}", unsafe_allow_html=True)


def render_errors(outcome) -> None:
    """Show the user-facing search errors."""
    for message in outcome.errors.messages():
        st.error(message)


def render_no_results(outcome) -> None:
    """Display the no-results notice with hints."""
    st.info(f"No results found for \"{outcome.query.search}\"")

    if outcome.word_set.found_blacklisted_words:
        st.caption("Some of your words are too common and were ignored.")

    if outcome.word_set.ignored:
        st.caption(f"Ignored short words: {', '.join(outcome.word_set.ignored)}")

    with st.expander("Suggestions"):
        st.markdown("""
        - Check the spelling
        - Try fewer or different words
        - Search every board or widen the age range
        - Match any word instead of all words
        """)
