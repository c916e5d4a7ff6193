"""
Results list component for displaying search results.

Renders one card per message of the page, with excerpt and pagination.
"""

import streamlit as st
from datetime import datetime
from typing import List

from ...search import MessageResult
from ...utils import strip_bbc, truncate_text
from ..state import get_state, set_state


EXCERPT_LENGTH = 400


def render_results(messages: List[MessageResult]) -> None:
    """
    Render the messages of a result page.

    Args:
        messages: Messages in page order.
    """
    if not messages:
        return

    for idx, message in enumerate(messages):
        _render_result_card(message, idx)


def _render_result_card(message: MessageResult, idx: int) -> None:
    """Render a single result card with expander."""
    sticky = " [sticky]" if message.is_sticky else ""
    participated = " *" if message.participated else ""
    header = f"**{message.subject}**{sticky}{participated} - {message.board_name}"

    with st.expander(header, expanded=idx < 3):
        st.caption(
            f"{message.cat_name} / {message.board_name} | "
            f"by {message.poster_name or 'Guest'} on {_format_time(message.poster_time)}"
        )
        st.caption(_format_score(message))

        st.markdown("---")

        st.markdown(truncate_text(strip_bbc(message.body), EXCERPT_LENGTH))

        st.markdown("---")

        st.caption(
            f"Topic started by {message.first_member_name or 'Guest'} | "
            f"last post by {message.last_member_name or 'Guest'} on {_format_time(message.last_poster_time)}"
        )


def _format_score(message: MessageResult) -> str:
    parts = [f"Relevance: {message.relevance:.1f}%"]
    if message.num_matches > 1:
        parts.append(f"{message.num_matches} matching messages")
    parts.append(f"{message.num_replies} replies")
    return " | ".join(parts)


def _format_time(timestamp: int) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def render_pagination(total_results: int, results_per_page: int) -> None:
    """
    Render pagination controls.

    Args:
        total_results: Number of scored results.
        results_per_page: Number of results per page.
    """
    if total_results <= results_per_page:
        return

    total_pages = (total_results + results_per_page - 1) // results_per_page
    current_page = get_state("current_page", 1)

    col1, col2, col3, col4, col5 = st.columns([1, 1, 2, 1, 1])

    with col1:
        if st.button("First", disabled=current_page <= 1):
            set_state("current_page", 1)
            st.rerun()

    with col2:
        if st.button("Prev", disabled=current_page <= 1):
            set_state("current_page", current_page - 1)
            st.rerun()

    with col3:
        st.markdown(
            f"<div style='text-align:center'>Page {current_page} of {total_pages}</div>",
            unsafe_allow_html=True
        )

    with col4:
        if st.button("Next", disabled=current_page >= total_pages):
            set_state("current_page", current_page + 1)
            st.rerun()

    with col5:
        if st.button("Last", disabled=current_page >= total_pages):
            set_state("current_page", total_pages)
            st.rerun()
