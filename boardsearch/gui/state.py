"""
Streamlit session state management.

Keeps the current query, the encoded parameter token of the last search
and the pagination position across reruns.
"""

import streamlit as st
from typing import Any, Dict


DEFAULT_STATE = {
    "search_query": "",
    "search_token": "",
    "search_outcome": None,
    "results_per_page": 30,
    "current_page": 1,
}


def init_state(results_per_page: int = None) -> None:
    """
    Initialize session state with default values.

    Only sets values that don't already exist, preserving
    state across reruns.
    """
    for key, default_value in DEFAULT_STATE.items():
        if key not in st.session_state:
            st.session_state[key] = default_value

    if results_per_page and "results_per_page_set" not in st.session_state:
        st.session_state["results_per_page"] = results_per_page
        st.session_state["results_per_page_set"] = True


def get_state(key: str, default: Any = None) -> Any:
    return st.session_state.get(key, default)


def set_state(key: str, value: Any) -> None:
    st.session_state[key] = value


def clear_search_state() -> None:
    """Forget the last search; the next run starts from page one."""
    set_state("search_token", "")
    set_state("search_outcome", None)
    set_state("current_page", 1)


def get_pagination_state() -> Dict[str, int]:
    """
    Get pagination-related state.

    Returns:
        Dictionary with current_page, results_per_page, and offset.
    """
    current_page = get_state("current_page", 1)
    results_per_page = get_state("results_per_page", 30)

    return {
        "current_page": current_page,
        "results_per_page": results_per_page,
        "offset": (current_page - 1) * results_per_page
    }
