"""
Main Streamlit application for the forum search console.

Entry point that assembles the sidebar, the search bar and the result
list. Pagination re-runs the stored search through its encoded token.

Note: This file is run directly by Streamlit, so it needs to
set up the Python path before importing other modules.
"""

import sys
from pathlib import Path

# Add project root to path for imports when run directly by Streamlit
_project_root = Path(__file__).parent.parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import streamlit as st  # noqa: E402

from boardsearch.core import get_config, get_logger, BoardSearchError  # noqa: E402
from boardsearch.database import init_schema, get_db_manager  # noqa: E402
from boardsearch.search import SearchEngine  # noqa: E402

from boardsearch.gui.state import init_state, get_state, set_state, get_pagination_state  # noqa: E402
from boardsearch.gui.components import (  # noqa: E402
    render_sidebar,
    render_search_bar,
    render_results,
)
from boardsearch.gui.components.search_bar import (  # noqa: E402
    render_search_header,
    render_errors,
    render_no_results,
)
from boardsearch.gui.components.results_list import render_pagination  # noqa: E402

logger = get_logger(__name__)

# The console runs one search at a time per session
CONSOLE_SEARCH_ID = 1


def main():
    """Main application entry point."""
    config = get_config()

    st.set_page_config(
        page_title=config.gui.page_title,
        layout="wide",
        initial_sidebar_state="expanded"
    )

    init_state(config.gui.results_per_page)

    manager = get_db_manager()
    init_schema(manager)

    options = render_sidebar(manager)

    st.title(config.gui.page_title)

    query_text, submitted = render_search_bar()

    if submitted and query_text.strip():
        _execute_search(query_text, options)
    elif get_state("search_token") and _page_changed():
        _execute_search(query_text, options, encoded=get_state("search_token"))

    _render_results_section()


def _page_changed() -> bool:
    """Whether the stored outcome is not the page the user asked for."""
    outcome = get_state("search_outcome")
    pagination = get_pagination_state()
    return (
        outcome is None
        or outcome.page.start != pagination["offset"]
        or outcome.page.limit != pagination["results_per_page"]
    )


def _execute_search(query_text: str, options: dict, encoded: str = None) -> None:
    """
    Run a search and store its outcome in state.

    Args:
        query_text: The search query string.
        options: Form parameters from the sidebar.
        encoded: Token of the search being paginated.
    """
    config = get_config()
    pagination = get_pagination_state()

    params = {key: value for key, value in options.items() if key != "results_per_page"}
    params["search"] = query_text

    with st.spinner("Searching..."):
        try:
            with get_db_manager().session(
                support_ignore=config.database.support_ignore,
                postmod_active=config.database.postmod_active
            ) as db:
                engine = SearchEngine(db, config)
                outcome = engine.search(
                    params,
                    search_id=CONSOLE_SEARCH_ID,
                    start=pagination["offset"],
                    limit=pagination["results_per_page"],
                    encoded=encoded
                )

            set_state("search_outcome", outcome)
            set_state("search_token", outcome.token)

        except BoardSearchError as e:
            st.error(f"Search failed: {e.message}")
            logger.error(f"Search error: {e.message}")


def _render_results_section() -> None:
    """Render the search results section."""
    outcome = get_state("search_outcome")

    if not outcome:
        _render_welcome()
        return

    if outcome.errors:
        render_errors(outcome)

    render_search_header(outcome)

    if outcome.page.is_empty():
        render_no_results(outcome)
        return

    st.divider()

    render_results(outcome.page.messages)

    st.divider()

    render_pagination(outcome.page.total_results, get_state("results_per_page", 30))


def _render_welcome() -> None:
    """Render welcome message when no search has been performed."""
    st.markdown("""
    ### Search the forum

    Use the search bar above to find topics and messages.

    **Features:**
    - Relevance ranking by frequency, age, topic length and subject matches
    - Exact phrases and excluded words
    - Filters by board, poster and message age

    Type a query to get started.
    """)


if __name__ == "__main__":
    main()
