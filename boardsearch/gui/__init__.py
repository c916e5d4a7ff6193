"""
GUI module providing the Streamlit search console.

Contains the main application, session state management and the
sidebar, search bar and results components.
"""

from .state import init_state, get_state, set_state

__all__ = [
    "init_state",
    "get_state",
    "set_state"
]
