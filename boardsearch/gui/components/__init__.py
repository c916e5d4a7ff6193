"""
Reusable UI components for the search console.
"""

from .sidebar import render_sidebar
from .search_bar import render_search_bar
from .results_list import render_results

__all__ = [
    "render_sidebar",
    "render_search_bar",
    "render_results"
]
