"""
Forum Search Engine Package.

Search and relevance-ranking core for a bulletin-board forum stored in
SQLite: query tokenizing, candidate staging, weighted scoring and paging,
with a Streamlit search console on top.
"""

__version__ = "1.0.0"
