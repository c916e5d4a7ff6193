"""
Indexer module for rebuilding the search indexes.

Builds the subject index, the hashed custom word index and the FTS5
table offline from the forum tables.
"""

from .index_builder import SearchIndexBuilder, IndexingStats, rebuild_indexes

__all__ = [
    "SearchIndexBuilder",
    "IndexingStats",
    "rebuild_indexes"
]
