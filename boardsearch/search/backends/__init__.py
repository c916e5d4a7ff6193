"""
Pluggable search backends and their registry.

One backend is active per search. Unknown or unusable backends are
replaced by the standard one instead of failing the request.
"""

from typing import Dict, Type

from ...core import get_logger, BackendIncompatibilityError, SearchConfig
from .base import (
    SearchBackend,
    SearchData,
    WordSorter,
    IndexPreparer,
    IndexedWordSearcher,
)
from .standard import StandardSearch
from .custom import CustomSearch
from .fulltext import FulltextSearch

logger = get_logger(__name__)


BACKENDS: Dict[str, Type[SearchBackend]] = {
    StandardSearch.name: StandardSearch,
    CustomSearch.name: CustomSearch,
    FulltextSearch.name: FulltextSearch,
}

DEFAULT_BACKEND = StandardSearch.name


def find_search_backend(name: str, db, config: SearchConfig) -> SearchBackend:
    """
    Create the configured backend, falling back to the standard one.

    Args:
        name: Registry name from the search configuration.
        db: Database session the backend will run on.
        config: Search configuration.

    Returns:
        A backend that is valid on this database.
    """
    try:
        backend_class = BACKENDS.get(name)
        if backend_class is None:
            raise BackendIncompatibilityError(f"Unknown search backend '{name}'", backend=name)

        backend = backend_class(config)
        if not backend.is_valid(db):
            raise BackendIncompatibilityError(
                f"Search backend '{name}' is not usable on this database", backend=name
            )

        return backend

    except BackendIncompatibilityError as e:
        logger.critical(f"{e.message}; falling back to '{DEFAULT_BACKEND}'")
        return BACKENDS[DEFAULT_BACKEND](config)


__all__ = [
    "BACKENDS",
    "DEFAULT_BACKEND",
    "find_search_backend",
    "SearchBackend",
    "SearchData",
    "WordSorter",
    "IndexPreparer",
    "IndexedWordSearcher",
    "StandardSearch",
    "CustomSearch",
    "FulltextSearch"
]
