"""
Custom exception hierarchy for the forum search engine.

Provides specific exception types for different failure modes:
configuration errors, database issues, search problems, user query
conditions and search backend incompatibilities.
"""


class BoardSearchError(Exception):
    """Base exception for all forum search errors."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(BoardSearchError):
    """Raised when configuration is invalid or missing."""
    pass


class DatabaseError(BoardSearchError):
    """Raised when SQLite operations fail."""
    pass


class IndexingError(BoardSearchError):
    """Raised when a search index cannot be built."""
    pass


class SearchError(BoardSearchError):
    """Raised when search query execution fails."""

    def __init__(self, message: str, query: str = None, details: dict = None):
        """
        Initialize search error.

        Args:
            message: Error description.
            query: The problematic search query.
            details: Additional context.
        """
        super().__init__(message, details)
        self.query = query


class UserQueryError(SearchError):
    """
    Raised for conditions the user has to fix in the query.

    The code is one of the keys collected in SearchErrors, for example
    "query_not_specific_enough".
    """

    def __init__(self, code: str, query: str = None, details: dict = None):
        super().__init__(code.replace("_", " "), query, details)
        self.code = code


class BackendIncompatibilityError(BoardSearchError):
    """Raised when a search backend is unknown or unusable on this database."""

    def __init__(self, message: str, backend: str = None, details: dict = None):
        super().__init__(message, details)
        self.backend = backend
