"""
Core module providing foundational components.

This module contains the configuration loader, centralized logging setup,
and custom exception hierarchy. It has no internal dependencies.
"""

from .config_loader import get_config, reload_config, Config, SearchConfig, WeightsConfig
from .logger import get_logger
from .exceptions import (
    BoardSearchError,
    ConfigurationError,
    DatabaseError,
    IndexingError,
    SearchError,
    UserQueryError,
    BackendIncompatibilityError
)

__all__ = [
    "get_config",
    "reload_config",
    "Config",
    "SearchConfig",
    "WeightsConfig",
    "get_logger",
    "BoardSearchError",
    "ConfigurationError",
    "DatabaseError",
    "IndexingError",
    "SearchError",
    "UserQueryError",
    "BackendIncompatibilityError"
]
