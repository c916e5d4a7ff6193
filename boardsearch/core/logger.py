"""
Logging for the forum search engine.

Every logger handed out lives under the "boardsearch" namespace, so the
console handler and the rotating search log are attached once to that
package logger and the host application's root logger is left alone.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional


PACKAGE_LOGGER = "boardsearch"
LOG_FILENAME = "board_search.log"

_logger_initialized = False
_installed_handlers: List[logging.Handler] = []


def _package_logger() -> logging.Logger:
    return logging.getLogger(PACKAGE_LOGGER)


def _search_log_handler(logs_directory: Path, max_file_size_mb: int, backup_count: int) -> logging.Handler:
    logs_directory = Path(logs_directory)
    logs_directory.mkdir(parents=True, exist_ok=True)

    return RotatingFileHandler(
        logs_directory / LOG_FILENAME,
        maxBytes=max_file_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    logs_directory: Path = None,
    max_file_size_mb: int = 10,
    backup_count: int = 5
) -> None:
    """
    Attach console and search log handlers to the package logger.

    Later calls are ignored until reset_logging() runs.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Format string for log messages.
        logs_directory: Directory for the search log. If None, console only.
        max_file_size_mb: Maximum size of each log file in MB.
        backup_count: Number of rotated files to keep.
    """
    global _logger_initialized

    if _logger_initialized:
        return

    package_logger = _package_logger()
    package_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if logs_directory:
        handlers.append(_search_log_handler(logs_directory, max_file_size_mb, backup_count))

    formatter = logging.Formatter(log_format)
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
        _installed_handlers.append(handler)

    _logger_initialized = True


def setup_from_config(config=None, log_level: Optional[str] = None) -> None:
    """
    Set up logging from the logging and paths sections of a Config.

    Args:
        config: Configuration to read, defaults to the global one.
        log_level: Overrides the configured level, e.g. from a --log-level flag.
    """
    if config is None:
        from .config_loader import get_config
        config = get_config()

    setup_logging(
        log_level=log_level or config.logging.level,
        log_format=config.logging.format,
        logs_directory=config.paths.logs_directory,
        max_file_size_mb=config.logging.max_file_size_mb,
        backup_count=config.logging.backup_count
    )


def reset_logging() -> None:
    """Detach and close the installed handlers so logging can be set up again."""
    global _logger_initialized

    package_logger = _package_logger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        package_logger.removeHandler(handler)
        handler.close()

    package_logger.setLevel(logging.NOTSET)
    _logger_initialized = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Names outside the namespace ("__main__", script names) are nested
    under it. Logging is set up from config on first use, console only
    when no config file can be found.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        Logger instance.
    """
    if not _logger_initialized:
        try:
            setup_from_config()
        except Exception:
            setup_logging()

    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"

    return logging.getLogger(name)


if __name__ == "__main__":
    setup_logging(log_level="DEBUG")

    logger = get_logger("boardsearch.search.staging")
    logger.debug("Staged 12 candidates for search 3")
    logger.warning("Temporary staging unavailable, using shared tables")
    logger.critical("Search backend 'sphinx' is not compatible")
