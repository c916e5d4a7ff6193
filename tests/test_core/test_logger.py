"""
Tests for the logging module.

Tests handler setup on the package logger, the search log file and
logger naming.
"""

import logging
from pathlib import Path

from boardsearch.core.logger import (
    LOG_FILENAME,
    PACKAGE_LOGGER,
    setup_logging,
    setup_from_config,
    get_logger,
    reset_logging
)


def package_handlers():
    return logging.getLogger(PACKAGE_LOGGER).handlers


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_sets_package_level(self, reset_logger_singleton):
        setup_logging(log_level="DEBUG")

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

    def test_root_logger_untouched(self, reset_logger_singleton):
        """Test that handlers go on the package logger, not the root."""
        before = list(logging.getLogger().handlers)

        setup_logging(log_level="INFO")

        assert logging.getLogger().handlers == before
        assert len(package_handlers()) == 1

    def test_search_log_written(self, temp_dir: Path, reset_logger_singleton):
        """Test that messages reach the rotating search log."""
        logs_dir = temp_dir / "logs"
        setup_logging(log_level="INFO", logs_directory=logs_dir, max_file_size_mb=1, backup_count=1)

        get_logger("boardsearch.search").info("Staged 3 candidates")
        for handler in package_handlers():
            handler.flush()

        assert "Staged 3 candidates" in (logs_dir / LOG_FILENAME).read_text(encoding="utf-8")

    def test_setup_only_runs_once(self, reset_logger_singleton):
        setup_logging(log_level="DEBUG")
        setup_logging(log_level="WARNING")

        assert len(package_handlers()) == 1
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

    def test_reset_removes_handlers(self, reset_logger_singleton):
        setup_logging(log_level="INFO")

        reset_logging()

        assert package_handlers() == []
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.NOTSET


class TestSetupFromConfig:
    """Tests for setup_from_config."""

    def test_uses_config_sections(self, config, reset_logger_singleton):
        setup_from_config(config)

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG
        assert len(package_handlers()) == 2
        assert (config.paths.logs_directory / LOG_FILENAME).exists()

    def test_level_override(self, config, reset_logger_singleton):
        """Test that an explicit level wins over the configured one."""
        setup_from_config(config, log_level="ERROR")

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.ERROR


class TestGetLogger:
    """Tests for get_logger function."""

    def test_package_names_kept(self, reset_logger_singleton):
        assert get_logger("boardsearch.search").name == "boardsearch.search"
        assert get_logger(PACKAGE_LOGGER).name == PACKAGE_LOGGER

    def test_other_names_nested(self, reset_logger_singleton):
        """Test that script and __main__ loggers end up under the package."""
        assert get_logger("__main__").name == "boardsearch.__main__"
        assert get_logger("run_indexer").name == "boardsearch.run_indexer"

    def test_auto_initializes(self, reset_logger_singleton):
        get_logger("auto_init_test").info("This should not raise")

        assert len(package_handlers()) >= 1
