"""
Pytest fixtures and configuration for the test suite.

Provides temporary directories, a temporary config, and a small seeded
forum so search tests run against real SQLite tables without ever
touching the configured database.
"""

import json
import pytest
import tempfile
import shutil
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Generator

import sys
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))


DAY = 86400


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory, cleaned up after test.
    """
    tmp = tempfile.mkdtemp(prefix="board_search_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def temp_config(temp_dir: Path) -> Generator[Path, None, None]:
    """
    Create a temporary config.json for testing.

    Args:
        temp_dir: Temporary directory fixture.

    Yields:
        Path to temporary config file.
    """
    config_dir = temp_dir / "config"
    config_dir.mkdir()

    output_dir = temp_dir / "output"
    output_dir.mkdir()

    logs_dir = output_dir / "logs"
    logs_dir.mkdir()

    config_data = {
        "paths": {
            "database_path": str(output_dir / "test.db"),
            "logs_directory": str(logs_dir)
        },
        "database": {
            "support_ignore": True,
            "create_temporary": True,
            "postmod_active": False
        },
        "search": {
            "index": "standard",
            "max_results": 100,
            "results_per_page": 10,
            "recycle_board": 3
        },
        "weights": {
            "frequency": 30,
            "age": 25,
            "length": 20,
            "subject": 15,
            "first_message": 10
        },
        "custom_index": {
            "bytes_per_word": 4,
            "batch_size": 3,
            "stopword_percentage": 60
        },
        "gui": {
            "page_title": "Test Forum Search",
            "results_per_page": 10
        },
        "logging": {
            "level": "DEBUG",
            "format": "%(levelname)s - %(message)s",
            "max_file_size_mb": 1,
            "backup_count": 1
        }
    }

    config_path = config_dir / "config.json"
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config_data, f)

    yield config_path


@pytest.fixture
def temp_database(temp_dir: Path) -> Path:
    """
    Create path for a temporary database.

    Args:
        temp_dir: Temporary directory fixture.

    Returns:
        Path where test database should be created.
    """
    return temp_dir / "test.db"


@pytest.fixture
def reset_config_singleton():
    """
    Reset the config singleton between tests.

    This ensures each test gets a fresh config instance.
    """
    from boardsearch.core import config_loader
    config_loader._config_instance = None
    yield
    config_loader._config_instance = None


@pytest.fixture
def reset_logger_singleton():
    """
    Remove installed handlers and reset the initialization flag.
    """
    from boardsearch.core import logger
    logger.reset_logging()
    yield
    logger.reset_logging()


@pytest.fixture
def reset_db_singleton():
    """
    Reset the database manager singleton between tests.
    """
    from boardsearch.database import connection
    connection._db_manager = None
    yield
    connection._db_manager = None


@pytest.fixture
def configured_db(temp_config, reset_config_singleton, reset_db_singleton):
    """
    Set up a fully configured database using temp config.

    This fixture initializes config with temp paths and resets
    both config and db singletons, ready for schema operations.
    """
    from boardsearch.core.config_loader import get_config
    get_config(temp_config)
    yield
    # Cleanup happens via reset fixtures


@pytest.fixture
def config(temp_config: Path):
    """A Config read from the temporary config file, without the singleton."""
    from boardsearch.core.config_loader import Config
    return Config.from_file(temp_config)


@pytest.fixture
def manager(temp_database: Path):
    """DatabaseManager on a fresh temporary database with the schema created."""
    from boardsearch.database import DatabaseManager, init_schema
    db_manager = DatabaseManager(temp_database)
    init_schema(db_manager)
    return db_manager


@pytest.fixture
def forum(manager, config) -> SimpleNamespace:
    """
    Seed a small forum and build its subject index.

    Boards: General (1), Support (2), Recycle (3), Links (4, redirect).
    Members: alice (1), bob (2).

    Messages in id order:
        1  topic 1 Support  alice   "world peace is near"          100 days old
        2  topic 2 General  alice   "hello world from alice"
        3  topic 2 General  bob     "the world says hello back"
        4  topic 2 General  bob     "nothing relevant here"
        5  topic 3 General  guest   "hello world, buy spam now"
        6  topic 4 Support  bob     "the upgrade fails with a database error"
        7  topic 4 Support  guest   "hello, try again"
        8  topic 5 Recycle  alice   "hello world archived"
    """
    from boardsearch.database import ForumRepository
    from boardsearch.indexer import SearchIndexBuilder

    now = int(time.time())
    repo = ForumRepository(manager)

    id_cat = repo.add_category("Main")
    general = repo.add_board("General", id_cat)
    support = repo.add_board("Support", id_cat)
    recycle = repo.add_board("Recycle", id_cat)
    links = repo.add_board("Links", id_cat)

    with manager.cursor() as cur:
        cur.execute("UPDATE boards SET redirect = ? WHERE id_board = ?", ("https://example.com", links))

    alice = repo.add_member("alice")
    bob = repo.add_member("bob")

    news, _ = repo.add_topic(
        support, "World news", "world peace is near",
        id_member=alice, poster_time=now - 100 * DAY
    )
    hello, hello_first = repo.add_topic(
        general, "Hello world", "hello world from alice",
        id_member=alice, poster_time=now - 3 * DAY
    )
    hello_reply = repo.add_reply(hello, "the world says hello back", id_member=bob, poster_time=now - 2 * DAY)
    repo.add_reply(hello, "nothing relevant here", id_member=bob, poster_time=now - 2 * DAY)
    spam, spam_msg = repo.add_topic(
        general, "Greetings", "hello world, buy spam now",
        poster_name="spammer", poster_time=now - 2 * DAY
    )
    upgrade, _ = repo.add_topic(
        support, "Upgrade problem", "the upgrade fails with a database error",
        id_member=bob, poster_time=now - DAY
    )
    repo.add_reply(upgrade, "hello, try again", poster_name="helper", poster_time=now - DAY)
    archived, _ = repo.add_topic(
        recycle, "Old hello world", "hello world archived",
        id_member=alice, poster_time=now - DAY
    )

    SearchIndexBuilder(manager, config).build_subject_index()

    return SimpleNamespace(
        now=now,
        repo=repo,
        boards=SimpleNamespace(general=general, support=support, recycle=recycle, links=links),
        members=SimpleNamespace(alice=alice, bob=bob),
        topics=SimpleNamespace(news=news, hello=hello, spam=spam, upgrade=upgrade, archived=archived),
        messages=SimpleNamespace(hello_first=hello_first, hello_reply=hello_reply, spam=spam_msg)
    )


@pytest.fixture
def db(manager, forum):
    """An admin Database session on the seeded forum."""
    with manager.session() as session:
        yield session


@pytest.fixture
def engine(db, config):
    """A SearchEngine on the seeded forum with the standard backend."""
    from boardsearch.search import SearchEngine
    return SearchEngine(db, config)
