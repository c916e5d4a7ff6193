"""
CLI script to rebuild the forum search indexes.

Usage:
    python scripts/run_indexer.py                 # Rebuild subject, word and fulltext indexes
    python scripts/run_indexer.py --reset         # Drop every table first
    python scripts/run_indexer.py --no-custom     # Skip the hashed word index
    python scripts/run_indexer.py --seed-demo     # Add a few demo topics before indexing
    python scripts/run_indexer.py --config path/to/config.json
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from boardsearch.core import get_config, get_logger, reload_config, ConfigurationError
from boardsearch.core.logger import reset_logging, setup_from_config
from boardsearch.database import init_schema, get_db_manager, ForumRepository
from boardsearch.indexer import SearchIndexBuilder


DEMO_TOPICS = [
    ("General", "Welcome to the forum", "Hello world, this is the first topic of the board."),
    ("General", "Forum rules", "Please be nice. No spam, no flame wars."),
    ("Support", "Upgrade fails with an error message", "The upgrade stops with a database error message."),
    ("Support", "Search returns nothing", "Searching for hello world returns no results on my board."),
]


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Rebuild the subject, word and fulltext search indexes"
    )

    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop every table and rebuild from scratch"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to custom config.json file"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output"
    )

    parser.add_argument(
        "--no-custom",
        action="store_true",
        help="Skip the hashed custom word index"
    )

    parser.add_argument(
        "--no-fulltext",
        action="store_true",
        help="Skip the FTS5 rebuild"
    )

    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Insert a few demo boards and topics first"
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the configured log level"
    )

    return parser.parse_args()


def progress_callback(current: int, total: int, step: str) -> None:
    """Print progress to console."""
    percent = (current / total) * 100 if total > 0 else 0
    bar_width = 30
    filled = int(bar_width * current / total) if total > 0 else 0
    bar = "=" * filled + "-" * (bar_width - filled)

    print(f"\r[{bar}] {percent:5.1f}% ({current}/{total}) {step:<10}", end="", flush=True)


def seed_demo(repository: ForumRepository) -> int:
    """Insert the demo topics, one board per distinct board name."""
    id_cat = repository.add_category("Community")
    boards = {}
    for board_name, subject, body in DEMO_TOPICS:
        if board_name not in boards:
            boards[board_name] = repository.add_board(board_name, id_cat)
        repository.add_topic(boards[board_name], subject, body, poster_name="demo")
    return len(DEMO_TOPICS)


def main():
    """Main entry point for the indexer CLI."""
    args = parse_args()

    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: Config file not found: {config_path}")
            sys.exit(1)
        reload_config(config_path)

    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}")
        sys.exit(1)

    reset_logging()
    setup_from_config(config, args.log_level)
    logger = get_logger(__name__)

    print("=" * 60)
    print("Forum Search - Indexer")
    print("=" * 60)
    print(f"Database path:     {config.paths.database_path}")
    print(f"Reset mode:        {args.reset}")
    print(f"Custom index:      {'disabled' if args.no_custom else 'enabled'}")
    print(f"Fulltext index:    {'disabled' if args.no_fulltext else 'enabled'}")
    print("=" * 60)

    if args.reset:
        response = input("This will DELETE all forum and index data. Continue? [y/N] ")
        if response.lower() != "y":
            print("Aborted.")
            sys.exit(0)

    manager = get_db_manager()

    builder = SearchIndexBuilder(
        manager,
        config,
        reset=args.reset,
        progress_callback=None if args.quiet else progress_callback
    )

    if args.seed_demo:
        init_schema(manager)
        seeded = seed_demo(ForumRepository(manager))
        logger.info(f"Seeded {seeded} demo topics")

    print("\nStarting indexing...\n")

    stats = builder.build_all(custom=not args.no_custom, fulltext=not args.no_fulltext)

    if not args.quiet:
        print("\n")

    print("=" * 60)
    print("Indexing Complete")
    print("=" * 60)
    print(f"Topics:            {stats.topics_indexed:,}")
    print(f"Messages:          {stats.messages_indexed:,}")
    print(f"Subject words:     {stats.subject_words:,}")
    print(f"Word index rows:   {stats.word_rows:,}")
    print(f"Stopwords removed: {stats.stopwords_removed:,}")
    print(f"Fulltext rebuilt:  {stats.fulltext_rebuilt}")
    print("=" * 60)

    if stats.errors:
        print(f"\nErrors ({len(stats.errors)}):")
        for error in stats.errors:
            print(f"  - {error}")
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
