"""
CLI script to launch the forum search console.

Usage:
    python scripts/run_app.py              # Default port 8501
    python scripts/run_app.py --port 8502  # Custom port
    python scripts/run_app.py --headless   # Do not open a browser
"""

import argparse
import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from boardsearch.core import get_config, ConfigurationError
from boardsearch.database import get_statistics, init_schema, get_db_manager


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Launch the forum search console"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port to run the console on (default: 8501)"
    )

    parser.add_argument(
        "--host",
        type=str,
        default="localhost",
        help="Host to bind to (default: localhost)"
    )

    parser.add_argument(
        "--headless",
        action="store_true",
        help="Don't open a browser"
    )

    return parser.parse_args()


def print_summary() -> None:
    """Print what the console is about to serve."""
    config = get_config()
    manager = get_db_manager()
    init_schema(manager)
    stats = get_statistics(manager)

    print(f"Database:        {config.paths.database_path}")
    print(f"Search index:    {config.search.index}")
    print(f"Topics/messages: {stats['total_topics']:,} / {stats['total_messages']:,}")
    if not stats["subject_index_rows"] and stats["total_topics"]:
        print("Warning: subject index is empty, run scripts/run_indexer.py first")


def main():
    """Main entry point for launching the console."""
    args = parse_args()

    project_root = Path(__file__).parent.parent
    app_path = project_root / "boardsearch" / "gui" / "app.py"

    print("=" * 60)
    print("Forum Search - Console")
    print("=" * 60)

    try:
        print_summary()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}")
        sys.exit(1)

    print(f"Starting server on http://{args.host}:{args.port}")
    print("Press Ctrl+C to stop")
    print("=" * 60)

    cmd = [
        sys.executable, "-m", "streamlit", "run",
        str(app_path),
        "--server.port", str(args.port),
        "--server.address", args.host,
    ]

    if args.headless:
        cmd.extend(["--server.headless", "true"])

    try:
        subprocess.run(cmd, cwd=str(project_root))
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
