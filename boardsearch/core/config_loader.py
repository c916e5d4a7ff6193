"""
Configuration loader for the forum search engine.

Loads settings from config.json and provides typed access via dataclasses.
Supports singleton pattern for entry points and runtime reload capability.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .exceptions import ConfigurationError


DEFAULT_BLACKLISTED_WORDS = ["img", "url", "quote", "www", "http", "the", "is", "it", "are", "if"]


@dataclass
class PathsConfig:
    """Configuration for file system paths."""
    database_path: Path
    logs_directory: Path


@dataclass
class DatabaseConfig:
    """Capabilities and moderation settings of the datastore."""
    support_ignore: bool = True
    create_temporary: bool = True
    postmod_active: bool = False


@dataclass
class SearchConfig:
    """Configuration for the search core."""
    index: str = "standard"
    force_index: bool = False
    match_words: bool = False
    simple_fulltext: bool = False
    max_results: int = 1200
    results_per_page: int = 30
    max_members_to_search: int = 500
    recent_percentage: float = 0.30
    huge_topic_posts: int = 200
    recycle_board: int = 0
    min_word_length: int = 3
    blacklisted_words: List[str] = field(
        default_factory=lambda: list(DEFAULT_BLACKLISTED_WORDS)
    )

    @property
    def max_message_results(self) -> int:
        """Ceiling for staged messages, five times the result ceiling."""
        return self.max_results * 5 if self.max_results else 0


@dataclass
class WeightsConfig:
    """Relevance weight per factor; all zero means use the defaults."""
    frequency: int = 0
    age: int = 0
    length: int = 0
    subject: int = 0
    first_message: int = 0
    sticky: int = 0
    likes: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "frequency": self.frequency,
            "age": self.age,
            "length": self.length,
            "subject": self.subject,
            "first_message": self.first_message,
            "sticky": self.sticky,
            "likes": self.likes,
        }


@dataclass
class CustomIndexConfig:
    """Configuration for the hashed word index."""
    bytes_per_word: int = 4
    batch_size: int = 200
    stopword_percentage: int = 60


@dataclass
class GUIConfig:
    """Configuration for the Streamlit search console."""
    page_title: str = "Forum Search"
    results_per_page: int = 30


@dataclass
class LoggingConfig:
    """Configuration for logging behavior."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    max_file_size_mb: int = 10
    backup_count: int = 5


@dataclass
class Config:
    """
    Main configuration container holding all config sections.

    Provides singleton access via get_config() function.
    """
    paths: PathsConfig
    database: DatabaseConfig
    search: SearchConfig
    weights: WeightsConfig
    custom_index: CustomIndexConfig
    gui: GUIConfig
    logging: LoggingConfig
    project_root: Path = field(default_factory=Path)

    @classmethod
    def from_file(cls, config_path: Path) -> "Config":
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the config.json file.

        Returns:
            Populated Config instance.

        Raises:
            ConfigurationError: If file is missing or invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)}
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {e}",
                {"path": str(config_path)}
            )

        project_root = config_path.parent.parent

        return cls.from_dict(data, project_root)

    @classmethod
    def from_dict(cls, data: dict, project_root: Path = None) -> "Config":
        """Parse raw config dict into typed Config object."""
        project_root = Path(project_root or Path.cwd())

        paths_data = data.get("paths", {})
        paths = PathsConfig(
            database_path=cls._resolve_path(paths_data.get("database_path", "output/forum.db"), project_root),
            logs_directory=cls._resolve_path(paths_data.get("logs_directory", "output/logs"), project_root)
        )

        db_data = data.get("database", {})
        database = DatabaseConfig(
            support_ignore=db_data.get("support_ignore", True),
            create_temporary=db_data.get("create_temporary", True),
            postmod_active=db_data.get("postmod_active", False)
        )

        search_data = data.get("search", {})
        search = SearchConfig(
            index=search_data.get("index", "standard"),
            force_index=search_data.get("force_index", False),
            match_words=search_data.get("match_words", False),
            simple_fulltext=search_data.get("simple_fulltext", False),
            max_results=search_data.get("max_results", 1200),
            results_per_page=search_data.get("results_per_page", 30),
            max_members_to_search=search_data.get("max_members_to_search", 500),
            recent_percentage=search_data.get("recent_percentage", 0.30),
            huge_topic_posts=search_data.get("huge_topic_posts", 200),
            recycle_board=search_data.get("recycle_board", 0),
            min_word_length=search_data.get("min_word_length", 3),
            blacklisted_words=search_data.get("blacklisted_words", list(DEFAULT_BLACKLISTED_WORDS))
        )

        if search.max_results < 0:
            raise ConfigurationError(
                "search.max_results must not be negative",
                {"max_results": search.max_results}
            )

        weights_data = data.get("weights", {})
        weights = WeightsConfig(**{
            name: int(weights_data.get(name, 0))
            for name in WeightsConfig().as_dict()
        })

        custom_data = data.get("custom_index", {})
        custom_index = CustomIndexConfig(
            bytes_per_word=custom_data.get("bytes_per_word", 4),
            batch_size=custom_data.get("batch_size", 200),
            stopword_percentage=custom_data.get("stopword_percentage", 60)
        )

        if custom_index.bytes_per_word not in (2, 3, 4):
            raise ConfigurationError(
                "custom_index.bytes_per_word must be 2, 3 or 4",
                {"bytes_per_word": custom_index.bytes_per_word}
            )

        gui_data = data.get("gui", {})
        gui = GUIConfig(
            page_title=gui_data.get("page_title", "Forum Search"),
            results_per_page=gui_data.get("results_per_page", search.results_per_page)
        )

        log_data = data.get("logging", {})
        logging_cfg = LoggingConfig(
            level=log_data.get("level", "INFO"),
            format=log_data.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            max_file_size_mb=log_data.get("max_file_size_mb", 10),
            backup_count=log_data.get("backup_count", 5)
        )

        return cls(
            paths=paths,
            database=database,
            search=search,
            weights=weights,
            custom_index=custom_index,
            gui=gui,
            logging=logging_cfg,
            project_root=project_root
        )

    @staticmethod
    def _resolve_path(path_str: str, project_root: Path) -> Path:
        """Resolve a path string, making relative paths absolute."""
        path = Path(path_str)
        if path.is_absolute():
            return path
        return project_root / path


_config_instance: Optional[Config] = None


def get_config(config_path: Path = None) -> Config:
    """
    Get the singleton Config instance.

    Args:
        config_path: Optional path to config file. If not provided,
                    searches upward from current directory.

    Returns:
        The global Config instance.

    Raises:
        ConfigurationError: If config cannot be loaded.
    """
    global _config_instance

    if _config_instance is None or config_path is not None:
        if config_path is None:
            config_path = _find_config_file()
        _config_instance = Config.from_file(config_path)

    return _config_instance


def _find_config_file() -> Path:
    """Search upward from current directory to find config/config.json."""
    current = Path.cwd()

    for _ in range(10):
        config_path = current / "config" / "config.json"
        if config_path.exists():
            return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    raise ConfigurationError(
        "Could not find config/config.json in current directory or parents"
    )


def reload_config(config_path: Path = None) -> Config:
    """
    Force reload of configuration.

    Args:
        config_path: Optional path to config file.

    Returns:
        Fresh Config instance.
    """
    global _config_instance
    _config_instance = None
    return get_config(config_path)


if __name__ == "__main__":
    try:
        config = get_config()
        print(f"Project root: {config.project_root}")
        print(f"Database path: {config.paths.database_path}")
        print(f"Search index: {config.search.index}")
        print(f"Max results: {config.search.max_results}")
    except ConfigurationError as e:
        print(f"Config error: {e.message}")
