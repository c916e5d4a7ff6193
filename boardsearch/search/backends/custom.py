"""
Custom word index backend.

Every word of every message is hashed to a fixed-width id and stored in
log_search_words(id_word, id_msg) by the index builder. Searches narrow
candidates by chaining one join per required word id and an anti-join
per excluded word id.
"""

import json
from typing import Any, List, Optional, Set

from ...core import get_logger
from ...database import table_exists
from ...utils import text2words, word_to_id
from ..models import OrBranch
from ..query_parts import QueryParts
from .base import (
    IndexedWordSearcher,
    IndexPreparer,
    LongWordsFirst,
    SearchBackend,
    SearchData,
    add_message_filters,
)

logger = get_logger(__name__)


INDEX_SETTINGS_KEY = "search_custom_index_config"
STOPWORDS_KEY = "search_stopwords"


class CustomSearch(LongWordsFirst, IndexPreparer, IndexedWordSearcher, SearchBackend):
    """Searches through the hashed word index."""

    name = "custom"

    def __init__(self, config):
        super().__init__(config)
        self.bytes_per_word = 4
        self.stopwords: Set[int] = set()
        self.min_word_length = config.min_word_length

    def is_valid(self, db) -> bool:
        """
        Valid once the index has been built on this database.

        Loads the index settings stored by the builder: the word width the
        index was hashed with and the stopwords it removed.
        """
        if not table_exists(db.conn, "log_search_words"):
            return False

        row = db.query_one("SELECT value FROM settings WHERE variable = ?", (INDEX_SETTINGS_KEY,))
        if row is None:
            return False

        try:
            index_settings = json.loads(row["value"])
        except ValueError:
            logger.warning(f"Unreadable {INDEX_SETTINGS_KEY} setting: {row['value']!r}")
            return False

        self.bytes_per_word = int(index_settings.get("bytes_per_word", 4))

        row = db.query_one("SELECT value FROM settings WHERE variable = ?", (STOPWORDS_KEY,))
        if row is not None and row["value"]:
            self.stopwords = {int(word_id) for word_id in row["value"].split(",") if word_id.strip().isdigit()}

        return True

    def prepare_indexes(
        self,
        word: str,
        branch: OrBranch,
        excluded_index_words: List[Any],
        is_excluded: bool
    ) -> None:
        subwords = text2words(word, max_chars=None)

        if not self.config.force_index:
            branch.words.append(word)

        # Excluded phrases are matched as text, not through the index
        if len(subwords) > 1 and is_excluded:
            return

        for subword in subwords:
            if len(subword) < self.min_word_length:
                continue
            word_id = word_to_id(subword, self.bytes_per_word)
            if word_id not in self.stopwords:
                branch.indexed_words.append(word_id)
                if is_excluded:
                    excluded_index_words.append(word_id)

    def indexed_word_query(self, branch: OrBranch, search_data: SearchData) -> Optional[QueryParts]:
        parts = QueryParts(from_="messages AS m", select={"id_msg": "m.id_msg"})

        add_message_filters(self, parts, branch, search_data)

        prev_join = 0
        for num_tables, word_id in enumerate(branch.indexed_words, start=1):
            alias = f"lsw{num_tables}"
            parts.params[f"word_id_{num_tables}"] = word_id
            if word_id in search_data.excluded_index_words:
                parts.left_join.append(
                    f"log_search_words AS {alias} ON ({alias}.id_word = :word_id_{num_tables} "
                    f"AND {alias}.id_msg = m.id_msg)"
                )
                parts.where.append(f"({alias}.id_word IS NULL)")
            else:
                previous = "m" if prev_join == 0 else f"lsw{prev_join}"
                parts.inner_join.append(
                    f"log_search_words AS {alias} ON ({alias}.id_msg = {previous}.id_msg)"
                )
                parts.where.append(f"{alias}.id_word = :word_id_{num_tables}")
                prev_join = num_tables

        return parts
