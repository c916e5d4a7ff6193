"""
Fulltext backend on the SQLite FTS5 table over message bodies.
"""

from typing import Any, List, Optional

from ...database import table_exists
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


def fts_phrase(word: str) -> str:
    """Quote a word or phrase as an FTS5 string."""
    return '"' + word.replace('"', '""') + '"'


class FulltextSearch(LongWordsFirst, IndexPreparer, IndexedWordSearcher, SearchBackend):
    """
    Matches branch words with FTS5 MATCH.

    Required words are AND'ed, excluded words are subtracted with NOT.
    """

    name = "fulltext"

    def is_valid(self, db) -> bool:
        return table_exists(db.conn, "messages_fts")

    def prepare_indexes(
        self,
        word: str,
        branch: OrBranch,
        excluded_index_words: List[Any],
        is_excluded: bool
    ) -> None:
        if not self.config.force_index:
            branch.words.append(word)

        branch.indexed_words.append(word)
        if is_excluded:
            excluded_index_words.append(word)

    def build_match(self, branch: OrBranch, excluded_index_words: List[Any]) -> str:
        """
        FTS5 query for a branch.

        Returns:
            The MATCH expression, or "" when the branch has no required word.
        """
        required = [fts_phrase(w) for w in branch.indexed_words if w not in excluded_index_words]
        excluded = [fts_phrase(w) for w in branch.indexed_words if w in excluded_index_words]

        if not required:
            return ""

        expression = "(" + " AND ".join(required) + ")"
        for phrase in excluded:
            expression += f" NOT {phrase}"

        return expression

    def indexed_word_query(self, branch: OrBranch, search_data: SearchData) -> Optional[QueryParts]:
        match = self.build_match(branch, search_data.excluded_index_words)
        if not match:
            return None

        parts = QueryParts(from_="messages AS m", select={"id_msg": "m.id_msg"})
        parts.where.append("m.id_msg IN (SELECT rowid FROM messages_fts WHERE messages_fts MATCH :fulltext_match)")
        parts.params["fulltext_match"] = match

        add_message_filters(self, parts, branch, search_data)

        return parts
