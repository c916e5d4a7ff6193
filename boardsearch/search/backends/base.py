"""
Search backend contract.

A backend decides how words are matched against message bodies and,
optionally, how an index narrows the candidates. Optional abilities are
separate interfaces; the classifier and the stager check for them with
isinstance instead of probing method names.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ...core import SearchConfig
from ...utils import escape_like
from ..models import OrBranch
from ..query_parts import QueryParts


LIKE_ESCAPE = "ESCAPE '\\'"


@dataclass
class SearchData:
    """
    Everything an indexed-word query needs besides the branch itself.

    Attributes:
        no_regexp: Only LIKE matching may be used.
        max_results: Ceiling of staged messages, 0 for none.
        indexed_results: Messages staged so far.
        excluded_words: Words the messages must not contain.
        excluded_phrases: Phrases the subjects must not contain.
        excluded_subject_words: Words the subjects must not contain.
        excluded_index_words: Index entries the messages must not carry.
        user_query: Member filter on messages "m".
        user_params: Parameters of user_query.
        board_query: Tail of the board filter.
        topic: Single topic searched.
        min_msg_id: Lowest message id, 0 for unbounded.
        max_msg_id: Highest message id, 0 for unbounded.
        approved_only: Hide unapproved messages.
    """
    no_regexp: bool = False
    max_results: int = 0
    indexed_results: int = 0
    excluded_words: List[str] = field(default_factory=list)
    excluded_phrases: List[str] = field(default_factory=list)
    excluded_subject_words: List[str] = field(default_factory=list)
    excluded_index_words: List[Any] = field(default_factory=list)
    user_query: str = ""
    user_params: Dict[str, Any] = field(default_factory=dict)
    board_query: str = ""
    topic: int = 0
    min_msg_id: int = 0
    max_msg_id: int = 0
    approved_only: bool = False


class SearchBackend:
    """
    Base search backend: word preparation and match operators.

    Attributes:
        name: Registry name of the backend.
    """

    name = "base"

    def __init__(self, config: SearchConfig):
        self.config = config
        self.excluded_words: List[str] = []

    def is_valid(self, db) -> bool:
        """Whether this backend can run on the given database."""
        return True

    def uses_regexp(self, no_regexp: bool) -> bool:
        return bool(self.config.match_words) and not no_regexp

    def prepare_word(self, phrase: str, no_regexp: bool) -> str:
        """
        Turn a word into the pattern bound to LIKE or REGEXP.

        Args:
            phrase: Word or phrase to look for.
            no_regexp: Force LIKE matching.

        Returns:
            "%word%" with LIKE wildcards escaped, or a whole-word regex.
        """
        if not self.uses_regexp(no_regexp):
            return "%" + escape_like(phrase) + "%"
        return r"\b" + re.escape(phrase) + r"\b"

    def match_operator(self, no_regexp: bool) -> str:
        return "REGEXP" if self.uses_regexp(no_regexp) else "LIKE"

    def match_clause(self, column: str, param: str, no_regexp: bool, negate: bool = False) -> str:
        """SQL condition matching a column against a prepared word parameter."""
        operator = self.match_operator(no_regexp)
        clause = f"{column} {'NOT ' if negate else ''}{operator} :{param}"
        if operator == "LIKE":
            clause += " " + LIKE_ESCAPE
        return clause

    def set_excluded_words(self, words: List[str]) -> None:
        self.excluded_words = list(words)


class WordSorter(ABC):
    """Backends that order branch words before index preparation."""

    @abstractmethod
    def search_sort(self, word: str):
        """Sort key for a branch word."""


class IndexPreparer(ABC):
    """Backends that turn words into index entries."""

    @abstractmethod
    def prepare_indexes(
        self,
        word: str,
        branch: OrBranch,
        excluded_index_words: List[Any],
        is_excluded: bool
    ) -> None:
        """Add the index entries of a word to the branch."""


class IndexedWordSearcher(ABC):
    """Backends that can select candidate messages through an index."""

    @abstractmethod
    def indexed_word_query(self, branch: OrBranch, search_data: SearchData) -> Optional[QueryParts]:
        """
        Build the SELECT of candidate message ids for one branch.

        Returns:
            QueryParts selecting "id_msg", or None when the branch
            cannot be answered by the index.
        """


class LongWordsFirst(WordSorter):
    """Large words first, then small words, excluded words last."""

    def search_sort(self, word: str):
        weight = len(word) - (1000 if word in self.excluded_words else 0)
        return -weight


def add_message_filters(backend: SearchBackend, parts: QueryParts, branch: OrBranch, search_data: SearchData) -> None:
    """
    Add the filters shared by every indexed-word query on messages "m".

    Plain words are checked against bodies unless simple fulltext is on,
    then the member, board, topic and message-id bounds, and finally the
    excluded phrases and subject words unless the index is forced.
    """
    config = backend.config

    if not config.simple_fulltext:
        for count, word in enumerate(branch.words):
            param = f"complex_body_{count}"
            parts.where.append(backend.match_clause(
                "m.body", param, search_data.no_regexp,
                negate=word in search_data.excluded_words
            ))
            parts.params[param] = backend.prepare_word(word, search_data.no_regexp)

    if search_data.user_query:
        parts.where.append(f"({search_data.user_query})")
        parts.params.update(search_data.user_params)

    if search_data.board_query:
        parts.where.append(f"m.id_board {search_data.board_query}")

    if search_data.topic:
        parts.where.append("m.id_topic = :topic")
        parts.params["topic"] = search_data.topic

    if search_data.min_msg_id:
        parts.where.append("m.id_msg >= :min_msg_id")
        parts.params["min_msg_id"] = search_data.min_msg_id

    if search_data.max_msg_id:
        parts.where.append("m.id_msg <= :max_msg_id")
        parts.params["max_msg_id"] = search_data.max_msg_id

    if search_data.approved_only:
        parts.where.append("m.approved = 1")

    if not config.force_index:
        for count, phrase in enumerate(search_data.excluded_phrases):
            param = f"exclude_subject_phrase_{count}"
            parts.where.append(backend.match_clause("m.subject", param, search_data.no_regexp, negate=True))
            parts.params[param] = backend.prepare_word(phrase, search_data.no_regexp)

        for count, word in enumerate(search_data.excluded_subject_words):
            param = f"exclude_subject_words_{count}"
            parts.where.append(backend.match_clause("m.subject", param, search_data.no_regexp, negate=True))
            parts.params[param] = backend.prepare_word(word, search_data.no_regexp)
