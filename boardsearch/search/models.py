"""
Data models for search functionality.

Defines the parsed request, the tokenized word set, the per-branch word
lists, the collected user-facing errors and the page of results handed
back to the caller.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Tuple


SORT_COLUMNS = ("relevance", "num_replies", "id_msg")
SORT_DIRECTIONS = ("asc", "desc")


class SearchType(IntEnum):
    """How the words of a query combine."""
    ALL = 1
    ANY = 2


@dataclass(frozen=True)
class SearchQuery:
    """
    The parsed and validated search request.

    Built once per request by the QueryBuilder and never changed after.
    Age bounds are already resolved to message-id bounds.

    Attributes:
        search: Raw query text.
        searchtype: ALL words or ANY word.
        brd: Board ids searched, empty for all boards.
        board_query: SQL tail for the board filter ("IN (1, 2)", "!= 4" or "").
        topic: Single topic searched, 0 for none.
        userspec: Member name pattern as typed.
        user_query: SQL predicate on messages "m" for the member filter.
        user_params: Named parameters used by user_query.
        min_msg_id: Lowest message id searched, 0 for unbounded.
        max_msg_id: Highest message id searched, 0 for unbounded.
        minage: Minimum message age in days.
        maxage: Maximum message age in days.
        sort: Sort column, one of SORT_COLUMNS.
        sort_dir: "asc" or "desc".
        subject_only: Search subjects only.
        show_complete: One result per message instead of per topic.
        advanced: The advanced search form was used.
        min_msg: Message id where the recent window starts.
        recent_msg: Width of the recent window in message ids.
    """
    search: str = ""
    searchtype: SearchType = SearchType.ALL
    brd: Tuple[int, ...] = ()
    board_query: str = ""
    topic: int = 0
    userspec: str = ""
    user_query: str = ""
    user_params: Tuple[Tuple[str, str], ...] = ()
    min_msg_id: int = 0
    max_msg_id: int = 0
    minage: int = 0
    maxage: int = 0
    sort: str = "relevance"
    sort_dir: str = "desc"
    subject_only: bool = False
    show_complete: bool = False
    advanced: bool = False
    min_msg: int = 0
    recent_msg: int = 1

    @property
    def is_verbatim(self) -> bool:
        """Every matching message is its own result."""
        return bool(self.topic or self.show_complete)

    @property
    def user_parameters(self) -> Dict[str, str]:
        return dict(self.user_params)

    def params(self) -> Dict[str, Any]:
        """The parameter map stored in the encoded search token."""
        params = {"search": self.search}
        if self.searchtype == SearchType.ANY:
            params["searchtype"] = int(SearchType.ANY)
        if self.brd:
            params["brd"] = list(self.brd)
        if self.topic:
            params["topic"] = self.topic
        if self.userspec:
            params["userspec"] = self.userspec
        if self.minage:
            params["minage"] = self.minage
        if self.maxage:
            params["maxage"] = self.maxage
        params["show_complete"] = self.show_complete
        params["subject_only"] = self.subject_only
        params["sort"] = self.sort
        params["sort_dir"] = self.sort_dir
        params["advanced"] = int(self.advanced)
        return params


@dataclass
class WordSet:
    """
    The tokenized query.

    Attributes:
        tokens: Surviving words and phrases, at most ten.
        excluded_words: Words and phrases given with a leading minus.
        excluded_phrases: Excluded entries spanning several words.
        excluded_subject_words: Excluded single words, matched against subjects too.
        ignored: Tokens dropped for being too short.
        found_blacklisted_words: A blacklisted word was dropped.
        no_regexp: The query holds a numeric entity, so only LIKE is used.
    """
    tokens: List[str] = field(default_factory=list)
    excluded_words: List[str] = field(default_factory=list)
    excluded_phrases: List[str] = field(default_factory=list)
    excluded_subject_words: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    found_blacklisted_words: bool = False
    no_regexp: bool = False

    def is_empty(self) -> bool:
        return not self.tokens

    def is_excluded(self, word: str) -> bool:
        return word in self.excluded_words


@dataclass
class OrBranch:
    """One AND-clause of the search; branches are OR'd together."""
    indexed_words: List[Any] = field(default_factory=list)
    words: List[str] = field(default_factory=list)
    subject_words: List[str] = field(default_factory=list)
    all_words: List[str] = field(default_factory=list)
    complex_words: List[str] = field(default_factory=list)


@dataclass
class BranchSet:
    """The OR-branches of a search plus index words that must not match."""
    branches: List[OrBranch] = field(default_factory=list)
    excluded_index_words: List[Any] = field(default_factory=list)

    def __iter__(self) -> Iterator[OrBranch]:
        return iter(self.branches)

    def __len__(self) -> int:
        return len(self.branches)

    def __getitem__(self, index: int) -> OrBranch:
        return self.branches[index]


class SearchErrors:
    """
    User-facing conditions collected during a search.

    Codes accumulate instead of short-circuiting, so several can be shown
    at once.
    """

    MESSAGES = {
        "no_boards_selected": "No boards were selected to search in.",
        "query_not_specific_enough": "Your search query was not specific enough.",
        "no_messages_in_time_frame": "No messages were posted in the requested time frame.",
        "topic_gone": "The topic does not exist or you are not allowed to see it.",
    }

    def __init__(self, codes=None):
        self._codes = set(codes or ())

    def add(self, code: str) -> None:
        self._codes.add(code)

    def update(self, other: "SearchErrors") -> None:
        self._codes.update(other.codes)

    @property
    def codes(self) -> List[str]:
        return sorted(self._codes)

    def messages(self) -> List[str]:
        return [self.MESSAGES.get(code, code.replace("_", " ")) for code in self.codes]

    def __contains__(self, code: str) -> bool:
        return code in self._codes

    def __bool__(self) -> bool:
        return bool(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __repr__(self) -> str:
        return f"SearchErrors({self.codes})"


@dataclass
class StagingResult:
    """Counts from one candidate staging run."""
    num_subjects: int = 0
    num_messages: int = 0
    indexed: bool = False

    @property
    def candidate_count(self) -> int:
        return self.num_subjects + self.num_messages


@dataclass
class ResultRow:
    """A scored row of the page window."""
    id_topic: int
    id_msg: int
    relevance: int
    num_matches: int

    @property
    def display_relevance(self) -> float:
        """Relevance as a percentage-like number with one decimal."""
        return round(self.relevance / 10, 1)


@dataclass
class MessageResult:
    """
    A message on the result page with its topic, board and poster data.

    Attributes:
        relevance: Display relevance of the row (0-100).
        num_matches: Matching messages in the topic, 1 in verbatim mode.
        participated: The viewer has posted in this topic.
    """
    id_msg: int
    id_topic: int
    id_board: int
    board_name: str
    id_cat: int
    cat_name: str
    subject: str
    body: str
    id_member: int
    poster_name: str
    poster_time: int
    icon: str
    first_msg: int
    first_subject: str
    first_member_name: str
    last_msg: int
    last_member_name: str
    last_poster_time: int
    is_sticky: bool
    locked: bool
    num_replies: int
    num_views: int
    num_likes: int
    relevance: float = 0.0
    num_matches: int = 0
    participated: bool = False


@dataclass
class ResultPage:
    """One page of assembled results."""
    rows: List[ResultRow] = field(default_factory=list)
    messages: List[MessageResult] = field(default_factory=list)
    posters: List[int] = field(default_factory=list)
    participants: Dict[int, bool] = field(default_factory=dict)
    total_results: int = 0
    start: int = 0
    limit: int = 0

    def is_empty(self) -> bool:
        """True when no message metadata was fetched for this page."""
        return len(self.messages) == 0

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 1
        return max(1, (self.total_results + self.limit - 1) // self.limit)

    @property
    def page(self) -> int:
        return (self.start // self.limit) + 1 if self.limit > 0 else 1


@dataclass
class Suggestion:
    """A "did you mean" correction of the query."""
    display: str
    search: str
    token: str


@dataclass
class SearchOutcome:
    """Everything a caller needs to render a search."""
    query: SearchQuery
    word_set: WordSet
    errors: SearchErrors
    page: ResultPage
    num_results: int = 0
    token: str = ""
    backend: str = "standard"
    suggestion: Optional[Suggestion] = None
    execution_time_ms: float = 0.0
