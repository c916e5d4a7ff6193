"""
Candidate staging for one search execution.

Candidates are (topic, message) pairs that matched some branch. They are
written into connection-scoped TEMP tables when SQLite lets us create
them, or into the shared log_search_* tables keyed by search id. Both
hold the same logical content.
"""

from typing import Any, Dict, Optional, Sequence, Set, Tuple

from ..core import get_logger, SearchConfig
from ..utils import escape_like
from .backends import IndexedWordSearcher, SearchBackend, SearchData
from .backends.base import LIKE_ESCAPE
from .models import BranchSet, OrBranch, SearchQuery, StagingResult, WordSet
from .query_parts import QueryParts

logger = get_logger(__name__)


TMP_MESSAGES_TABLE = "tmp_log_search_messages"
TMP_TOPICS_TABLE = "tmp_log_search_topics"
SHARED_MESSAGES_TABLE = "log_search_messages"
SHARED_TOPICS_TABLE = "log_search_topics"


class StagingArea:
    """
    Where candidates of a search are kept.

    The create_temporary flag records whether TEMP tables could actually
    be created; everything downstream branches on it.
    """

    def __init__(self, db, create_temporary: bool = True):
        self.db = db
        self.requested_temporary = create_temporary
        self.create_temporary = False

    def setup(self) -> bool:
        """
        Create fresh TEMP staging tables if allowed.

        Returns:
            Whether the TEMP tables are in use.
        """
        self.create_temporary = False
        if not self.requested_temporary:
            return False

        self.db.try_execute(f"DROP TABLE IF EXISTS temp.{TMP_MESSAGES_TABLE}")
        self.db.try_execute(f"DROP TABLE IF EXISTS temp.{TMP_TOPICS_TABLE}")

        self.create_temporary = self.db.try_execute(
            f"CREATE TEMPORARY TABLE {TMP_MESSAGES_TABLE} (id_msg INTEGER NOT NULL DEFAULT 0 PRIMARY KEY)"
        ) and self.db.try_execute(
            f"CREATE TEMPORARY TABLE {TMP_TOPICS_TABLE} (id_topic INTEGER NOT NULL DEFAULT 0 PRIMARY KEY)"
        )

        if not self.create_temporary:
            logger.warning("Temporary staging unavailable, using shared tables")

        return self.create_temporary

    @property
    def messages_table(self) -> str:
        return TMP_MESSAGES_TABLE if self.create_temporary else SHARED_MESSAGES_TABLE

    @property
    def topics_table(self) -> str:
        return TMP_TOPICS_TABLE if self.create_temporary else SHARED_TOPICS_TABLE

    def message_columns(self) -> Tuple[str, ...]:
        return ("id_msg",) if self.create_temporary else ("id_search", "id_msg")

    def topic_columns(self) -> Tuple[str, ...]:
        return ("id_topic",) if self.create_temporary else ("id_search", "id_topic")

    def scope(self, alias: str) -> str:
        """Condition limiting a staging alias to the current search."""
        return "1=1" if self.create_temporary else f"{alias}.id_search = :id_search"

    def clear_messages(self, search_id: int) -> None:
        if self.create_temporary:
            self.db.execute(f"DELETE FROM {TMP_MESSAGES_TABLE}")
        else:
            self.db.execute(f"DELETE FROM {SHARED_MESSAGES_TABLE} WHERE id_search = ?", (search_id,))

    def clear_topics(self, search_id: int) -> None:
        if self.create_temporary:
            self.db.execute(f"DELETE FROM {TMP_TOPICS_TABLE}")
        else:
            self.db.execute(f"DELETE FROM {SHARED_TOPICS_TABLE} WHERE id_search = ?", (search_id,))

    def clear(self, search_id: int) -> None:
        self.clear_messages(search_id)
        self.clear_topics(search_id)

    def drop(self) -> None:
        """Drop the TEMP tables; shared rows stay until cleared."""
        if self.create_temporary:
            self.db.execute(f"DROP TABLE IF EXISTS temp.{TMP_MESSAGES_TABLE}")
            self.db.execute(f"DROP TABLE IF EXISTS temp.{TMP_TOPICS_TABLE}")
            self.create_temporary = False


class UniqueInserter:
    """
    Inserts SELECT results into a table, skipping rows already present.

    With INSERT OR IGNORE available the database does the work. Otherwise
    the rows are read, filtered against the natural keys already stored
    (and those inserted since) and the rest is inserted. In both cases the
    first row written for a key wins.

    Args:
        db: Database session.
        table: Target table.
        key_columns: Natural key of the table.
        scope: Optional (column, value) limiting the existing keys read.
    """

    def __init__(self, db, table: str, key_columns: Sequence[str], scope: Tuple[str, Any] = None):
        self.db = db
        self.table = table
        self.key_columns = tuple(key_columns)
        self.scope = scope
        self._seen: Optional[Set[tuple]] = None

    def _load_seen(self) -> Set[tuple]:
        sql = f"SELECT {', '.join(self.key_columns)} FROM {self.table}"
        params: tuple = ()
        if self.scope is not None:
            sql += f" WHERE {self.scope[0]} = ?"
            params = (self.scope[1],)
        return {tuple(row) for row in self.db.query(sql, params)}

    def insert(self, parts: QueryParts) -> int:
        """
        Insert the rows selected by parts.

        The SELECT column names must match the target columns.

        Returns:
            Number of rows actually inserted.
        """
        columns = parts.columns
        select_sql = parts.to_sql()

        if self.db.supports_ignore:
            return self.db.execute(
                f"INSERT OR IGNORE INTO {self.table} ({', '.join(columns)})\n{select_sql}",
                parts.params
            )

        if self._seen is None:
            self._seen = self._load_seen()

        fresh = []
        for row in self.db.query(select_sql, parts.params):
            key = tuple(row[column] for column in self.key_columns)
            if key in self._seen:
                continue
            self._seen.add(key)
            fresh.append(tuple(row[column] for column in columns))

        return self.db.insert_rows(self.table, columns, fresh)


def add_subject_chain(
    parts: QueryParts,
    backend: SearchBackend,
    branch: OrBranch,
    word_set: WordSet,
    match_words: bool
) -> None:
    """
    Join the subject index once per subject word of a branch.

    Required words chain inner joins, each narrowed to the topics of the
    previous one. Excluded words become LEFT JOIN ... IS NULL anti-joins
    and are also checked against the first message body.
    """
    prev_join = 0
    for num_tables, subject_word in enumerate(branch.subject_words, start=1):
        alias = f"subj{num_tables}"
        param = f"subject_word_{num_tables}"

        if match_words:
            word_match = f"{alias}.word = :{param}"
            parts.params[param] = subject_word
        else:
            word_match = f"{alias}.word LIKE :{param} {LIKE_ESCAPE}"
            parts.params[param] = "%" + escape_like(subject_word) + "%"

        if subject_word in word_set.excluded_subject_words:
            parts.inner_join.append("messages AS fm ON (fm.id_msg = t.id_first_msg)")
            parts.left_join.append(f"log_search_subjects AS {alias} ON ({word_match} AND {alias}.id_topic = t.id_topic)")
            parts.where.append(f"({alias}.word IS NULL)")

            body_param = f"body_not_{num_tables}"
            parts.where.append(backend.match_clause("fm.body", body_param, word_set.no_regexp, negate=True))
            parts.params[body_param] = backend.prepare_word(subject_word, word_set.no_regexp)
        else:
            previous = "t" if prev_join == 0 else f"subj{prev_join}"
            parts.inner_join.append(f"log_search_subjects AS {alias} ON ({alias}.id_topic = {previous}.id_topic)")
            parts.where.append(word_match)
            prev_join = num_tables


def add_topic_filters(parts: QueryParts, query: SearchQuery) -> None:
    """Topic, message-id and board filters on topics "t"."""
    if query.topic:
        parts.where.append("t.id_topic = :topic")
        parts.params["topic"] = query.topic

    if query.min_msg_id:
        parts.where.append("t.id_first_msg >= :min_msg_id")
        parts.params["min_msg_id"] = query.min_msg_id

    if query.max_msg_id:
        parts.where.append("t.id_last_msg <= :max_msg_id")
        parts.params["max_msg_id"] = query.max_msg_id

    if query.board_query:
        parts.where.append(f"t.id_board {query.board_query}")


def add_excluded_phrases(parts: QueryParts, backend: SearchBackend, word_set: WordSet) -> None:
    """Excluded phrases checked directly on the first message subject and body."""
    if not word_set.excluded_phrases:
        return

    parts.inner_join.append("messages AS fm ON (fm.id_msg = t.id_first_msg)")
    for count, phrase in enumerate(word_set.excluded_phrases):
        param = f"exclude_phrase_{count}"
        parts.where.append(backend.match_clause("fm.subject", param, word_set.no_regexp, negate=True))
        parts.where.append(backend.match_clause("fm.body", param, word_set.no_regexp, negate=True))
        parts.params[param] = backend.prepare_word(phrase, word_set.no_regexp)


class CandidateStager:
    """
    Populates the staging area for a search.

    Args:
        db: Database session.
        backend: Active search backend.
        staging: Staging area of this search.
        config: Search configuration.
        postmod_active: Unapproved messages are hidden.
    """

    def __init__(
        self,
        db,
        backend: SearchBackend,
        staging: StagingArea,
        config: SearchConfig,
        postmod_active: bool = False
    ):
        self.db = db
        self.backend = backend
        self.staging = staging
        self.config = config
        self.postmod_active = postmod_active

    def _topic_inserter(self, search_id: int) -> UniqueInserter:
        if self.staging.create_temporary:
            return UniqueInserter(self.db, self.staging.topics_table, ("id_topic",))
        return UniqueInserter(
            self.db, self.staging.topics_table, ("id_search", "id_topic"), scope=("id_search", search_id)
        )

    def _message_inserter(self, search_id: int) -> UniqueInserter:
        if self.staging.create_temporary:
            return UniqueInserter(self.db, self.staging.messages_table, ("id_msg",))
        return UniqueInserter(
            self.db, self.staging.messages_table, ("id_search", "id_msg"), scope=("id_search", search_id)
        )

    def _select_with_search_id(self, search_id: int, column: str, expr: str) -> Dict[str, str]:
        if self.staging.create_temporary:
            return {column: expr}
        return {"id_search": str(int(search_id)), column: expr}

    def stage_subjects(self, branches: BranchSet, word_set: WordSet, query: SearchQuery, search_id: int) -> int:
        """
        Stage topics whose subjects match, for single-topic searches.

        Returns:
            Number of topics staged.
        """
        if not query.topic:
            return 0

        if not self.staging.create_temporary:
            self.staging.clear_topics(search_id)

        max_results = self.config.max_results
        inserter = self._topic_inserter(search_id)
        num_subject_results = 0

        for branch in branches:
            parts = QueryParts(
                from_="topics AS t",
                select=self._select_with_search_id(search_id, "id_topic", "t.id_topic")
            )

            add_subject_chain(parts, self.backend, branch, word_set, self.config.match_words)

            if query.user_query:
                parts.inner_join.append("messages AS m ON (m.id_msg = t.id_first_msg)")
                parts.where.append(f"({query.user_query})")
                parts.params.update(query.user_parameters)

            add_topic_filters(parts, query)
            add_excluded_phrases(parts, self.backend, word_set)

            if not parts.where:
                continue

            if max_results:
                parts.limit = max_results - num_subject_results

            num_subject_results += inserter.insert(parts)

            if max_results and num_subject_results >= max_results:
                break

        logger.debug(f"Search {search_id}: {num_subject_results} topic(s) staged from subjects")
        return num_subject_results

    def _search_data(self, word_set: WordSet, query: SearchQuery, branches: BranchSet, indexed_results: int) -> SearchData:
        return SearchData(
            no_regexp=word_set.no_regexp,
            max_results=self.config.max_message_results,
            indexed_results=indexed_results,
            excluded_words=list(word_set.excluded_words),
            excluded_phrases=list(word_set.excluded_phrases),
            excluded_subject_words=list(word_set.excluded_subject_words),
            excluded_index_words=list(branches.excluded_index_words),
            user_query=query.user_query,
            user_params=query.user_parameters,
            board_query=query.board_query,
            topic=query.topic,
            min_msg_id=query.min_msg_id,
            max_msg_id=query.max_msg_id,
            approved_only=self.postmod_active
        )

    def stage_indexed(self, branches: BranchSet, word_set: WordSet, query: SearchQuery, search_id: int) -> int:
        """
        Stage messages found through the backend's index, branch by branch.

        Returns:
            Number of messages staged.
        """
        if not self.staging.create_temporary:
            self.staging.clear_messages(search_id)

        max_message_results = self.config.max_message_results
        inserter = self._message_inserter(search_id)
        indexed_results = 0

        for branch in branches:
            if not branch.indexed_words:
                continue

            search_data = self._search_data(word_set, query, branches, indexed_results)
            parts = self.backend.indexed_word_query(branch, search_data)
            if parts is None:
                continue

            parts.select = self._select_with_search_id(search_id, "id_msg", "m.id_msg")
            if max_message_results:
                parts.limit = max_message_results - indexed_results

            indexed_results += inserter.insert(parts)

            if max_message_results and indexed_results >= max_message_results:
                break

        logger.debug(f"Search {search_id}: {indexed_results} message(s) staged from the index")
        return indexed_results

    def brute_force_parts(self, branches: BranchSet, word_set: WordSet, query: SearchQuery) -> Optional[QueryParts]:
        """
        One SELECT over messages matching any branch.

        Each branch is an AND of body matches; excluded words must be in
        neither the body nor the subject. Branches are OR'd together.

        Returns:
            The query, or None when no branch has words.
        """
        parts = QueryParts(from_="messages AS m", select={"id_msg": "m.id_msg"})

        or_where = []
        count = 0
        for branch in branches:
            where = []
            for word in branch.all_words:
                param = f"all_word_body_{count}"
                is_excluded = word_set.is_excluded(word)
                where.append(self.backend.match_clause("m.body", param, word_set.no_regexp, negate=is_excluded))
                if is_excluded:
                    where.append(self.backend.match_clause("m.subject", param, word_set.no_regexp, negate=True))
                parts.params[param] = self.backend.prepare_word(word, word_set.no_regexp)
                count += 1

            if where:
                or_where.append("(" + " AND ".join(where) + ")" if len(where) > 1 else where[0])

        if not or_where:
            return None

        parts.where.append("(" + " OR ".join(or_where) + ")" if len(or_where) > 1 else or_where[0])

        if query.user_query:
            parts.where.append(f"({query.user_query})")
            parts.params.update(query.user_parameters)

        if query.topic:
            parts.where.append("m.id_topic = :topic")
            parts.params["topic"] = query.topic

        if query.min_msg_id:
            parts.where.append("m.id_msg >= :min_msg_id")
            parts.params["min_msg_id"] = query.min_msg_id

        if query.max_msg_id:
            parts.where.append("m.id_msg <= :max_msg_id")
            parts.params["max_msg_id"] = query.max_msg_id

        if query.board_query:
            parts.where.append(f"m.id_board {query.board_query}")

        if self.postmod_active:
            parts.where.append("m.approved = 1")

        return parts

    def stage_brute_force(self, branches: BranchSet, word_set: WordSet, query: SearchQuery, search_id: int) -> int:
        """
        Stage messages by scanning bodies directly.

        Returns:
            Number of messages staged.
        """
        if not self.staging.create_temporary:
            self.staging.clear_messages(search_id)

        parts = self.brute_force_parts(branches, word_set, query)
        if parts is None:
            return 0

        parts.select = self._select_with_search_id(search_id, "id_msg", "m.id_msg")
        parts.limit = self.config.max_message_results

        num_results = self._message_inserter(search_id).insert(parts)
        logger.debug(f"Search {search_id}: {num_results} message(s) staged by body scan")
        return num_results

    def stage_candidates(
        self,
        branches: BranchSet,
        word_set: WordSet,
        query: SearchQuery,
        search_id: int
    ) -> StagingResult:
        """
        Run every applicable staging strategy.

        Returns:
            StagingResult with the cumulative counts.
        """
        result = StagingResult()
        result.num_subjects = self.stage_subjects(branches, word_set, query, search_id)

        if isinstance(self.backend, IndexedWordSearcher):
            result.indexed = True
            result.num_messages = self.stage_indexed(branches, word_set, query, search_id)
        else:
            result.num_messages = self.stage_brute_force(branches, word_set, query, search_id)

        return result
