"""
Relevance scorer: turns staged candidates into scored result rows.

Rows go to log_search_results(id_search, result_key, id_topic, id_msg,
relevance, num_matches). The result key is the topic in grouped mode and
the message in verbatim mode, so each result appears once.
"""

from typing import Dict

from ..core import get_logger, SearchConfig
from .models import BranchSet, SearchQuery, StagingResult, WordSet
from .query_parts import QueryParts
from .staging import (
    CandidateStager,
    StagingArea,
    UniqueInserter,
    add_excluded_phrases,
    add_subject_chain,
    add_topic_filters,
)
from .weights import SUBJECT_MATCH_FACTOR, WeightProfile

logger = get_logger(__name__)


RESULTS_TABLE = "log_search_results"


class RelevanceScorer:
    """
    Writes scored rows for a search.

    Args:
        db: Database session.
        stager: Candidate stager of the search, for its backend and staging area.
        weights: Relevance weight profile.
        config: Search configuration.
        postmod_active: Unapproved topics are hidden.
    """

    def __init__(
        self,
        db,
        stager: CandidateStager,
        weights: WeightProfile,
        config: SearchConfig,
        postmod_active: bool = False
    ):
        self.db = db
        self.stager = stager
        self.weights = weights
        self.config = config
        self.postmod_active = postmod_active

    @property
    def staging(self) -> StagingArea:
        return self.stager.staging

    def _inserter(self, search_id: int) -> UniqueInserter:
        return UniqueInserter(
            self.db, RESULTS_TABLE, ("id_search", "result_key"), scope=("id_search", search_id)
        )

    def _base_params(self, search_id: int, query: SearchQuery) -> Dict[str, int]:
        params = self.weights.relevance_params(query, self.config.huge_topic_posts)
        params["id_search"] = search_id
        return params

    def clear_results(self, search_id: int) -> int:
        """Delete the scored rows of a search before its id is reused."""
        return self.db.execute(f"DELETE FROM {RESULTS_TABLE} WHERE id_search = ?", (search_id,))

    def main_query(self, search_id: int, query: SearchQuery, staged: StagingResult) -> QueryParts:
        """The grouped or verbatim scoring SELECT over staged messages."""
        parts = QueryParts(
            from_="topics AS t",
            inner_join=["messages AS m ON (m.id_topic = t.id_topic)"],
            params=self._base_params(search_id, query)
        )

        if not query.is_verbatim:
            factors = self.weights.search_factors()
            select = {
                "result_key": "t.id_topic",
                "id_topic": "t.id_topic",
                "id_msg": "MAX(m.id_msg)",
                "num_matches": "COUNT(*)",
            }
            parts.group_by.append("t.id_topic")
        else:
            factors = self.weights.verbatim_factors()
            select = {
                "result_key": "m.id_msg",
                "id_topic": "t.id_topic",
                "id_msg": "m.id_msg",
                "num_matches": "1",
            }
            if query.topic:
                parts.where.append("t.id_topic = :topic")
                parts.params["topic"] = query.topic
            parts.group_by.append("m.id_msg")

        if staged.num_subjects:
            factors["subject"] = SUBJECT_MATCH_FACTOR
            parts.left_join.append(
                f"{self.staging.topics_table} AS lst ON ("
                + ("" if self.staging.create_temporary else "lst.id_search = :id_search AND ")
                + "lst.id_topic = t.id_topic)"
            )

        parts.inner_join.append(f"{self.staging.messages_table} AS lsm ON (lsm.id_msg = m.id_msg)")
        if not self.staging.create_temporary:
            parts.where.append("lsm.id_search = :id_search")

        parts.select = {
            "id_search": ":id_search",
            **select,
            "relevance": self.weights.build_relevance(factors),
        }
        parts.limit = self.config.max_results

        return parts

    def subject_only_query(self, search_id: int, query: SearchQuery, remaining: int) -> QueryParts:
        """Topics found only through their subject, scored from the topic alone."""
        parts = QueryParts(
            from_="topics AS t",
            inner_join=[f"{self.staging.topics_table} AS lst ON (lst.id_topic = t.id_topic)"],
            where=[self.staging.scope("lst")],
            params=self._base_params(search_id, query)
        )
        parts.select = {
            "id_search": ":id_search",
            "result_key": "t.id_first_msg" if query.is_verbatim else "t.id_topic",
            "id_topic": "t.id_topic",
            "id_msg": "t.id_first_msg",
            "num_matches": "1",
            "relevance": self.weights.build_relevance(self.weights.results_factors(), total=self.weights.total),
        }
        parts.limit = remaining
        return parts

    def score_and_log(self, search_id: int, query: SearchQuery, staged: StagingResult) -> int:
        """
        Score the staged candidates of a search.

        Args:
            search_id: Search being scored.
            query: The parsed request.
            staged: Counts returned by the stager.

        Returns:
            Number of result rows written.
        """
        max_results = self.config.max_results
        inserter = self._inserter(search_id)
        num_results = 0

        if staged.indexed and not staged.num_messages and not staged.num_subjects and self.config.force_index:
            return 0

        if staged.num_messages:
            num_results += inserter.insert(self.main_query(search_id, query, staged))

        if staged.num_subjects and (not max_results or num_results < max_results):
            remaining = max_results - num_results if max_results else 0
            num_results += inserter.insert(self.subject_only_query(search_id, query, remaining))

        logger.debug(f"Search {search_id}: {num_results} result(s) scored")
        return num_results

    def score_subject_only(self, search_id: int, branches: BranchSet, word_set: WordSet, query: SearchQuery) -> int:
        """
        Subject-only search: match subjects and score rows directly.

        Returns:
            Number of result rows written.
        """
        max_results = self.config.max_results
        inserter = self._inserter(search_id)
        backend = self.stager.backend
        num_subject_results = 0

        for branch in branches:
            if not branch.subject_words:
                continue

            parts = QueryParts(from_="topics AS t", params=self._base_params(search_id, query))

            if self.postmod_active:
                parts.where.append("t.approved = 1")

            add_subject_chain(parts, backend, branch, word_set, self.config.match_words)

            if query.user_query:
                parts.inner_join.append("messages AS m ON (m.id_topic = t.id_topic)")
                parts.where.append(f"({query.user_query})")
                parts.params.update(query.user_parameters)

            add_topic_filters(parts, query)
            add_excluded_phrases(parts, backend, word_set)

            parts.select = {
                "id_search": ":id_search",
                "result_key": "t.id_topic",
                "id_topic": "t.id_topic",
                "id_msg": "m.id_msg" if query.user_query else "t.id_first_msg",
                "num_matches": "1",
                "relevance": self.weights.build_relevance(self.weights.results_factors(), total=self.weights.total),
            }

            if max_results:
                parts.limit = max_results - num_subject_results

            num_subject_results += inserter.insert(parts)

            if max_results and num_subject_results >= max_results:
                break

        logger.debug(f"Search {search_id}: {num_subject_results} subject-only result(s)")
        return num_subject_results
