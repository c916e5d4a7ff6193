"""
Search engine: the caller surface of the search core.

Wires the query builder, tokenizer, classifier, stager, scorer and
assembler together on one database session. Every stage is also exposed
on its own so callers can drive a search step by step.
"""

import time
from typing import Any, Dict, Optional

from ..core import get_config, get_logger, Config, UserQueryError
from .assembler import ResultAssembler
from .backends import SearchBackend, find_search_backend
from .classifier import WordClassifier
from .codec import decode_params, encode_params
from .models import (
    BranchSet,
    ResultPage,
    SearchOutcome,
    SearchQuery,
    StagingResult,
    WordSet,
)
from .query_builder import QueryBuilder
from .scorer import RelevanceScorer
from .staging import CandidateStager, StagingArea
from .suggestions import SpellChecker, load_suggestions
from .tokenizer import QueryTokenizer
from .weights import WeightProfile

logger = get_logger(__name__)


# Conditions that leave nothing meaningful to search
FATAL_ERRORS = frozenset({"topic_gone", "no_boards_selected", "no_messages_in_time_frame"})


class SearchEngine:
    """
    Runs forum searches on one database session.

    Args:
        db: Database session; its viewer decides which boards are visible.
        config: Application configuration.
        backend: Search backend, defaults to the configured one.
    """

    def __init__(self, db, config: Config, backend: SearchBackend = None):
        self.db = db
        self.config = config
        self.search_config = config.search
        self.postmod_active = bool(getattr(db, "postmod_active", False) or config.database.postmod_active)

        self.backend = backend or find_search_backend(self.search_config.index, db, self.search_config)

        self.query_builder = QueryBuilder(db, self.search_config, self.postmod_active)
        self.tokenizer = QueryTokenizer(
            self.search_config.blacklisted_words,
            simple_fulltext=self.search_config.simple_fulltext and self.backend.name == "fulltext"
        )
        self.classifier = WordClassifier(self.backend, self.search_config.force_index)
        self.staging = StagingArea(db, config.database.create_temporary)
        self.stager = CandidateStager(db, self.backend, self.staging, self.search_config, self.postmod_active)
        self.weights = WeightProfile.from_config(config.weights)
        self.scorer = RelevanceScorer(db, self.stager, self.weights, self.search_config, self.postmod_active)
        self.assembler = ResultAssembler(db, self.postmod_active)

    @classmethod
    def from_config(cls, db, config: Config = None) -> "SearchEngine":
        """Engine on the given session with the global configuration."""
        return cls(db, config or get_config())

    def build_query(self, raw_params: Dict[str, Any], encoded: str = None):
        return self.query_builder.build(raw_params, encoded)

    def tokenize(self, text: str) -> WordSet:
        return self.tokenizer.tokenize(text)

    def classify(self, word_set: WordSet, query: SearchQuery) -> BranchSet:
        return self.classifier.classify(word_set, query.searchtype, query.subject_only)

    def stage_candidates(self, branches: BranchSet, word_set: WordSet, query: SearchQuery,
                         search_id: int) -> StagingResult:
        return self.stager.stage_candidates(branches, word_set, query, search_id)

    def score_and_log(self, search_id: int, query: SearchQuery, staged: StagingResult) -> int:
        return self.scorer.score_and_log(search_id, query, staged)

    def assemble_page(self, search_id: int, query: SearchQuery, start: int = 0, limit: int = None) -> ResultPage:
        return self.assembler.assemble_page(search_id, query, start, limit or self.search_config.results_per_page)

    def clear_results(self, search_id: int) -> int:
        return self.scorer.clear_results(search_id)

    @staticmethod
    def encode(params: Dict[str, Any]) -> str:
        return encode_params(params)

    @staticmethod
    def decode(token: str) -> Dict[str, Any]:
        return decode_params(token)

    def run(self, search_id: int, query: SearchQuery, word_set: WordSet, branches: BranchSet) -> int:
        """
        Stage and score one search into the results log.

        This is the caller-side driver that search() uses; the stages it
        calls never clean up by themselves. Acting as their caller, it
        clears the previous results of search_id first, and afterwards
        clears this search's rows from shared staging and drops the
        staging area, whatever happens.

        Returns:
            Number of result rows written.
        """
        self.clear_results(search_id)
        self.staging.setup()

        try:
            if query.subject_only:
                return self.scorer.score_subject_only(search_id, branches, word_set, query)

            staged = self.stage_candidates(branches, word_set, query, search_id)
            return self.score_and_log(search_id, query, staged)
        finally:
            if not self.staging.create_temporary:
                self.staging.clear(search_id)
            self.staging.drop()

    def search(
        self,
        raw_params: Dict[str, Any],
        search_id: int = 1,
        start: int = 0,
        limit: int = None,
        encoded: str = None,
        spell_checker: Optional[SpellChecker] = None
    ) -> SearchOutcome:
        """
        Execute a search and assemble the requested page.

        User-facing problems never raise; they are collected in the
        outcome's errors and the page is left empty.

        Args:
            raw_params: Form parameters, see QueryBuilder.build.
            search_id: Results log slot to use.
            start: Offset of the first row of the page.
            limit: Rows per page, defaults to the configured page size.
            encoded: Token of a previous search to continue.
            spell_checker: Optional spelling service for suggestions.

        Returns:
            SearchOutcome.
        """
        start_time = time.time()
        limit = limit or self.search_config.results_per_page

        query, errors = self.build_query(raw_params, encoded)
        word_set = self.tokenize(query.search)
        token = encode_params(query.params())

        num_results = 0
        page = ResultPage(start=start, limit=limit)

        if not FATAL_ERRORS.intersection(errors.codes):
            branches = None
            try:
                branches = self.classify(word_set, query)
            except UserQueryError as e:
                errors.add(e.code)

            if branches is not None:
                if len(branches):
                    num_results = self.run(search_id, query, word_set, branches)
                else:
                    self.clear_results(search_id)
                page = self.assemble_page(search_id, query, start, limit)

        suggestion = None
        if spell_checker is not None and not word_set.is_empty():
            suggestion = load_suggestions(word_set, spell_checker, query.params())

        outcome = SearchOutcome(
            query=query,
            word_set=word_set,
            errors=errors,
            page=page,
            num_results=num_results,
            token=token,
            backend=self.backend.name,
            suggestion=suggestion,
            execution_time_ms=round((time.time() - start_time) * 1000, 2)
        )

        logger.info(
            f"Search '{query.search}' ({self.backend.name}): {num_results} result(s) "
            f"in {outcome.execution_time_ms:.1f}ms"
        )
        if errors:
            logger.info(f"Search '{query.search}' errors: {errors.codes}")

        return outcome


def run_search(db, raw_params: Dict[str, Any], config: Config = None, **kwargs) -> SearchOutcome:
    """Convenience wrapper: one search with a fresh engine."""
    return SearchEngine.from_config(db, config).search(raw_params, **kwargs)
