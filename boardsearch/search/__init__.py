"""
Search module: query parsing, candidate staging and relevance ranking.

Provides the tokenizer, the word classifier, the pluggable backends, the
staging, scoring and page assembly stages, the parameter codec and the
SearchEngine tying them together.
"""

from .models import (
    SearchType,
    SearchQuery,
    WordSet,
    OrBranch,
    BranchSet,
    SearchErrors,
    StagingResult,
    ResultRow,
    MessageResult,
    ResultPage,
    Suggestion,
    SearchOutcome
)
from .tokenizer import QueryTokenizer, tokenize
from .classifier import WordClassifier
from .backends import BACKENDS, find_search_backend, SearchBackend
from .staging import StagingArea, CandidateStager, UniqueInserter
from .weights import WeightProfile, DEFAULT_WEIGHTS
from .scorer import RelevanceScorer
from .assembler import ResultAssembler
from .codec import encode_params, decode_params
from .query_builder import QueryBuilder, build_query
from .suggestions import SpellChecker, load_suggestions
from .engine import SearchEngine, run_search

__all__ = [
    "SearchType",
    "SearchQuery",
    "WordSet",
    "OrBranch",
    "BranchSet",
    "SearchErrors",
    "StagingResult",
    "ResultRow",
    "MessageResult",
    "ResultPage",
    "Suggestion",
    "SearchOutcome",
    "QueryTokenizer",
    "tokenize",
    "WordClassifier",
    "BACKENDS",
    "find_search_backend",
    "SearchBackend",
    "StagingArea",
    "CandidateStager",
    "UniqueInserter",
    "WeightProfile",
    "DEFAULT_WEIGHTS",
    "RelevanceScorer",
    "ResultAssembler",
    "encode_params",
    "decode_params",
    "QueryBuilder",
    "build_query",
    "SpellChecker",
    "load_suggestions",
    "SearchEngine",
    "run_search"
]
