"""
Word classifier: builds the OR-branches of a search.

With ALL words there is one branch holding every token; with ANY word
there is one branch per token. Excluded words are appended to every
branch so each branch checks the negative constraint on its own.
"""

from typing import List

from ..core import get_logger, UserQueryError
from ..utils import text2words
from .backends import IndexPreparer, SearchBackend, WordSorter
from .models import BranchSet, OrBranch, SearchType, WordSet

logger = get_logger(__name__)


MAX_INDEXED_WORDS = 7
MAX_SUBJECT_WORDS = 7
MAX_WORDS = 4


class WordClassifier:
    """
    Splits a WordSet into branches and lets the backend prepare indexes.

    Args:
        backend: The active search backend.
        force_index: Every branch must carry at least one indexed word.
    """

    def __init__(self, backend: SearchBackend, force_index: bool = False):
        self.backend = backend
        self.force_index = force_index

    def or_parts(self, word_set: WordSet, searchtype: SearchType) -> List[List[str]]:
        if word_set.tokens and searchtype == SearchType.ALL:
            parts = [list(word_set.tokens)]
        else:
            parts = [[token] for token in word_set.tokens]

        for part in parts:
            part.extend(word_set.excluded_words)

        return parts

    def classify(self, word_set: WordSet, searchtype: SearchType, subject_only: bool = False) -> BranchSet:
        """
        Build the branches of a search.

        Args:
            word_set: Tokenized query.
            searchtype: ALL or ANY.
            subject_only: Only subjects will be searched.

        Returns:
            BranchSet with truncated word lists per branch.

        Raises:
            UserQueryError: "query_not_specific_enough" when index forcing
                leaves a branch without indexed words, or a subject-only
                search has no subject words to look for.
        """
        branch_set = BranchSet()
        parts = self.or_parts(word_set, searchtype)

        if self.force_index and not parts:
            raise UserQueryError("query_not_specific_enough", query=" ".join(word_set.tokens))

        if isinstance(self.backend, WordSorter):
            self.backend.set_excluded_words(word_set.excluded_words)

        for part in parts:
            branch = OrBranch()

            if isinstance(self.backend, WordSorter):
                part = sorted(part, key=self.backend.search_sort)

            for word in part:
                is_excluded = word_set.is_excluded(word)
                branch.all_words.append(word)
                subject_words = text2words(word)

                if not is_excluded or len(subject_words) == 1:
                    branch.subject_words.extend(subject_words)

                if isinstance(self.backend, IndexPreparer):
                    self.backend.prepare_indexes(word, branch, branch_set.excluded_index_words, is_excluded)
                else:
                    branch.complex_words.append(word)

            if self.force_index and not branch.indexed_words:
                raise UserQueryError("query_not_specific_enough", query=" ".join(part))

            if subject_only and not branch.subject_words and not word_set.excluded_subject_words:
                raise UserQueryError("query_not_specific_enough", query=" ".join(part))

            branch.indexed_words = branch.indexed_words[:MAX_INDEXED_WORDS]
            branch.subject_words = branch.subject_words[:MAX_SUBJECT_WORDS]
            branch.words = branch.words[:MAX_WORDS]

            branch_set.branches.append(branch)

        logger.debug(f"Classified {len(branch_set)} branch(es) with backend '{self.backend.name}'")

        return branch_set
