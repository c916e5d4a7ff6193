"""
"Did you mean" suggestions for misspelled queries.

The spelling service itself lives outside the search core; anything with
check() and suggest() can be plugged in.
"""

import re
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..core import get_logger
from ..utils import htmlspecialchars
from .codec import encode_params
from .models import Suggestion, WordSet

logger = get_logger(__name__)


PLAIN_WORD_RE = re.compile(r"^\w+$")
DIGIT_RE = re.compile(r"\d")

DEFAULT_HIGHLIGHT = "<em>{word}</em>"


class SpellChecker(Protocol):
    """A spelling service."""

    def check(self, word: str) -> bool:
        ...

    def suggest(self, word: str) -> List[str]:
        ...


def _quote(phrase: str) -> str:
    return f'"{phrase}"'


def load_suggestions(
    word_set: WordSet,
    checker: SpellChecker,
    params: Dict[str, Any],
    censor: Optional[Callable[[str], str]] = None,
    highlight: str = DEFAULT_HIGHLIGHT
) -> Optional[Suggestion]:
    """
    Suggest a corrected query.

    Phrases and words containing digits are kept as they are. For every
    misspelled word the first suggestion that differs from it and that the
    censor leaves alone replaces it.

    Args:
        word_set: Tokenized query.
        checker: Spelling service.
        params: Parameter map of the current search, for the new token.
        censor: Optional word censor; suggestions it would change are skipped.
        highlight: Format used to mark corrected words in the display string.

    Returns:
        Suggestion, or None when every word is spelled correctly.
    """
    search_words: List[str] = []
    display_words: List[str] = []
    did_you_mean = False

    for token in word_set.tokens:
        if not PLAIN_WORD_RE.match(token):
            search_words.append(_quote(token))
            display_words.append(htmlspecialchars(_quote(token)))
            continue

        if DIGIT_RE.search(token) or checker.check(token):
            search_words.append(token)
            display_words.append(htmlspecialchars(token))
            continue

        replacement = None
        for suggestion in checker.suggest(token):
            if suggestion.lower() == token.lower():
                continue
            if censor is not None and censor(suggestion) != suggestion:
                continue
            replacement = suggestion
            break

        if replacement is None:
            search_words.append(token)
            display_words.append(htmlspecialchars(token))
            continue

        did_you_mean = True
        search_words.append(replacement)
        display_words.append(highlight.format(word=htmlspecialchars(replacement)))

    if not did_you_mean:
        return None

    for word in word_set.excluded_words:
        excluded = "-" + (word if PLAIN_WORD_RE.match(word) else _quote(word))
        search_words.append(excluded)
        display_words.append(htmlspecialchars(excluded))

    search = " ".join(search_words)
    logger.debug(f"Suggesting '{search}' for '{' '.join(word_set.tokens)}'")

    return Suggestion(
        display=" ".join(display_words),
        search=search,
        token=encode_params({**params, "search": search})
    )
