"""
Query tokenizer for forum searches.

Turns the raw search string into required words and phrases, excluded
words and phrases, dropping blacklisted and too-short terms.
"""

import re
from typing import Iterable, List, Tuple

from ..core import get_logger
from ..core.config_loader import DEFAULT_BLACKLISTED_WORDS
from ..utils import has_numeric_entity, strip_separators, text2words, un_htmlspecialchar
from .models import WordSet

logger = get_logger(__name__)


# Quoted phrase with an optional leading minus, standing alone between spaces
PHRASE_RE = re.compile(r'(?:^|(?<=\s))(-?)"([^"]+)"(?=\s|$)')

TOKEN_TRIM = "\"-_' "

MAX_TOKENS = 10
MIN_TOKEN_LENGTH = 2


class QueryTokenizer:
    """
    Splits search strings into a WordSet.

    The tokenizer is a pure function of its input, the blacklist and the
    simple-fulltext flag.
    """

    def __init__(self, blacklisted_words: Iterable[str] = None, simple_fulltext: bool = False):
        if blacklisted_words is None:
            blacklisted_words = DEFAULT_BLACKLISTED_WORDS
        self.blacklisted_words = frozenset(word.lower() for word in blacklisted_words)
        self.simple_fulltext = simple_fulltext

    def tokenize(self, text: str) -> WordSet:
        """
        Tokenize a raw search string.

        Args:
            text: The query as typed.

        Returns:
            WordSet with surviving tokens and the exclusion lists.
        """
        stripped = strip_separators(text or "")
        stripped = un_htmlspecialchar(stripped.lower())

        if self.simple_fulltext:
            stripped = stripped.replace('"', "")

        word_set = WordSet(no_regexp=has_numeric_entity(stripped))

        phrases, excluded = self._extract_phrases(stripped)
        remainder = PHRASE_RE.sub(" ", stripped)
        words, excluded_words = self._extract_words(remainder.split(" "))
        excluded.extend(excluded_words)

        for word in excluded:
            if word not in word_set.excluded_words:
                word_set.excluded_words.append(word)

        excluded_set = set(word_set.excluded_words)
        for token in phrases + words:
            token = token.strip(TOKEN_TRIM)
            if not token:
                continue
            if token in self.blacklisted_words:
                word_set.found_blacklisted_words = True
                continue
            if len(token) < MIN_TOKEN_LENGTH:
                word_set.ignored.append(token)
                continue
            # A word both required and excluded stays excluded only
            if token in excluded_set or token in word_set.tokens:
                continue
            word_set.tokens.append(token)

        word_set.tokens = word_set.tokens[:MAX_TOKENS]

        for word in word_set.excluded_words:
            subject_words = text2words(word)
            if len(subject_words) == 1:
                for subject_word in subject_words:
                    if subject_word not in word_set.excluded_subject_words:
                        word_set.excluded_subject_words.append(subject_word)
            else:
                word_set.excluded_phrases.append(word)

        logger.debug(
            f"Tokenized '{text}': tokens={word_set.tokens} excluded={word_set.excluded_words}"
        )

        return word_set

    def _extract_phrases(self, text: str) -> Tuple[List[str], List[str]]:
        """Quoted phrases, split into included and excluded ones."""
        phrases = []
        excluded = []

        for match in PHRASE_RE.finditer(text):
            minus, phrase = match.group(1), match.group(2)
            if minus == "-":
                phrase = phrase.strip(TOKEN_TRIM)
                if phrase and phrase not in self.blacklisted_words:
                    excluded.append(phrase)
            else:
                phrases.append(phrase)

        return phrases, excluded

    def _extract_words(self, words: List[str]) -> Tuple[List[str], List[str]]:
        """Plain words, split into included and excluded (-word) ones."""
        included = []
        excluded = []

        for word in words:
            if word.strip().startswith("-"):
                word = word.strip(TOKEN_TRIM)
                if word and word not in self.blacklisted_words:
                    excluded.append(word)
            else:
                included.append(word)

        return included, excluded


def tokenize(text: str, blacklisted_words: Iterable[str] = None, simple_fulltext: bool = False) -> WordSet:
    """Convenience wrapper around QueryTokenizer.tokenize."""
    return QueryTokenizer(blacklisted_words, simple_fulltext).tokenize(text)


if __name__ == "__main__":
    tokenizer = QueryTokenizer()

    for q in [
        "hello world -spam",
        '"exact phrase" -"not this" forum',
        "the is it",
        "a b c search",
        "caf&#233; menu",
    ]:
        ws = tokenizer.tokenize(q)
        print(f"  '{q}' -> tokens={ws.tokens} excluded={ws.excluded_words} "
              f"blacklisted={ws.found_blacklisted_words} no_regexp={ws.no_regexp}")
