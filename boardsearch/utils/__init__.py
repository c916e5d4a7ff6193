"""
Utility module providing shared helper functions.

Contains the word splitting, entity handling and display helpers used
across the application. Depends on nothing inside the package.
"""

from .text_utils import (
    text2words,
    text2word_ids,
    word_to_id,
    un_htmlspecialchar,
    htmlspecialchars,
    strip_separators,
    has_numeric_entity,
    escape_like,
    strip_bbc,
    truncate_text
)

__all__ = [
    "text2words",
    "text2word_ids",
    "word_to_id",
    "un_htmlspecialchar",
    "htmlspecialchars",
    "strip_separators",
    "has_numeric_entity",
    "escape_like",
    "strip_bbc",
    "truncate_text"
]
