"""
Text utility functions for the forum search engine.

Word splitting shared by the tokenizer, the subject index and the custom
word index, HTML special-character handling, LIKE escaping and excerpt
helpers for result display.
"""

import hashlib
import html
import re
from typing import List


# Runs of characters that never belong to a word, plus the encoded forms
# of the HTML special characters.
SEPARATOR_RE = re.compile(
    r"(?:[\x0B\x00\xA0\t\r\s\n(){}\[\]<>!@$%^*.,:+=`~?/\\]+|&(?:amp|lt|gt|quot);)+"
)

NUMERIC_ENTITY_RE = re.compile(r"&#(?:\d{1,7}|x[0-9a-fA-F]{1,6});")

_SPECIALCHARS_DECODE = {
    "&quot;": '"',
    "&#039;": "'",
    "&#39;": "'",
    "&lt;": "<",
    "&gt;": ">",
    "&nbsp;": " ",
    "&amp;": "&",
}
_SPECIALCHARS_RE = re.compile("|".join(re.escape(k) for k in _SPECIALCHARS_DECODE))

WORD_TRIM = "-_'"

BBC_RE = re.compile(r"\[/?[a-zA-Z*][^\]]*\]")


def un_htmlspecialchar(text: str) -> str:
    """
    Decode the HTML special-character entities only.

    Numeric character references are left untouched, unlike
    html.unescape, so they can still be detected afterwards.
    """
    if not text:
        return ""
    return _SPECIALCHARS_RE.sub(lambda m: _SPECIALCHARS_DECODE[m.group(0)], text)


def htmlspecialchars(text: str) -> str:
    """Encode text for safe display inside HTML."""
    return html.escape(text or "", quote=True)


def strip_separators(text: str) -> str:
    """Collapse every run of separator characters into a single space."""
    return SEPARATOR_RE.sub(" ", text or "")


def has_numeric_entity(text: str) -> bool:
    """True if the text contains a numeric character entity such as &#1234;."""
    return NUMERIC_ENTITY_RE.search(text or "") is not None


def text2words(text: str, max_chars: int = 20) -> List[str]:
    """
    Chop a string into lower-case words for the subject index and searches.

    Args:
        text: The string to split.
        max_chars: Maximum letters kept per word, None to keep whole words.

    Returns:
        Unique words in order of first appearance.
    """
    words = strip_separators((text or "").replace("<br />", " "))
    words = un_htmlspecialchar(words.lower())

    result = []
    seen = set()
    for word in words.split(" "):
        word = word.strip(WORD_TRIM)
        if not word:
            continue
        if max_chars is not None:
            word = word[:max_chars]
        if word not in seen:
            seen.add(word)
            result.append(word)

    return result


def word_to_id(word: str, bytes_per_word: int = 4) -> int:
    """
    Map a word onto a fixed-width integer for the custom word index.

    Args:
        word: Lower-case word.
        bytes_per_word: Width of the resulting id in bytes.

    Returns:
        Non-negative integer smaller than 256 ** bytes_per_word.
    """
    digest = hashlib.md5(word.encode("utf-8")).digest()
    return int.from_bytes(digest[:bytes_per_word], "big")


def text2word_ids(text: str, bytes_per_word: int = 4, min_length: int = 1) -> List[int]:
    """Split text like text2words and hash every word of min_length or more, keeping order."""
    ids = []
    seen = set()
    for word in text2words(text, max_chars=None):
        if len(word) < min_length:
            continue
        word_id = word_to_id(word, bytes_per_word)
        if word_id not in seen:
            seen.add(word_id)
            ids.append(word_id)
    return ids


def escape_like(text: str, escape: str = "\\") -> str:
    """Escape LIKE wildcards so the text matches literally."""
    return (
        text.replace(escape, escape + escape)
        .replace("%", escape + "%")
        .replace("_", escape + "_")
    )


def strip_bbc(text: str) -> str:
    """Remove bulletin board code tags, keeping their content."""
    return BBC_RE.sub("", text or "")


def truncate_text(text: str, max_length: int, suffix: str = "...") -> str:
    """
    Truncate text to maximum length with ellipsis.

    Args:
        text: Text to truncate.
        max_length: Maximum length including suffix.
        suffix: String to append when truncated.

    Returns:
        Truncated text or original if within limit.
    """
    if not text or len(text) <= max_length:
        return text

    truncate_at = max_length - len(suffix)
    if truncate_at <= 0:
        return suffix[:max_length]

    truncated = text[:truncate_at]
    last_space = truncated.rfind(" ")

    if last_space > truncate_at * 0.7:
        truncated = truncated[:last_space]

    return truncated + suffix


if __name__ == "__main__":
    print(text2words("Hello, World! [b]Bold[/b] hello-world don't"))
    print(un_htmlspecialchar("&quot;quoted&quot; &amp; &#1234;"))
    print(has_numeric_entity("caf&#233;"))
    print(word_to_id("forum"), text2word_ids("forum search forum"))
    print(truncate_text(strip_bbc("[quote]A long message body that goes on[/quote]"), 20))
