"""
Standard search: no index, every search scans message bodies.
"""

from .base import LongWordsFirst, SearchBackend


class StandardSearch(LongWordsFirst, SearchBackend):
    """
    The fallback backend.

    It offers no indexed-word query, so candidates are found by the
    brute-force body scan.
    """

    name = "standard"
