"""
Search parameter codec.

Packs the parameter map of a search into one URL-safe token so searches
can be paginated, shared and bookmarked:

    key|'|value pairs joined by |"|, with "%" and "|" percent-escaped
    inside keys and values
    -> marker byte ("z" zlib-compressed, "r" raw) + payload
    -> base64 with +/= replaced by -_.

Values of the known search parameters are stored as plain text and get
their type back from the key. Any other value is stored as JSON.
"""

import base64
import binascii
import json
import re
import zlib
from typing import Any, Dict

from ..core import get_logger

logger = get_logger(__name__)


PAIR_SEPARATOR = '|"|'
KEY_VALUE_SEPARATOR = "|'|"

COMPRESSED = b"z"
RAW = b"r"

STR_KEYS = frozenset({"search", "userspec", "sort", "sort_dir"})
INT_KEYS = frozenset({"topic", "minage", "maxage", "searchtype", "advanced"})
BOOL_KEYS = frozenset({"show_complete", "subject_only"})
LIST_KEYS = frozenset({"brd"})

_ESCAPES = {"%": "%25", "|": "%7C"}
_UNESCAPE_RE = re.compile(r"%(25|7C)")

_TO_URL = str.maketrans("+/=", "-_.")
_FROM_URL = str.maketrans("-_.", "+/=")


def _escape(text: str) -> str:
    return "".join(_ESCAPES.get(char, char) for char in text)


def _unescape(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda match: "%" if match.group(1) == "25" else "|", text)


def _encode_value(key: str, value: Any) -> str:
    if key in LIST_KEYS:
        return ",".join(str(int(item)) for item in value)
    if key in BOOL_KEYS or key in INT_KEYS:
        return str(int(value))
    if key in STR_KEYS:
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def _decode_value(key: str, value: str) -> Any:
    if key in LIST_KEYS:
        return [int(item) for item in value.split(",") if item != ""]
    if key in BOOL_KEYS:
        return value not in ("", "0")
    if key in INT_KEYS:
        return int(value) if value != "" else 0
    if key in STR_KEYS:
        return value
    return json.loads(value)


def encode_params(params: Dict[str, Any]) -> str:
    """
    Encode a parameter map into a URL-safe token.

    Args:
        params: Search parameters; "brd" holds a list of board ids. Values
            of other keys must be JSON serializable.

    Returns:
        The token, "" for an empty map.
    """
    if not params:
        return ""

    pairs = [
        f"{_escape(str(key))}{KEY_VALUE_SEPARATOR}{_escape(_encode_value(key, value))}"
        for key, value in params.items()
    ]
    raw = PAIR_SEPARATOR.join(pairs).encode("utf-8")

    try:
        compressed = zlib.compress(raw)
    except zlib.error as e:
        logger.warning(f"Compression failed, storing raw parameters: {e}")
        compressed = None

    if compressed is not None and len(compressed) < len(raw):
        payload = COMPRESSED + compressed
    else:
        payload = RAW + raw

    return base64.b64encode(payload).decode("ascii").translate(_TO_URL)


def decode_params(token: str) -> Dict[str, Any]:
    """
    Decode a token produced by encode_params.

    Args:
        token: The URL-safe token.

    Returns:
        The parameter map, {} when the token is not a valid encoding.
    """
    if not token:
        return {}

    try:
        payload = base64.b64decode(token.translate(_FROM_URL).encode("ascii"), validate=True)
    except (binascii.Error, ValueError, UnicodeEncodeError) as e:
        logger.warning(f"Undecodable search token: {e}")
        return {}

    marker, body = payload[:1], payload[1:]
    try:
        if marker == COMPRESSED:
            body = zlib.decompress(body)
        elif marker != RAW:
            logger.warning(f"Unknown search token marker {marker!r}")
            return {}
        text = body.decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as e:
        logger.warning(f"Corrupt search token: {e}")
        return {}

    params: Dict[str, Any] = {}
    for pair in text.split(PAIR_SEPARATOR):
        key, separator, value = pair.partition(KEY_VALUE_SEPARATOR)
        if not key or not separator:
            logger.warning(f"Unparseable search token pair {pair!r}")
            return {}
        key, value = _unescape(key), _unescape(value)
        try:
            params[key] = _decode_value(key, value)
        except ValueError:
            logger.warning(f"Invalid value for search parameter {key!r}: {value!r}")
            return {}

    return params


if __name__ == "__main__":
    params = {"search": 'hello |"| world -spam', "brd": [1, 4, 7], "show_complete": True, "start": 30}
    token = encode_params(params)
    print(f"Token: {token}")
    print(f"Decoded: {decode_params(token)}")
    print(f"Garbage: {decode_params('not*a*token')}")
