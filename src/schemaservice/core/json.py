from __future__ import annotations

import platform
import re
from json import JSONDecodeError as JSONDecodeError
from typing import Any

if platform.python_implementation() == "PyPy":
    from json import dumps as _dumps
    from json import loads as _loads

    def dumps(obj: object, *, sort_keys: bool = False, indent: bool = False) -> str:
        return _dumps(obj, sort_keys=sort_keys, indent=2 if indent else None)
else:
    import orjson

    def dumps(obj: object, *, sort_keys: bool = False, indent: bool = False) -> str:
        option = 0
        if sort_keys:
            option |= orjson.OPT_SORT_KEYS
        if indent:
            option |= orjson.OPT_INDENT_2
        return orjson.dumps(obj, option=option or None).decode("utf-8")

    _loads = orjson.loads


# Strings are matched first so that comment markers and commas inside them are kept intact
_JSONC_TOKENS = re.compile(
    r"""
    (?P<string>"(?:[^"\\]|\\.)*")
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<trailing_comma>,(?=(?:\s|//[^\n]*|/\*.*?\*/)*[}\]]))
    """,
    re.VERBOSE | re.DOTALL,
)


def _blank(match: re.Match[str]) -> str:
    if match.lastgroup == "string":
        return match.group(0)
    # Keep the line structure and length, so decoding errors still point to the original offsets
    return re.sub(r"[^\n]", " ", match.group(0))


def strip_jsonc(text: str) -> str:
    """Replace comments and trailing commas with whitespace."""
    return _JSONC_TOKENS.sub(_blank, text)


def loads(text: str | bytes) -> Any:
    """Decode JSON that may contain comments and trailing commas."""
    if isinstance(text, bytes):
        text = text.decode("utf-8")
    return _loads(strip_jsonc(text))


def get_error_offset(error: JSONDecodeError) -> int:
    return getattr(error, "pos", 0) or 0
