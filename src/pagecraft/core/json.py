"""JSON codec for saved documents, endpoint bodies and coerced bindings.

Decoding goes through msgspec; encoding through orjson, which also accepts
non-string dict keys found in hand-edited property maps. Values orjson
rejects (integers beyond 64 bits) fall back to the stdlib encoder.
"""

from typing import Any
import json

import msgspec
import orjson

_decoder = msgspec.json.Decoder()

_ORJSON_OPTIONS = orjson.OPT_NON_STR_KEYS


class JSONParseError(Exception):
    """Text was not valid JSON, or was nested too deeply."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


def parse_json_value(text: str | bytes) -> Any:
    """
    Decode any JSON value.

    Raises:
        JSONParseError: If the text is not valid JSON
    """
    try:
        return _decoder.decode(text.encode("utf-8") if isinstance(text, str) else text)
    except msgspec.DecodeError as e:
        raise JSONParseError(f"Invalid JSON: {e}", e) from e


def safe_json_dumps(obj: Any, pretty: bool = False) -> str:
    """
    Encode to a JSON string.

    Raises:
        TypeError: If the value holds something JSON cannot represent
    """
    options = _ORJSON_OPTIONS | orjson.OPT_INDENT_2 if pretty else _ORJSON_OPTIONS
    try:
        return orjson.dumps(obj, option=options).decode("utf-8")
    except orjson.JSONEncodeError:
        return json.dumps(obj, indent=2 if pretty else None)


def validate_json_depth(obj: Any, max_depth: int = 20) -> None:
    """
    Reject documents nested deeper than max_depth.

    Raises:
        JSONParseError: If depth exceeds limit
    """
    stack = [(obj, 0)]
    while stack:
        value, depth = stack.pop()
        if depth > max_depth:
            raise JSONParseError(f"JSON nesting depth {depth} exceeds maximum {max_depth}")
        if isinstance(value, dict):
            stack.extend((child, depth + 1) for child in value.values())
        elif isinstance(value, list):
            stack.extend((child, depth + 1) for child in value)
