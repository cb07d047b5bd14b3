"""Field shape contract: which value shape each option name accepts.

The rule for a field depends only on the field's name, never on the command
using it, so ``key`` is checked the same way for ``get`` and for ``zadd``.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any


class FieldRule(str, Enum):
    """Closed set of value shapes an option can be checked against."""

    STRING = "string"
    INTEGER = "integer"
    STRING_OR_INTEGER = "string_or_integer"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    INTERLEAVED_PAIRS = "interleaved_pairs"  # [score, member, score, member, ...]


FIELD_RULES: dict[str, FieldRule] = {
    "key": FieldRule.STRING,
    "field": FieldRule.STRING,
    "member": FieldRule.STRING,
    "source": FieldRule.STRING,
    "destination": FieldRule.STRING,
    "score": FieldRule.INTEGER,
    "offset": FieldRule.INTEGER,
    "limit": FieldRule.INTEGER,
    "count": FieldRule.INTEGER,
    "index": FieldRule.INTEGER,
    "start": FieldRule.INTEGER,
    "stop": FieldRule.INTEGER,
    "ex": FieldRule.INTEGER,
    "min": FieldRule.STRING_OR_INTEGER,
    "max": FieldRule.STRING_OR_INTEGER,
    "value": FieldRule.STRING_OR_INTEGER,
    "keys": FieldRule.SEQUENCE,
    "fields": FieldRule.SEQUENCE,
    "members": FieldRule.SEQUENCE,
    "hash": FieldRule.MAPPING,
    "scomembers": FieldRule.INTERLEAVED_PAIRS,
}


class _Missing:
    """Placeholder for an option that was not supplied at all."""

    def __repr__(self) -> str:
        return "undefined"


MISSING: Any = _Missing()

# Optional sign followed by at least one ASCII digit, after leading whitespace.
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?[0-9]+)")


def parse_int(value: Any) -> int | None:
    """Parse *value* as a base-10 integer, or return ``None`` if it is not one.

    Strings are read up to the first non-digit, so ``"42abc"`` parses as 42.
    Finite floats are truncated. Booleans, containers and ``None`` never parse.

    >>> parse_int("42")
    42
    >>> parse_int(" -7px")
    -7
    >>> parse_int("abc") is None
    True
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _INT_PREFIX_RE.match(value)
        return int(match.group(1)) if match else None
    return None


def render_value(value: Any) -> str:
    """Render an offered option value for an error message.

    >>> render_value("abc")
    '"abc"'
    >>> render_value([1, "x"])
    '[1,"x"]'
    >>> render_value(MISSING)
    'undefined'
    """
    if value is MISSING:
        return "undefined"
    if isinstance(value, float) and not math.isfinite(value):
        return "null"
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError):
        return repr(value)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_integer(value: Any) -> bool:
    return parse_int(value) is not None


def is_string_or_integer(value: Any) -> bool:
    return is_string(value) or is_integer(value)


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def interleaved_violation(value: list[Any] | tuple[Any, ...]) -> int | None:
    """Return the index of the first element breaking the score/member cycle.

    Even positions must be integer-like scores, odd positions string members.
    Returns ``None`` when every element fits.
    """
    for idx, item in enumerate(value):
        if idx % 2 == 0 and not is_integer(item):
            return idx
        if idx % 2 != 0 and not is_string(item):
            return idx
    return None


RULE_CHECKS: dict[FieldRule, Callable[[Any], bool]] = {
    FieldRule.STRING: is_string,
    FieldRule.INTEGER: is_integer,
    FieldRule.STRING_OR_INTEGER: is_string_or_integer,
    FieldRule.SEQUENCE: is_sequence,
    FieldRule.MAPPING: is_mapping,
    FieldRule.INTERLEAVED_PAIRS: is_sequence,
}
