"""Call-site normalization applied to an options bag before validation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Defaults keyed by facade command
RANGE_BY_SCORE_DEFAULTS: dict[str, Any] = {
    "min": "-inf",
    "max": "+inf",
    "offset": 0,
    "limit": 1000,
    "withscores": True,
}
COUNT_DEFAULTS: dict[str, Any] = {"min": "-inf", "max": "+inf"}
LIST_RANGE_DEFAULTS: dict[str, Any] = {"start": 0, "stop": -1}


def with_defaults(options: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *options* with every absent key filled from *defaults*.

    Only absent keys are filled; an explicit ``None`` is kept and left to the
    validator.
    """
    data = dict(options)
    for name, default in defaults.items():
        data.setdefault(name, default)
    return data


def wrap_singular(options: Mapping[str, Any], singular: str, plural: str) -> dict[str, Any]:
    """Return a copy of *options* where a singular option replaces the plural one.

    ``{"field": "a"}`` becomes ``{"field": "a", "fields": ["a"]}``. When both
    are given the singular one wins.
    """
    data = dict(options)
    if singular in data:
        data[plural] = [data[singular]]
    return data


def unpack_pair(options: Mapping[str, Any], singular: str, plural: str) -> dict[str, Any]:
    """Return a copy of *options* where a single ``[score, member]`` pair becomes the pair list."""
    data = dict(options)
    if singular in data:
        pair = data[singular]
        data[plural] = list(pair) if isinstance(pair, (list, tuple)) else [pair]
    return data


def join_sequence(value: Any) -> Any:
    """Join a list/tuple into one comma-delimited string; return other values unchanged.

    Redis stores flat strings only, so list values are flattened the way older
    clients did before rejecting them.

    >>> join_sequence(["CEO", "CTO"])
    'CEO,CTO'
    >>> join_sequence("CEO")
    'CEO'
    """
    if isinstance(value, (list, tuple)):
        return ",".join("" if item is None else str(item) for item in value)
    return value


def join_mapping_values(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *mapping* with every sequence value joined by commas."""
    return {name: join_sequence(value) for name, value in mapping.items()}


def decode_score(raw: Any) -> str:
    """Render a sorted-set score reply as text.

    redis-py hands the raw score bytes to ``score_cast_func`` even with
    ``decode_responses=True``.

    >>> decode_score(b"1459166400")
    '1459166400'
    >>> decode_score(2.5)
    '2.5'
    """
    if isinstance(raw, bytes):
        return raw.decode()
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw)
