"""
Kora Gate SDK - Canonical JSON encoding.

The service recomputes this encoding independently to verify signatures, so
the output must be byte-for-byte reproducible: keys sorted by codepoint at
every level, arrays in their original order, no insignificant whitespace,
UTF-8 output. Floats have no canonical form here and are rejected.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any

from .exceptions import NonCanonicalValueError


def sort_keys_deep(value: Any, path: str = "$") -> Any:
    """
    Return a copy of ``value`` with every mapping rebuilt in sorted key order.

    Raises:
        NonCanonicalValueError: for floats, non-string keys, or unsupported types.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        raise NonCanonicalValueError(
            f"Float at {path} has no canonical encoding; use integer minor units",
            path=path,
            value=value,
        )
    if isinstance(value, Mapping):
        for key in value:
            if not isinstance(key, str):
                raise NonCanonicalValueError(
                    f"Non-string key {key!r} at {path}", path=path, value=key
                )
        return {key: sort_keys_deep(value[key], f"{path}.{key}") for key in sorted(value)}
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [sort_keys_deep(item, f"{path}[{i}]") for i, item in enumerate(value)]
    raise NonCanonicalValueError(
        f"Unsupported type {type(value).__name__} at {path}", path=path, value=value
    )


def canonicalize(data: Mapping[str, Any]) -> bytes:
    """Encode a mapping to canonical JSON bytes."""
    if not isinstance(data, Mapping):
        raise NonCanonicalValueError(
            f"Top-level value must be a mapping, got {type(data).__name__}", value=data
        )
    text = json.dumps(
        sort_keys_deep(data),
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )
    try:
        return text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise NonCanonicalValueError(
            "String contains a lone surrogate and is not encodable as UTF-8",
            value=e.object[e.start : e.end],
        ) from e
