"""Stable serialization and content digests.

The single place cache keys and filter signatures are derived. Two inputs
that differ only in mapping key order always produce the same digest.
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


def stable_sort(value: Any) -> Any:
    """
    Recursively rebuild a value with every mapping's keys in sorted order.

    Pydantic models are dumped by alias first; tuples become lists and sets
    become sorted lists. List order is preserved.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True)
    if isinstance(value, Mapping):
        return {str(k): stable_sort(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [stable_sort(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(stable_sort(v) for v in value)
    return value


def stable_json(value: Any) -> str:
    """Compact JSON of ``stable_sort(value)``."""
    return json.dumps(stable_sort(value), separators=(",", ":"), ensure_ascii=False, default=str)


def sha256_hex(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def generate_cache_key(params: Mapping[str, Any]) -> str:
    """
    Derive the cache key for a set of request parameters.

    Args:
        params: Key material (vertical, answers, loss summary, versions,
            model and parameters, locale, KB filter signature)

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    return sha256_hex(stable_json(params))
