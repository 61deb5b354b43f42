"""
Dendron Canonical JSON

Wrapper around the canonicaljson library (RFC 8785 subset) used for every
identity computation:
- Sorted object keys, minimal whitespace, UTF-8
- Arrays keep their order (factor order is identity-bearing)

Contract:
- Same factor sequence -> same bytes -> same hash/stamp
- NaN and infinities are rejected (ValueError), unknown types raise TypeError
"""

from typing import Any

import canonicaljson


def canonicalJson(obj: Any) -> str:
    """
    Canonical JSON serialization as text.

    Examples:
        >>> canonicalJson({"b": 2, "a": 1})
        '{"a":1,"b":2}'

        >>> canonicalJson(["acme", "sku-42", "order"])
        '["acme","sku-42","order"]'
    """
    return canonicaljson.encode_canonical_json(obj).decode('utf-8')


def canonicalJsonBytes(obj: Any) -> bytes:
    """Canonical JSON serialization returning bytes directly, for hashing."""
    return canonicaljson.encode_canonical_json(obj)
