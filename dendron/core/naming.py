"""
Dendron Naming Transforms

Fixed casing transforms shared by engine composition, method resolution
and the global salt/mold tables.

    shardize("MerchantCompute")     -> "merchant-compute"   (canonical name)
    llamalize("merchant-compute")   -> "merchantCompute"    (label, call names)
    llamalize("merchant-compute", capitalize=True) -> "MerchantCompute"  (alias)
    titlelize("merchant-compute")   -> "Merchant Compute"   (title)
    cobralize("merchant-compute")   -> "merchant_compute"   (global keys)
"""

import re
from typing import Any, List

_ACRONYM_BOUNDARY = re.compile(r'([A-Z]+)([A-Z][a-z])')
_CASE_BOUNDARY = re.compile(r'([a-z0-9])([A-Z])')
_SEPARATOR = re.compile(r'[^0-9A-Za-z]+')


def shardize(text: Any) -> str:
    """Canonical dash-separated lower-case form of a name."""
    if text is None:
        return ""
    text = str(text)
    text = _ACRONYM_BOUNDARY.sub(r'\1-\2', text)
    text = _CASE_BOUNDARY.sub(r'\1-\2', text)
    return _SEPARATOR.sub('-', text).strip('-').lower()


def tokenize(text: Any) -> List[str]:
    """Word tokens of a name in canonical form; never contains empty tokens."""
    return [token for token in shardize(text).split('-') if token]


def llamalize(text: Any, capitalize: bool = False) -> str:
    tokens = tokenize(text)
    if not tokens:
        return ""
    words = [token[0].upper() + token[1:] for token in tokens]
    if not capitalize:
        words[0] = tokens[0]
    return ''.join(words)


def titlelize(text: Any) -> str:
    return ' '.join(token[0].upper() + token[1:] for token in tokenize(text))


def cobralize(text: Any) -> str:
    return '_'.join(tokenize(text))
