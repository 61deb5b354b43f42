"""
Dendron Identity Computation

Pure functions computing a document's identity artifacts from its factors.

Hash Construction Contract:
  SHA512(canonicalJson(compact(factor + [difference])))
  - factor order is preserved (never sorted): reordering changes the hash
  - falsy entries (None, "", 0, False, NaN) are dropped after appending difference
  - rendered as 128 lowercase hex characters
  - the caller's factor sequence is never mutated

Stamp Construction Contract:
  stamp = base64url(canonicalJson(factor)) over a salt-shuffled alphabet, no padding
  - deterministic for equal (factor, salt), path-safe, reversible with decodeStamp()
  short = 6 symbols over a salt-shuffled 68-symbol alphabet, from SHA512 of the same bytes
  - lossy and collision-tolerant, for display only

Salt Derivation (sodium):
  configured default salt for the engine name, else
  SHA256(canonicalJson(SODIUM_TABLE + [name])) as hex
"""

import base64
import binascii
import hashlib
import json
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from dendron import config
from .canonical_json import canonicalJsonBytes
from .diagnostics import warning
from .errors import Result, ValidationError
from .factor import isFactorValue, isSequence

BASE64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

SHORT_ALPHABET = (
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "0123456789"
    "?!@$%#&*+=<>"
)
SHORT_LENGTH = 6

SODIUM_TABLE = (
    0x0aaa, 0x0bbb, 0x0bbb, 0x0ccc, 0x0ddd,
    0x0eee, 0x0fff, 0x0fad, 0x0bad, 0x0bed,
    0x0fed, 0x0abe, 0xdead, 0xbeef, 0xdeaf,
    0xcafe, 0xfeed, 0xfade, 0xbead, 0xdeed,
    0xaaaa, 0xbbbb, 0xcccc, 0xdddd, 0xffff
)


@dataclass(frozen=True)
class Stamp:
    """Stamp and short code of one factor sequence."""
    stamp: str
    short: str


def checkFactor(factor: Any, action: str) -> Optional[Result]:
    """Return a failure Result if factor is not a non-empty sequence, else None."""
    if factor is None:
        return warning("no factor given", ValidationError).remind(f"cannot create {action}").fail()
    if not isSequence(factor):
        return (warning("invalid factor", ValidationError, factorType=type(factor).__name__)
                .remind(f"cannot create {action}").fail())
    if not len(factor):
        return warning("empty factor", ValidationError).remind(f"cannot create {action}").fail()
    return None


def _encode(values: List[Any], action: str) -> Result:
    try:
        return Result.success(canonicalJsonBytes(values))
    except (TypeError, ValueError) as exc:
        return (warning("unserializable factor", ValidationError, errorClass=type(exc).__name__, errorMsg=str(exc))
                .remind(f"cannot create {action}").fail())


def computeHash(factor: Sequence[Any], difference: Optional[str] = None) -> Result:
    """
    Compute the content hash of a factor sequence.

    Args:
        factor: Non-empty ordered factor values
        difference: Cross-engine namespace appended before hashing

    Returns:
        Result with 128-character lowercase hex SHA-512 digest
    """
    failure = checkFactor(factor, "hash")
    if failure:
        return failure

    values = list(factor)
    if difference:
        values.append(difference)

    values = [value for value in values if value and isFactorValue(value)]

    encoded = _encode(values, "hash")
    if not encoded.ok:
        return encoded

    return Result.success(hashlib.sha512(encoded.value).hexdigest())


def shuffleAlphabet(alphabet: str, salt: Optional[str]) -> str:
    """Deterministic salt-keyed permutation of an alphabet (identity for empty salt)."""
    if not salt:
        return alphabet

    symbols = list(alphabet)
    index = 0
    total = 0
    for position in range(len(symbols) - 1, 0, -1):
        code = ord(salt[index % len(salt)])
        total += code
        swap = (code + index + total) % position
        symbols[position], symbols[swap] = symbols[swap], symbols[position]
        index += 1

    return ''.join(symbols)


def shortCode(payload: bytes, salt: Optional[str] = None, length: int = SHORT_LENGTH) -> str:
    """Fixed-length display code over the salt-shuffled short alphabet."""
    alphabet = shuffleAlphabet(SHORT_ALPHABET, salt)
    base = len(alphabet)

    number = int.from_bytes(hashlib.sha512(payload).digest(), 'big') % (base ** length)

    symbols = []
    for _ in range(length):
        number, remainder = divmod(number, base)
        symbols.append(alphabet[remainder])

    return ''.join(reversed(symbols))


def computeStamp(factor: Sequence[Any], salt: Optional[str] = None) -> Result:
    """
    Compute the stamp and short code of a factor sequence.

    Returns:
        Result with Stamp(stamp, short)
    """
    failure = checkFactor(factor, "stamp")
    if failure:
        return failure

    encoded = _encode(list(factor), "stamp")
    if not encoded.ok:
        return encoded

    raw = base64.urlsafe_b64encode(encoded.value).decode('ascii').rstrip('=')
    stamp = raw.translate(str.maketrans(BASE64URL_ALPHABET, shuffleAlphabet(BASE64URL_ALPHABET, salt)))

    return Result.success(Stamp(stamp=stamp, short=shortCode(encoded.value, salt)))


def decodeStamp(stamp: str, salt: Optional[str] = None) -> Result:
    """
    Recover the factor sequence from a stamp made with the same salt.

    Returns:
        Result with the factor list
    """
    raw = stamp.translate(str.maketrans(shuffleAlphabet(BASE64URL_ALPHABET, salt), BASE64URL_ALPHABET))
    raw += '=' * (-len(raw) % 4)

    try:
        factor = json.loads(base64.urlsafe_b64decode(raw.encode('ascii')))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        return (warning("invalid stamp", ValidationError, errorClass=type(exc).__name__)
                .remind("cannot decode stamp").fail())

    if not isinstance(factor, list):
        return warning("invalid stamp", ValidationError).remind("stamp does not encode a factor").fail()

    return Result.success(factor)


def sodium(name: Optional[str]) -> str:
    """Default salt for an engine name: configured salt, else derived from the entropy table."""
    configured = config.getSalt(name)
    if configured is not None:
        return configured

    return hashlib.sha256(canonicalJsonBytes([*SODIUM_TABLE, name or ""])).hexdigest()
