"""
Dendron Option Bag

In-flight document-processing context handed to every engine operation:
- data: the document payload
- factor: ordered canonical identity values
- identity: hash, reference, stamp, short, plus caller-supplied code and path
- salt: per-request salt override
- extra: any other keyed payload (e.g. data under the engine label)

The identity reference is write-once: the first non-empty value sticks,
later writes are silently ignored.
"""

from typing import Any, Dict, List, Optional

from .diagnostics import fatal
from .errors import ValidationError

_FIELDS = ('data', 'factor', 'identity', 'salt', 'list', 'element', 'array')
_IDENTITY_KEYS = ('hash', 'reference', 'stamp', 'short', 'code', 'path')


class Identity:
    """Identity artifacts of one document. `reference` transitions unset -> set exactly once."""

    def __init__(self, hash: Optional[str] = None, reference: Optional[str] = None,
                 stamp: Optional[str] = None, short: Optional[str] = None,
                 code: Optional[str] = None, path: Optional[str] = None):
        self.hash = hash
        self.stamp = stamp
        self.short = short
        self.code = code
        self.path = path
        self._reference: Optional[str] = None
        self.reference = reference

    @property
    def reference(self) -> Optional[str]:
        return self._reference

    @reference.setter
    def reference(self, value: Optional[str]) -> None:
        if self._reference is None and value:
            self._reference = value

    @property
    def frozen(self) -> bool:
        return self._reference is not None

    def toDict(self) -> Dict[str, Optional[str]]:
        return {
            "hash": self.hash,
            "reference": self.reference,
            "stamp": self.stamp,
            "short": self.short,
            "code": self.code,
            "path": self.path
        }

    def __repr__(self) -> str:
        return f"Identity({self.toDict()})"


class Option:
    """Option bag for one engine operation."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, factor: Optional[List[Any]] = None,
                 identity: Optional[Identity] = None, salt: Optional[str] = None, **extra: Any):
        self.data: Dict[str, Any] = data if data is not None else {}
        self.factor: List[Any] = factor if factor is not None else []
        self.identity: Identity = identity if identity is not None else Identity()
        self.salt = salt
        self.list: List[Any] = []
        self.element: List[Dict[str, Any]] = []
        self.array: Dict[str, List[Any]] = {}
        self.extra: Dict[str, Any] = extra
        self._frozen = False

    @staticmethod
    def fromValue(value: Any) -> 'Option':
        """Coerce a mapping (or None) into an Option; Options pass through."""
        if isinstance(value, Option):
            return value
        if value is None:
            return Option()
        value = dict(value)
        identity = value.pop('identity', None)
        if isinstance(identity, dict):
            identity = Identity(**{key: identity.get(key) for key in _IDENTITY_KEYS})
        collections = {key: value.pop(key) for key in ('list', 'element', 'array') if key in value}
        option = Option(
            data=value.pop('data', None),
            factor=value.pop('factor', None),
            identity=identity,
            salt=value.pop('salt', None),
            **value
        )
        for key, collection in collections.items():
            if collection is not None:
                setattr(option, key, collection)
        return option

    def freeze(self) -> 'Option':
        """Make the option read-only (used for root engines)."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, key: str, default: Any = None) -> Any:
        if key in _FIELDS:
            value = getattr(self, key)
            return default if value is None else value
        return self.extra.get(key, default)

    def set(self, key: str, value: Any) -> bool:
        """
        Set a field.

        Returns:
            False if the option is frozen (root engine template), True otherwise
        """
        if self._frozen:
            fatal("root engine option is read-only", ValidationError, key=key).prompt()
            return False
        if key in _FIELDS:
            setattr(self, key, value)
        else:
            self.extra[key] = value
        return True

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __contains__(self, key: str) -> bool:
        return key in _FIELDS or key in self.extra
