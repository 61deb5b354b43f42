"""
Dendron Mold Contract

A mold is the schema/storage descriptor bound to an engine. The core only
consumes these optional members:
- model: opaque storage handle
- factor: ordered mapping (or sequence) of identity-bearing data paths
- restrict(data) -> data: sanitizer applied before factor resolution
- attachEngine(engine): back-reference hook, invoked at most once per mold
- engine: the back-reference itself, set by attachEngine

Molds may be plain mappings or objects; moldMember() reads either.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class Mold(Protocol):
    """Structural contract for molds exposing attributes."""
    model: Any
    factor: Mapping[str, Any]


def moldMember(mold: Any, key: str) -> Any:
    """Read an optional mold member from a mapping or an object."""
    if mold is None:
        return None
    if isinstance(mold, Mapping):
        return mold.get(key)
    return getattr(mold, key, None)


def moldFactorPoints(mold: Any) -> List[str]:
    """Declared factor point names, in declared order."""
    factor = moldMember(mold, 'factor')
    if isinstance(factor, Mapping):
        return list(factor.keys())
    if isinstance(factor, (list, tuple)):
        return [point for point in factor if isinstance(point, str)]
    return []


def isEmptyMold(mold: Any) -> bool:
    if mold is None:
        return True
    if isinstance(mold, Mapping):
        return not mold
    return False


@dataclass
class SchemaMold:
    """
    Minimal concrete mold.

    Attributes:
        model: Storage handle passed through to engines
        factor: Ordered factor point declaration, e.g. {"merchant": "string", "sku": "string"}
        restrictor: Optional sanitizer used by restrict()
    """
    model: Any = None
    factor: Dict[str, Any] = field(default_factory=dict)
    restrictor: Optional[Callable[[Dict[str, Any]], Dict[str, Any]]] = None
    engine: Any = None

    def restrict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if self.restrictor is None:
            return data
        return self.restrictor(data)

    def attachEngine(self, engine: Any) -> None:
        if self.engine is None:
            self.engine = engine
