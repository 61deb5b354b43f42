"""
Dendron Factor Resolver

Extracts the ordered, canonical set of identity-bearing values from a document.

Contract:
- Factor order follows the mold's declared order (hashing is order-sensitive)
- Point "model" resolves to the engine's own name, not a data lookup
- Filter: keep numbers that are not NaN (zero included) and any value that
  is not None and not the empty string; survivors keep their relative order
- Logically identical documents produce identical factor arrays

Element kinds (resolveElement / resolveArray):
- "object": the item is a mapping; its "reference" and "name" are read
- "null":   the item is None; it carries no reference or name
- "scalar": anything else; it carries no reference or name
"""

import math
import numbers
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .mold import moldFactorPoints

MODEL_POINT = "model"

KIND_OBJECT = "object"
KIND_NULL = "null"
KIND_SCALAR = "scalar"


def isSequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def flattenData(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested mappings and sequences into dotted paths.

    Example:
        {"merchant": {"name": "acme"}, "tags": ["a"]} -> {"merchant.name": "acme", "tags.0": "a"}
    """
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flattenData(value, f"{path}."))
        elif isSequence(value) and value:
            flat.update(flattenData({str(index): item for index, item in enumerate(value)}, f"{path}."))
        else:
            flat[path] = value
    return flat


def readPath(data: Mapping[str, Any], point: str, flat: Optional[Dict[str, Any]] = None) -> Any:
    """Read a dotted path: leaf values from the flat view, containers by walking the data."""
    flat = flat if flat is not None else flattenData(data)
    if point in flat:
        return flat[point]

    current: Any = data
    for segment in point.split('.'):
        if isinstance(current, Mapping):
            current = current.get(segment)
        elif isSequence(current) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return None
    return current


def isFactorValue(value: Any) -> bool:
    """True if a value survives the factor filter."""
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        try:
            return not math.isnan(value)
        except TypeError:
            return True
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def filterFactor(factor: Sequence[Any]) -> List[Any]:
    return [value for value in factor if isFactorValue(value)]


def resolveData(option: Any, label: Optional[str]) -> Dict[str, Any]:
    """
    Resolve the document payload: option.data if non-empty, else option[label], else {}.

    Sequences are never accepted as the document payload.
    """
    entity = option.data or (option.get(label) if label else None) or {}
    if isSequence(entity) or not isinstance(entity, Mapping):
        return option.data if isinstance(option.data, Mapping) else {}
    return dict(entity) if not isinstance(entity, dict) else entity


def deriveFactor(data: Mapping[str, Any], mold: Any, engineName: Optional[str]) -> List[Any]:
    """Read the mold's factor points out of the data, in declared order."""
    flat = flattenData(data)
    factor = []
    for point in moldFactorPoints(mold):
        if point == MODEL_POINT:
            factor.append(engineName)
        else:
            factor.append(readPath(data, point, flat))
    return factor


def resolveFactor(option: Any, data: Mapping[str, Any], mold: Any, engineName: Optional[str]) -> List[Any]:
    """
    Resolve the canonical factor array.

    A non-empty option.factor is used verbatim (then filtered); otherwise the
    factor is derived from the mold declaration.
    """
    if isSequence(option.factor) and len(option.factor):
        factor = list(option.factor)
    else:
        factor = deriveFactor(data, mold, engineName)
    return filterFactor(factor)


def resolveList(option: Any, label: Optional[str]) -> List[Any]:
    """List payload: option.list, else option[label] when it is a sequence, else []."""
    array = option.list or (option.get(label) if label else None) or []
    return list(array) if isSequence(array) else []


def itemKind(item: Any) -> str:
    if item is None:
        return KIND_NULL
    if isinstance(item, Mapping):
        return KIND_OBJECT
    return KIND_SCALAR


def resolveElement(data: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """One element record per item of every sequence property in the data."""
    element = []
    for property, value in data.items():
        if not isSequence(value):
            continue
        for item in value:
            kind = itemKind(item)
            record = {
                "kind": kind,
                "property": property,
                "value": item,
                "reference": None,
                "name": property
            }
            if kind == KIND_OBJECT:
                record["reference"] = item.get("reference")
                record["name"] = item.get("name") or property
            element.append(record)
    return element


def resolveArray(data: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Scalar items of every sequence property, grouped by property. Objects and nulls are skipped."""
    array: Dict[str, List[Any]] = {}
    for property, value in data.items():
        if not isSequence(value):
            continue
        for item in value:
            if itemKind(item) == KIND_SCALAR:
                array.setdefault(property, []).append(item)
    return array
