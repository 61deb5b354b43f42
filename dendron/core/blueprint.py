"""
Dendron Blueprint

A blueprint is the explicit capability table an engine type is composed
from: a name, action name -> handler, and an optional initialize handler.

Accepted sources (Blueprint.fromObject):
- a class: its own public callables (not inherited ones) become handlers
- a mapping: {"name": ..., "initialize": ..., actionName: handler, ...}
- a bare name string: no handlers
- an existing Blueprint
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

# Class attributes that are never copied as handlers
_EXCLUDED = {'initialize'}


@dataclass(frozen=True)
class Blueprint:
    """Tagged capability record for engine composition."""
    name: Optional[str] = None
    handlers: Mapping[str, Callable] = field(default_factory=dict)
    initialize: Optional[Callable] = None

    @staticmethod
    def fromObject(value: Any) -> Optional['Blueprint']:
        """
        Build a blueprint from a class, mapping, name string, or Blueprint.

        Returns:
            Blueprint, or None if the value cannot describe an engine
        """
        if isinstance(value, Blueprint):
            return value

        if isinstance(value, str):
            return Blueprint(name=value)

        if inspect.isclass(value):
            handlers = {}
            for attribute, member in vars(value).items():
                if attribute.startswith('_') or attribute in _EXCLUDED:
                    continue
                if isinstance(member, (staticmethod, classmethod)) or callable(member):
                    handlers[attribute] = member
            return Blueprint(
                name=value.__name__,
                handlers=handlers,
                initialize=vars(value).get('initialize')
            )

        if isinstance(value, Mapping):
            name = value.get('name')
            handlers = {
                action: handler
                for action, handler in value.items()
                if action not in ('name', 'initialize') and callable(handler)
            }
            return Blueprint(
                name=name if isinstance(name, str) else None,
                handlers=handlers,
                initialize=value.get('initialize') if callable(value.get('initialize')) else None
            )

        return None


def mergeCapabilities(inherited: Mapping[str, Callable], specific: Mapping[str, Callable]) -> Dict[str, Callable]:
    """
    Merge two capability tables.

    Precedence: blueprint-specific > inherited.
    """
    merged = dict(inherited)
    merged.update(specific)
    return merged
