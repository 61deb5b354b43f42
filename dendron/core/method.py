"""
Dendron Method Resolution

Resolves a semantic action name to a handler on an engine instance, so
callers never need to know how many specializations exist.

Resolution order for resolveMethod(target, action, qualifier=None, *parts):
  1. exact: a callable attribute literally named `action`
  2. composed: tokens of action, parts and qualifier (default: target.label),
     de-duplicated in first-occurrence order, joined in call-name casing
     e.g. ("apply-some-thing", "widget") -> applySomeThingWidget
  3. fallback: unless qualifier is "document", strip the qualifier tokens and
     resolve again with qualifier "document" (the stripped action is tried as
     an exact call name first, e.g. applySomeThing, then applySomeThingDocument)
  4. a bound no-op; resolution never raises
"""

import types
from typing import Any, Callable, List, Optional

from dendron.logging import getLogger
from .naming import llamalize, shardize, tokenize

log = getLogger()

FALLBACK_QUALIFIER = "document"


def _callableMember(target: Any, name: Any) -> Optional[Callable]:
    if not isinstance(name, str) or not name.isidentifier():
        return None
    member = getattr(target, name, None)
    return member if callable(member) else None


def _noop(self, *args, **kwargs):
    return None


def composeName(action: Any, parts: tuple, qualifier: Any) -> List[str]:
    """Ordered unique tokens of the action, extra parts and qualifier."""
    tokens: List[str] = []
    for value in (action, *parts, qualifier):
        tokens.extend(tokenize(value))
    return list(dict.fromkeys(tokens))


def resolveMethod(target: Any, action: Any, qualifier: Optional[str] = None, *parts: Any) -> Callable:
    """
    Resolve an action to a bound handler on target.

    Returns:
        Bound handler, or a bound no-op when nothing matches
    """
    exact = _callableMember(target, action)
    if exact is not None:
        return exact

    qualifier = qualifier or getattr(target, 'label', None) or FALLBACK_QUALIFIER

    tokens = composeName(action, parts, qualifier)
    methodName = llamalize('-'.join(tokens))

    handler = _callableMember(target, methodName)
    if handler is not None:
        return handler

    if shardize(qualifier) != FALLBACK_QUALIFIER:
        qualifierTokens = set(tokenize(qualifier))
        stripped = [token for token in tokens if token not in qualifierTokens]

        log.debug("No method override", methodName=methodName, qualifier=qualifier)

        return resolveMethod(target, llamalize('-'.join(stripped)), qualifier=FALLBACK_QUALIFIER)

    log.debug("No method resolved", action=str(action), methodName=methodName)
    return types.MethodType(_noop, target)
