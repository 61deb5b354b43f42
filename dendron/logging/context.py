"""
Logging Context

Provides engine-level context (engine name, scopeId) to all log records.
"""

import logging
from typing import Optional
from contextvars import ContextVar

_engine_name: ContextVar[Optional[str]] = ContextVar('engine_name', default=None)
_scope_id: ContextVar[Optional[str]] = ContextVar('scope_id', default=None)


class ServiceContextFilter(logging.Filter):
    """Logging filter that adds engine context to all log records"""

    def filter(self, record):
        engineName = _engine_name.get()
        scopeId = _scope_id.get()

        if engineName and not hasattr(record, 'engine'):
            record.engine = engineName
        if scopeId:
            record.scopeId = scopeId

        return True


def setServiceContext(engineName: str, scopeId: str = None):
    """
    Set engine-level context for logging

    Args:
        engineName: Canonical engine name currently being processed
        scopeId: Scope identifier (optional)
    """
    _engine_name.set(engineName)
    if scopeId:
        _scope_id.set(scopeId)


def getServiceContext() -> dict:
    """Get current engine context"""
    return {
        'engine': _engine_name.get(),
        'scopeId': _scope_id.get()
    }


def clearServiceContext():
    """Clear engine context"""
    _engine_name.set(None)
    _scope_id.set(None)


def installServiceContextFilter(logger: Optional[logging.Logger] = None):
    """
    Install the context filter on a logger (root logger by default).

    Filters attached to a logger only see records created by that logger,
    so dendron loggers get the filter installed individually by getLogger().
    """
    target = logger if logger is not None else logging.getLogger()

    for f in target.filters:
        if isinstance(f, ServiceContextFilter):
            return

    target.addFilter(ServiceContextFilter())
