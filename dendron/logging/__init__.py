"""
Dendron Logging - hierarchical structured logger with automatic detection.

API:
    from dendron.logging import getLogger

    # Class-level (auto-detect once in __init__)
    class Dendron:
        def __init__(self):
            self.log = getLogger()  # Auto: 'core.engine.Dendron'

        def load(self):
            self.log.info("Loading", engine=self.name)

    # Module-level (auto-detect once at import)
    log = getLogger()  # Auto: 'core.registry'

    # Global configuration (optional, once at app startup)
    from dendron.logging import configureLogging
    configureLogging(logDir='../logs', level='DEBUG')
"""

from .logger import getLogger, configureLogging
from .context import (
    setServiceContext,
    getServiceContext,
    clearServiceContext,
    installServiceContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'setServiceContext',
    'getServiceContext',
    'clearServiceContext',
    'installServiceContextFilter'
]
