"""
Dendron Engine Registry

Process-wide canonical name -> engine type table.

Architecture Invariants:
- At most one live engine type per canonical name
- Re-registration returns the existing type; it never replaces it
- Append-only: there is no deletion, the table lives as long as the process
- Guarded by a single lock so concurrent wraps cannot race a name
"""

import threading
from typing import Dict, List, Optional

from dendron.logging import getLogger
from .diagnostics import warning
from .errors import DuplicateRegistrationError


class EngineRegistry:
    """Canonical engine name -> engine type, with singleton enforcement."""

    def __init__(self):
        self.log = getLogger()
        self._engines: Dict[str, type] = {}
        self._lock = threading.Lock()

    def register(self, name: str, engineType: type) -> type:
        """
        Register an engine type under its canonical name.

        Returns:
            The registered type. If the name was already taken, the existing
            type is returned unchanged and a non-fatal duplicate notice is emitted.
        """
        with self._lock:
            existing = self._engines.get(name)
            if existing is None:
                self._engines[name] = engineType
                self.log.debug("Registered engine", engine=name, engineType=engineType.__name__)
                return engineType

        if existing is not engineType:
            (warning("engine already registered", DuplicateRegistrationError,
                     engine=name, engineType=existing.__name__)
                .remind("reusing existing engine")
                .silence()
                .prompt())
        return existing

    def lookup(self, name: str) -> Optional[type]:
        return self._engines.get(name)

    def names(self) -> List[str]:
        """Registered canonical names in registration order."""
        return list(self._engines.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._engines

    def __len__(self) -> int:
        return len(self._engines)


# Global registry, created empty at startup (can be replaced/injected for testing)
_registry = EngineRegistry()


def getRegistry() -> EngineRegistry:
    """Get the global engine registry."""
    return _registry


def setRegistry(registry: EngineRegistry) -> None:
    """Set the global engine registry."""
    global _registry
    _registry = registry
