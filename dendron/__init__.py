"""
Dendron - runtime engine registry and content identity.

    from dendron import Dendron

    class Order:
        def compute(self, option):
            ...

    Order = Dendron(Order).spawn().value
    order = Order({"mold": {"model": store, "factor": {"merchant": "string", "sku": "string"}}})
    identity = order.identify({"data": {"merchant": "acme", "sku": "sku-42"}}).value
"""

from .core import __version__
from .core.blueprint import Blueprint, mergeCapabilities
from .core.engine import Dendron, EngineDescriptor
from .core.errors import (
    DendronError,
    ValidationError,
    ConfigurationError,
    DuplicateRegistrationError,
    Result
)
from .core.identity import Stamp, computeHash, computeStamp, decodeStamp, sodium
from .core.mold import SchemaMold
from .core.option import Identity, Option
from .core.registry import EngineRegistry, getRegistry, setRegistry

__all__ = [
    '__version__',
    # Engines
    'Dendron',
    'EngineDescriptor',
    'Blueprint',
    'mergeCapabilities',
    'SchemaMold',
    # Registry
    'EngineRegistry',
    'getRegistry',
    'setRegistry',
    # Identity
    'Identity',
    'Option',
    'Stamp',
    'computeHash',
    'computeStamp',
    'decodeStamp',
    'sodium',
    # Errors
    'DendronError',
    'ValidationError',
    'ConfigurationError',
    'DuplicateRegistrationError',
    'Result',
]
