"""
Dendron Engine

Base type of every document-processing engine.

Composition (wrap):
- A blueprint (class, mapping, name string) becomes a new engine type named
  after its canonical name; the supertype is the type of the wrapping
  instance, so engines built from engines inherit their handlers
- Blueprint handlers override inherited ones
- One engine type per canonical name: wrapping a registered name binds the
  existing type instead of creating one
- Every engine type owns a frozen root engine (read-only template)

Loading (load):
- Binds mold, model, salt and difference to an instance at use time
- The mold's attachEngine hook runs once per mold, after the current step

Identity (createHash / createReference / createStamp):
- Computed from the resolved factor array of the instance's option bag
- The reference is write-once per option bag

Usage:
    factory = Dendron(Order, {"salt": "pepper"})
    Order = factory.spawn().value

    order = Order({"mold": orderMold})
    order.resolveFactor({"data": {"merchant": "acme", "sku": "sku-42"}})
    digest = order.createHash().value
"""

import types
import uuid
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, List, Mapping, Optional

from dendron import config
from dendron.logging import getLogger, setServiceContext
from . import factor as factorResolver
from .blueprint import Blueprint, mergeCapabilities
from .deferred import defer, step
from .diagnostics import fatal, warning
from .errors import ConfigurationError, DuplicateRegistrationError, Result, ValidationError
from .identity import checkFactor, computeHash, computeStamp, sodium
from .method import resolveMethod
from .mold import isEmptyMold, moldMember
from .naming import llamalize, shardize, titlelize
from .option import Identity, Option
from .registry import getRegistry

# Engine descriptor keys accepted by load()
_ENGINE_KEYS = ('name', 'label', 'title', 'alias', 'mold', 'model', 'salt', 'difference')

# Molds with an attachEngine callback scheduled but not yet run
_pendingAttach = set()


@dataclass
class EngineDescriptor:
    """Identifying and binding fields of one engine."""
    name: Optional[str] = None
    alias: Optional[str] = None
    label: Optional[str] = None
    title: Optional[str] = None
    salt: Optional[str] = None
    mold: Any = None
    model: Any = None
    difference: Optional[str] = None

    def toDict(self) -> Dict[str, Any]:
        return {field.name: getattr(self, field.name) for field in fields(self)}


def _isEmpty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (Mapping, list, tuple, str)):
        return len(value) == 0
    return False


class Dendron:
    """
    Base engine.

    Dendron(blueprint, option) composes (or binds) the engine named by the
    blueprint; Engine(option) creates an instance of a composed engine and
    loads it with the option's mold/model/salt/difference.

    A mapping given as the first argument is always a load option; use
    wrap() or Blueprint to compose from a mapping of handlers.
    """

    # Descriptor defaults; composed engine types override these
    name: Optional[str] = None
    alias: Optional[str] = None
    label: Optional[str] = None
    title: Optional[str] = None
    salt: Optional[str] = None
    difference: Optional[str] = None
    mold: Any = None
    model: Any = None

    capabilities: Mapping[str, Callable] = {}
    composed = False
    rootEngine: Optional['Dendron'] = None
    isRoot = False

    def __init__(self, engine: Any = None, option: Any = None):
        self._setup()

        if isinstance(engine, (Mapping, Option, EngineDescriptor)) and option is None:
            engine, option = None, engine

        if engine is not None:
            self.wrap(engine, option)
            return

        if option is not None:
            if isinstance(option, (Mapping, Option)):
                self._bindOption({key: value for key, value in dict(option).items() if key != 'engine'}
                                 if isinstance(option, Mapping) else option)
            self.load(self._withRootDefaults(option))
            self.initialize(self.option)

    def _setup(self) -> None:
        self.log = getLogger()
        self.option = Option()
        cls = type(self)
        self.engine: Optional[str] = cls.name if cls.composed else None
        self.engineType: Optional[type] = cls if cls.composed else None

    @classmethod
    def _createRoot(cls, mold: Any = None, model: Any = None) -> 'Dendron':
        root = cls.__new__(cls)
        root._setup()
        root.mold = mold
        root.model = model
        root.isRoot = True
        root.option.freeze()
        return root

    def initialize(self, option: Option) -> 'Dendron':
        """Hook run after an engine instance is created and loaded."""
        return self

    def __repr__(self) -> str:
        return f"<{type(self).__name__} engine={self.engine!r} root={self.isRoot}>"

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def wrap(self, engine: Any, option: Optional[Mapping[str, Any]] = None) -> Result:
        """
        Compose an engine type from a blueprint, or bind the registered one.

        Args:
            engine: Class, mapping of handlers, Blueprint, or bare name
            option: {"mold", "model", "name", "salt", "initialize"}

        Returns:
            Result with the engine type
        """
        option = dict(option or {})

        blueprint = Blueprint.fromObject(engine)
        if blueprint is None:
            return (fatal("invalid engine blueprint", ValidationError, blueprintType=type(engine).__name__)
                    .remind("cannot create engine").fail())

        name = blueprint.name
        if option.get('name') is not None:
            name = option['name']
        if not isinstance(name, str) and name is not None:
            return (fatal("invalid engine name", ValidationError, engineName=repr(name))
                    .remind("cannot create engine").fail())

        name = shardize(name or config.getSetting('fallbackName', 'document'))
        if not name:
            return fatal("invalid engine name", ValidationError).remind("cannot create engine").fail()

        registry = getRegistry()
        existing = registry.lookup(name)
        if existing is not None:
            (warning("engine already created", DuplicateRegistrationError, engine=name)
                .silence()
                .prompt())
            self._bindEngine(name, existing)
            return Result.success(existing)

        base = type(self)
        alias = llamalize(name, capitalize=True)

        namespace: Dict[str, Any] = dict(blueprint.handlers)
        namespace.update({
            '__module__': base.__module__,
            '__qualname__': alias,
            'name': name,
            'alias': alias,
            'label': llamalize(name),
            'title': titlelize(name),
            'salt': option.get('salt') or sodium(name),
            'difference': None,
            'mold': None,
            'model': None,
            'composed': True,
            'capabilities': mergeCapabilities(base.capabilities, blueprint.handlers)
        })

        initialize = option.get('initialize') or blueprint.initialize
        if callable(initialize):
            namespace['initialize'] = initialize

        Engine = type(alias, (base,), namespace)
        Engine.rootEngine = Engine._createRoot(option.get('mold'), option.get('model'))

        registered = registry.register(name, Engine)
        self._bindEngine(name, registered)

        if registered is Engine:
            self.log.info("Created engine", engine=name, alias=alias, base=base.__name__)

        return Result.success(registered)

    def _bindEngine(self, name: str, engineType: type) -> None:
        if self.isRoot:
            return
        self.engine = name
        self.engineType = engineType

    def spawn(self) -> Result:
        """Return the engine type bound to this instance."""
        if self.engineType is not None:
            return Result.success(self.engineType)
        if type(self).composed:
            return Result.success(type(self))
        return fatal("cannot spawn engine", ConfigurationError).remind("no engine composed").fail()

    def use(self, handler: Callable) -> Result:
        """
        Append a handler to the bound engine type.

        The handler becomes visible on every instance of the type (root engine
        included) and is bound on this instance if it is not one of them.
        """
        if not callable(handler) or not getattr(handler, '__name__', None):
            return fatal("invalid method", ValidationError).remind("cannot use method").fail()

        if self.engineType is None:
            return fatal("engine not configured", ConfigurationError).remind("cannot use method").fail()

        action = handler.__name__
        Engine = self.engineType

        setattr(Engine, action, handler)
        Engine.capabilities = mergeCapabilities(Engine.capabilities, {action: handler})

        if not isinstance(self, Engine) and not hasattr(self, action):
            setattr(self, action, types.MethodType(handler, self))

        return Result.success(handler)

    def descriptor(self) -> EngineDescriptor:
        return EngineDescriptor(
            name=self.name,
            alias=self.alias,
            label=self.label,
            title=self.title,
            salt=self.salt,
            mold=self.mold,
            model=self.model,
            difference=self.difference
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _withRootDefaults(self, option: Any) -> Any:
        """Fill missing engine fields from the root engine's descriptor."""
        root = type(self).rootEngine
        if root is None:
            return option

        spec = self._engineSpec(option) or {}
        merged = root.descriptor().toDict()
        merged.update({key: value for key, value in spec.items() if value is not None})

        if isinstance(option, Mapping):
            option = dict(option)
            option['engine'] = merged
            return option
        return {'engine': merged}

    def _engineSpec(self, option: Any) -> Optional[Dict[str, Any]]:
        if option is None:
            return None
        if isinstance(option, Dendron):
            return option.descriptor().toDict()
        if isinstance(option, EngineDescriptor):
            return option.toDict()
        if isinstance(option, Option):
            option = {**option.extra, 'salt': option.salt}
        if not isinstance(option, Mapping):
            return None

        engine = option.get('engine')
        if engine is not None and not isinstance(engine, Mapping):
            return self._engineSpec(engine)

        source = engine if engine is not None else option
        return {key: source[key] for key in _ENGINE_KEYS if key in source}

    def load(self, option: Any) -> Result:
        """
        Bind mold, model, salt and difference to this instance.

        Args:
            option: {"engine": {name, mold, model, salt, difference}}, the flat
                    equivalent, an EngineDescriptor, or another engine instance

        Returns:
            Result with this instance
        """
        with step():
            return self._load(option)

    def _load(self, option: Any) -> Result:
        spec = self._engineSpec(option)

        if spec is None:
            return fatal("no engine given", ConfigurationError).remind("cannot load engine").fail()

        if not any(value is not None for value in spec.values()):
            return fatal("empty engine", ConfigurationError).remind("cannot load engine").fail()

        self.name = self.name or shardize(spec.get('name')) or None
        if self.name:
            self.label = self.label or spec.get('label') or llamalize(self.name)
            self.title = self.title or spec.get('title') or titlelize(self.name)
            self.alias = self.alias or spec.get('alias') or llamalize(self.name, capitalize=True)

        mold = spec.get('mold')
        if isEmptyMold(mold):
            mold = config.getMold(self.alias)

        if isEmptyMold(mold) and _isEmpty(spec.get('model')):
            return (fatal("empty mold", ConfigurationError, engine=self.name)
                    .remind("cannot load engine").fail())

        model = moldMember(mold, 'model')
        if _isEmpty(model):
            model = spec.get('model')
        if _isEmpty(model):
            return (fatal("empty model", ConfigurationError, engine=self.name)
                    .remind("cannot load engine").fail())

        salt = spec.get('salt')
        if salt is None:
            salt = self.salt if self.salt is not None else sodium(self.name)

        if not isinstance(salt, str):
            return (fatal("invalid salt", ValidationError, engine=self.name, saltType=type(salt).__name__)
                    .remind("cannot load engine").fail())

        if not salt:
            (warning("empty salt", ValidationError, engine=self.name)
                .remind("data conflict may arise")
                .silence()
                .prompt())

        self.mold = mold
        self.model = model
        self.salt = salt
        self.difference = spec.get('difference') or self.difference or self.name

        self._scheduleAttach(mold)

        setServiceContext(self.name)
        self.log.debug("Loaded engine", engine=self.name, difference=self.difference)
        return Result.success(self)

    def _scheduleAttach(self, mold: Any) -> None:
        attach = moldMember(mold, 'attachEngine')
        if not callable(attach):
            return
        if moldMember(mold, 'engine') is not None or id(mold) in _pendingAttach:
            return

        _pendingAttach.add(id(mold))

        def bindEngine():
            _pendingAttach.discard(id(mold))
            if moldMember(mold, 'engine') is None:
                attach(self)

        defer(bindEngine)

    # ------------------------------------------------------------------
    # Option bag and factor resolution
    # ------------------------------------------------------------------

    def _bindOption(self, option: Any) -> Option:
        if option is None:
            return self.option
        option = Option.fromValue(option)
        if not self.isRoot:
            self.option = option
        return option

    def _store(self, option: Option, key: str, value: Any) -> None:
        # Resolved values on a frozen bag are returned, never written
        if not option.frozen:
            option.set(key, value)

    def set(self, key: str, value: Any) -> 'Dendron':
        """Override one field of this instance's option bag."""
        self.option.set(key, value)
        return self

    def resolveData(self, option: Any = None) -> Dict[str, Any]:
        option = self._bindOption(option)
        data = factorResolver.resolveData(option, self.label)
        if data is not option.data:
            self._store(option, 'data', data)
        return data

    def resolveList(self, option: Any = None) -> List[Any]:
        option = self._bindOption(option)
        array = factorResolver.resolveList(option, self.label)
        if array:
            self._store(option, 'list', array)
        return array

    def resolveElement(self, option: Any = None) -> List[Dict[str, Any]]:
        option = self._bindOption(option)
        element = factorResolver.resolveElement(option.data)
        if element:
            self._store(option, 'element', element)
        return element

    def resolveArray(self, option: Any = None) -> Dict[str, List[Any]]:
        option = self._bindOption(option)
        array = factorResolver.resolveArray(option.data)
        if array:
            self._store(option, 'array', array)
        return array

    def restrictData(self, option: Any = None) -> Dict[str, Any]:
        """Sanitize the document with the mold's restrict() if it has one."""
        option = self._bindOption(option)
        data = self.resolveData(option)

        restrict = moldMember(self.mold, 'restrict')
        if callable(restrict):
            data = restrict(data)
            self._store(option, 'data', data)

        return data

    def resolveFactor(self, option: Any = None) -> List[Any]:
        """
        Resolve the canonical factor array of the document.

        Returns:
            Ordered factor values (empty if nothing survives the filter)
        """
        option = self._bindOption(option)
        data = self.restrictData(option)

        # Stored even when empty; identity reads option.factor
        factor = factorResolver.resolveFactor(option, data, self.mold, self.name)
        self._store(option, 'factor', factor)
        return factor

    def mergeIdentity(self, option: Any = None) -> Dict[str, Any]:
        """Copy identity artifacts into the document without overwriting existing values."""
        option = self._bindOption(option)
        if option.frozen:
            return option.data

        for key, value in option.identity.toDict().items():
            if value is not None and not option.data.get(key):
                option.data[key] = value
        return option.data

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def _recordIdentity(self, option: Option, key: str, value: str) -> bool:
        if option.frozen:
            fatal("root engine option is read-only", ValidationError, key=key).prompt()
            return False
        setattr(option.identity, key, value)
        return True

    def createHash(self, option: Any = None) -> Result:
        """
        Create the content hash of the document.

        The hash changes whenever the factors change.
        """
        option = self._bindOption(option)

        result = computeHash(option.factor, self.difference)
        if result.ok:
            self._recordIdentity(option, 'hash', result.value)
        return result

    def createReference(self, option: Any = None) -> Result:
        """
        Create the reference of the document.

        The reference never changes once created, even if the document does.
        """
        option = self._bindOption(option)

        if option.identity.reference:
            return Result.success(option.identity.reference)

        failure = checkFactor(option.factor, "reference")
        if failure:
            return failure

        factor = list(option.factor)
        factor.append(str(uuid.uuid1()))
        factor.append(str(uuid.uuid4()))

        result = computeHash(factor, self.difference)
        if not result.ok:
            return result

        if not self._recordIdentity(option, 'reference', result.value):
            return result
        return Result.success(option.identity.reference)

    def createStamp(self, option: Any = None) -> Result:
        """
        Create the stamp and short code of the document.

        Stamps are path-safe and reversible; short codes are for display only.
        """
        option = self._bindOption(option)
        salt = option.salt if option.salt is not None else self.salt

        result = computeStamp(option.factor, salt)
        if result.ok:
            self._recordIdentity(option, 'stamp', result.value.stamp)
            self._recordIdentity(option, 'short', result.value.short)
        return result

    def identify(self, option: Any = None) -> Result:
        """
        Resolve factors and create every identity artifact of the document.

        Returns:
            Result with the option's Identity
        """
        option = self._bindOption(option)
        setServiceContext(self.name)

        if not self.resolveFactor(option):
            return (warning("no factor resolved", ValidationError, engine=self.name)
                    .remind("cannot identify document").fail())

        for create in (self.createHash, self.createReference, self.createStamp):
            result = create(option)
            if not result.ok:
                return result

        self.mergeIdentity(option)
        return Result.success(option.identity)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def method(self, action: Any, qualifier: Optional[str] = None, *parts: Any) -> Callable:
        """
        Resolve a semantic action to the most specific handler (never fails).

        Args:
            action: Semantic action name, e.g. "apply-discount"
            qualifier: Specialization, defaults to this engine's label
            parts: Extra name tokens placed between action and qualifier
        """
        return resolveMethod(self, action, qualifier, *parts)


__all__ = ['Dendron', 'EngineDescriptor', 'Identity']
