"""
Engine Composition and Loading Tests

Architecture Invariants:
- One engine type per canonical name; re-wrapping binds the existing type
- Supertype is the wrapping instance's type (chained specialization)
- Root engines are created once per type and are never mutated
- load() resolves mold, model, salt, difference and attaches the mold once, after the step
- Identity end-to-end: equal factors + difference -> equal hash on independent instances
- Failures return Result errors; nothing raises unless strictDiagnostics is on
"""

import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dendron import config
from dendron.core.deferred import step
from dendron.core.engine import Dendron, EngineDescriptor
from dendron.core.errors import ConfigurationError, ValidationError
from dendron.core.identity import SHORT_LENGTH, decodeStamp
from dendron.core.mold import SchemaMold
from dendron.core.registry import EngineRegistry, getRegistry, setRegistry
from dendron.logging import clearServiceContext, getServiceContext


class Computation:
    def initialize(self, option):
        self.initialized = True
        return self

    def compute(self, option=None):
        return "compute"

    def applySomeThing(self, option=None):
        return 1


class MerchantCompute:
    def applySomeThing(self, option=None):
        return 2


@pytest.fixture(autouse=True)
def freshRegistry():
    """Each test starts with an empty process registry"""
    previous = getRegistry()
    setRegistry(EngineRegistry())
    yield getRegistry()
    setRegistry(previous)


@pytest.fixture
def orderMold():
    return SchemaMold(model={"table": "orders"}, factor={"merchant": "string", "sku": "string"})


@pytest.fixture
def Order():
    return Dendron("order", {"salt": "pepper"}).spawn().value


class TestWrap:

    def test_descriptor_from_name(self):
        Engine = Dendron(Computation).spawn().value

        assert Engine.__name__ == "Computation"
        assert Engine.name == "computation"
        assert Engine.alias == "Computation"
        assert Engine.label == "computation"
        assert Engine.title == "Computation"

    def test_casing_transforms(self):
        Engine = Dendron(MerchantCompute).spawn().value

        assert (Engine.name, Engine.alias, Engine.label, Engine.title) == (
            "merchant-compute", "MerchantCompute", "merchantCompute", "Merchant Compute")

    def test_option_name_wins(self):
        Engine = Dendron(Computation, {"name": "Ledger Entry"}).spawn().value
        assert Engine.name == "ledger-entry"

    def test_fallback_name(self):
        factory = Dendron()
        result = factory.wrap({"compute": lambda self: "x"})

        assert result.ok
        assert result.value.name == "document"

    def test_invalid_name(self):
        result = Dendron().wrap(Computation, {"name": 42})

        assert isinstance(result.error, ValidationError)

    def test_invalid_blueprint(self):
        result = Dendron().wrap(42)
        assert isinstance(result.error, ValidationError)

    def test_handlers_copied(self):
        engine = Dendron(Computation).spawn().value()

        assert engine.compute() == "compute"
        assert set(type(engine).capabilities) == {"compute", "applySomeThing"}

    def test_supertype_is_wrapping_type(self):
        Engine = Dendron(Computation).spawn().value
        assert issubclass(Engine, Dendron)

    def test_chained_specialization(self):
        """An engine built from another engine inherits and overrides its handlers"""
        Base = Dendron(Computation).spawn().value
        Merchant = Base().wrap(MerchantCompute).value

        assert issubclass(Merchant, Base)
        merchant = Merchant()
        assert merchant.compute() == "compute"
        assert merchant.applySomeThing() == 2
        assert Base().applySomeThing() == 1
        assert Merchant.capabilities["applySomeThing"] is MerchantCompute.__dict__["applySomeThing"]

    def test_salt_option_or_derived(self):
        salted = Dendron(Computation, {"salt": "pepper"}).spawn().value
        derived = Dendron(MerchantCompute).spawn().value

        assert salted.salt == "pepper"
        assert isinstance(derived.salt, str) and derived.salt

    def test_initialize_hook(self, orderMold):
        Engine = Dendron(Computation).spawn().value

        engine = Engine({"mold": orderMold})
        assert engine.initialized is True

    def test_mapping_blueprint(self):
        result = Dendron().wrap({"name": "receipt", "render": lambda self: self.name})

        assert result.value().render() == "receipt"


class TestRegistrySingleton:

    def test_same_type_twice(self, freshRegistry):
        """Registering the same canonical name twice returns the same engine type"""
        first = Dendron(Computation).spawn().value
        second = Dendron("computation").spawn().value

        assert first is second
        assert first.rootEngine is second.rootEngine
        assert freshRegistry.names() == ["computation"]

    def test_separator_normalized(self):
        assert Dendron("ledger_entry").spawn().value is Dendron("LedgerEntry").spawn().value

    def test_register_never_replaces(self, freshRegistry):
        Engine = Dendron(Computation).spawn().value

        class Impostor(Dendron):
            pass

        assert freshRegistry.register("computation", Impostor) is Engine
        assert freshRegistry.lookup("computation") is Engine
        assert freshRegistry.lookup("missing") is None
        assert "computation" in freshRegistry and len(freshRegistry) == 1

    def test_wrap_binds_caller(self):
        factory = Dendron()
        Engine = factory.wrap(Computation).value

        assert factory.engine == "computation"
        assert factory.engineType is Engine

    def test_spawn_without_engine(self):
        result = Dendron().spawn()
        assert isinstance(result.error, ConfigurationError)


class TestRootEngine:

    def test_root_created_once(self):
        Engine = Dendron(Computation, {"mold": {"model": "m"}}).spawn().value
        root = Engine.rootEngine

        assert root.isRoot
        assert isinstance(root, Engine)
        assert root.mold == {"model": "m"}
        assert Engine.rootEngine is root

    def test_root_option_read_only(self):
        root = Dendron(Computation).spawn().value.rootEngine

        root.set("data", {"sku": "a"})
        assert root.option.data == {}

        root.createHash({"factor": ["a"]})
        assert root.option.identity.hash is None
        assert root.option.factor == []

    def test_root_resolution_is_read_only(self):
        """Resolving against the root's own bag reads without writing, even in strict mode"""
        root = Dendron(Computation).spawn().value.rootEngine
        config.setSetting('strictDiagnostics', True)
        try:
            assert root.resolveData() == {}
            assert root.resolveFactor() == []
            assert root.resolveElement() == []
        finally:
            config.setSetting('strictDiagnostics', False)

        assert root.option.data == {}
        assert root.option.factor == []


class TestLoad:

    def test_load_with_mold(self, Order, orderMold):
        order = Order({"mold": orderMold})

        assert order.mold is orderMold
        assert order.model == {"table": "orders"}
        assert order.salt == "pepper"
        assert order.difference == "order"

    def test_nested_engine_option(self, Order, orderMold):
        order = Order({"engine": {"mold": orderMold, "difference": "orders-v2", "salt": "cumin"}})

        assert order.difference == "orders-v2"
        assert order.salt == "cumin"

    def test_model_without_mold(self, Order):
        order = Order()
        result = order.load({"model": {"table": "orders"}})

        assert result.ok and result.value is order
        assert order.model == {"table": "orders"}

    def test_global_mold_by_alias(self, orderMold):
        Invoice = Dendron("invoice").spawn().value
        config.registerMold("Invoice", orderMold)

        invoice = Invoice()
        assert invoice.load({"salt": "x"}).ok
        assert invoice.mold is orderMold

    def test_missing_mold_and_model(self, Order):
        result = Order().load({"salt": "x"})
        assert isinstance(result.error, ConfigurationError)

    def test_mold_without_model(self, Order):
        result = Order().load({"mold": SchemaMold(factor={"sku": "string"})})
        assert isinstance(result.error, ConfigurationError)

    def test_no_engine(self, Order):
        assert isinstance(Order().load(None).error, ConfigurationError)
        assert isinstance(Order().load({}).error, ConfigurationError)

    def test_invalid_salt(self, Order, orderMold):
        result = Order().load({"mold": orderMold, "salt": 12})
        assert isinstance(result.error, ValidationError)

    def test_empty_salt_is_warning(self, Order, orderMold):
        order = Order()
        result = order.load({"mold": orderMold, "salt": ""})

        assert result.ok
        assert order.salt == ""

    def test_instance_values_preferred(self, Order, orderMold):
        order = Order()
        order.load({"name": "other", "title": "Other", "mold": orderMold})

        assert order.name == "order"
        assert order.title == "Order"

    def test_plain_instance_takes_descriptor(self, orderMold):
        engine = Dendron()
        engine.load(EngineDescriptor(name="Shipment Note", mold=orderMold))

        assert engine.name == "shipment-note"
        assert engine.alias == "ShipmentNote"
        assert engine.difference == "shipment-note"

    def test_load_from_instance(self, Order, orderMold):
        source = Order({"mold": orderMold, "difference": "orders-v2"})
        target = Order()

        assert target.load(source).ok
        assert target.mold is orderMold
        assert target.difference == "orders-v2"

    def test_strict_diagnostics_raise(self, Order):
        config.setSetting('strictDiagnostics', True)
        try:
            with pytest.raises(ConfigurationError):
                Order().load({"salt": "x"})
        finally:
            config.setSetting('strictDiagnostics', False)


class TestMoldAttachment:

    def test_attached_after_step(self, Order, orderMold):
        """attachEngine runs after the current synchronous step, once per mold"""
        with step():
            first = Order({"mold": orderMold})
            second = Order({"mold": orderMold})
            assert orderMold.engine is None

        assert orderMold.engine is first
        assert orderMold.engine is not second

    def test_attached_after_load(self, Order, orderMold):
        order = Order({"mold": orderMold})
        assert orderMold.engine is order

    def test_mapping_mold_hook(self, Order):
        calls = []
        mold = {"model": "m"}
        mold["attachEngine"] = lambda engine: (calls.append(engine), mold.__setitem__("engine", engine))

        order = Order({"mold": mold})
        Order({"mold": mold})

        assert calls == [order]

    def test_attached_in_event_loop(self, Order, orderMold):
        """Inside asyncio the hook is scheduled with call_soon"""

        async def scenario():
            order = Order({"mold": orderMold})
            attachedInline = orderMold.engine
            await asyncio.sleep(0)
            return order, attachedInline

        order, attachedInline = asyncio.run(scenario())

        assert attachedInline is None
        assert orderMold.engine is order


class TestIdentity:

    def test_end_to_end_hash(self, Order, orderMold):
        """Independent instances with equal factor and difference produce the same hash"""
        first = Order({"mold": orderMold})
        second = Order({"mold": orderMold})

        one = first.createHash({"factor": ["acme", "sku-42"]})
        two = second.createHash({"factor": ["acme", "sku-42"]})

        assert one.ok and len(one.value) == 128
        assert one.value == two.value
        assert first.option.identity.hash == one.value

    def test_reference_write_once(self, Order, orderMold):
        order = Order({"mold": orderMold})
        option = {"factor": ["acme", "sku-42"]}

        first = order.createReference(option).value
        assert order.createReference().value == first
        assert order.option.identity.reference == first

        order.option.identity.reference = "overwrite"
        assert order.option.identity.reference == first

    def test_reference_unique_per_instance(self, Order, orderMold):
        one = Order({"mold": orderMold}).createReference({"factor": ["acme", "sku-42"]}).value
        two = Order({"mold": orderMold}).createReference({"factor": ["acme", "sku-42"]}).value

        assert one != two
        assert len(one) == 128

    def test_reference_requires_factor(self, Order, orderMold):
        result = Order({"mold": orderMold}).createReference({"factor": []})
        assert isinstance(result.error, ValidationError)

    def test_stamp_recomputed(self, Order, orderMold):
        order = Order({"mold": orderMold})

        first = order.createStamp({"factor": ["acme", "sku-42"]}).value
        second = order.createStamp({"factor": ["acme", "sku-43"]}).value

        assert first.stamp != second.stamp
        assert order.option.identity.stamp == second.stamp
        assert len(second.short) == SHORT_LENGTH
        assert decodeStamp(second.stamp, "pepper").value == ["acme", "sku-43"]

    def test_stamp_option_salt(self, Order, orderMold):
        order = Order({"mold": orderMold})
        result = order.createStamp({"factor": ["acme"], "salt": "cumin"})

        assert decodeStamp(result.value.stamp, "cumin").value == ["acme"]

    def test_identify(self, Order, orderMold):
        order = Order({"mold": orderMold})

        result = order.identify({"data": {"merchant": "acme", "sku": "sku-42"}})

        assert result.ok
        identity = result.value
        assert identity.hash == Order({"mold": orderMold}).createHash({"factor": ["acme", "sku-42"]}).value
        assert identity.reference and identity.stamp and identity.short
        assert order.option.data["hash"] == identity.hash
        assert order.option.data["reference"] == identity.reference

    def test_identify_uses_label_payload(self, Order, orderMold):
        order = Order({"mold": orderMold})

        result = order.identify({"order": {"merchant": "acme", "sku": "sku-42"}})
        assert order.option.factor == ["acme", "sku-42"]
        assert result.ok

    def test_identify_applies_restrict(self, Order):
        mold = SchemaMold(model="m", factor={"merchant": "string"},
                          restrictor=lambda data: {key: str(value).lower() for key, value in data.items()})
        order = Order({"mold": mold})

        order.identify({"data": {"merchant": "ACME"}})
        assert order.option.factor == ["acme"]

    def test_identify_without_factor(self, Order, orderMold):
        result = Order({"mold": orderMold}).identify({"data": {"other": 1}})
        assert isinstance(result.error, ValidationError)

    def test_merge_identity_keeps_existing(self, Order, orderMold):
        order = Order({"mold": orderMold})
        order.identify({"data": {"merchant": "acme", "sku": "sku-42", "reference": "kept"}})

        assert order.option.data["reference"] == "kept"

    def test_filtered_factor_replaces_raw(self, Order, orderMold):
        """A factor that filters to nothing is stored empty, so identity creation fails"""
        order = Order({"mold": orderMold})

        assert order.resolveFactor({"factor": [None, ""]}) == []
        assert order.option.factor == []

        assert isinstance(order.createHash().error, ValidationError)
        assert isinstance(order.createReference().error, ValidationError)
        assert order.option.identity.hash is None

    def test_merge_identity_code_and_path(self, Order, orderMold):
        order = Order({"mold": orderMold})
        order.identify({
            "data": {"merchant": "acme", "sku": "sku-42", "path": "kept/path"},
            "identity": {"code": "ORD-7", "path": "orders/acme"}
        })

        assert order.option.data["code"] == "ORD-7"
        assert order.option.data["path"] == "kept/path"

    def test_engine_logging_context(self, Order, orderMold):
        try:
            Order({"mold": orderMold})
            assert getServiceContext()["engine"] == "order"
        finally:
            clearServiceContext()


class TestUse:

    def test_use_appends_handler(self):
        factory = Dendron(Computation)

        def audit(self):
            return self.name

        assert factory.use(audit).ok
        Engine = factory.engineType
        assert Engine.rootEngine.audit() == "computation"
        assert Engine().audit() == "computation"
        assert factory.audit() is None
        assert "audit" in Engine.capabilities

    def test_use_requires_engine(self):
        assert isinstance(Dendron().use(lambda self: None).error, ConfigurationError)

    def test_use_requires_callable(self):
        assert isinstance(Dendron(Computation).use("audit").error, ValidationError)
