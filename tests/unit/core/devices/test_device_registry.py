"""Tests for DeviceRegistry ordering, lookup and observers."""

import pytest

from weave.core.devices.catalog import CapabilityTable
from weave.core.devices.registry import DeviceRegistry
from weave.core.devices.types import DeviceClass
from weave.core.errors import DuplicateDeviceIdError, ErrorKind
from weave.core.selector import compile_selector


@pytest.fixture
def table() -> CapabilityTable:
    return CapabilityTable.builtin()


@pytest.fixture
def registry() -> DeviceRegistry:
    return DeviceRegistry()


def _make(table, device_id, device_class):
    return table.template(device_class).clone(device_id)


class TestDeviceRegistry:

    def test_add_prepends(self, registry, table):
        registry.add(_make(table, "w", DeviceClass.WATCH))
        registry.add(_make(table, "p", DeviceClass.PHONE))
        assert [d.id for d in registry] == ["p", "w"]

    def test_duplicate_id_rejected(self, registry, table):
        registry.add(_make(table, "w", DeviceClass.WATCH))
        with pytest.raises(DuplicateDeviceIdError) as excinfo:
            registry.add(_make(table, "w", DeviceClass.PHONE))
        assert excinfo.value.kind is ErrorKind.DUPLICATE_DEVICE_ID
        assert len(registry) == 1

    def test_remove(self, registry, table):
        registry.add(_make(table, "w", DeviceClass.WATCH))
        assert registry.remove("w") is True
        assert registry.remove("w") is False
        assert registry.get("w") is None

    def test_contains_is_identity(self, registry, table):
        device = registry.add(_make(table, "w", DeviceClass.WATCH))
        twin = _make(table, "w", DeviceClass.WATCH)
        assert registry.contains(device)
        assert not registry.contains(twin)

    def test_find_by_joint_and_type(self, registry, table):
        registry.add(_make(table, "w", DeviceClass.WATCH))
        registry.add(_make(table, "p", DeviceClass.PHONE))
        registry.add(_make(table, "t", DeviceClass.TABLET))
        assert [d.id for d in registry.find_by_joint("hand")] == ["t", "p"]
        assert [d.id for d in registry.find_by_type("watch")] == ["w"]

    def test_query_preserves_registry_order(self, registry, table):
        registry.add(_make(table, "w", DeviceClass.WATCH))
        registry.add(_make(table, "p", DeviceClass.PHONE))
        registry.add(_make(table, "g", DeviceClass.GLASS))
        assert [d.id for d in registry.query(compile_selector(".showable"))] == ["g", "p", "w"]
        assert [d.id for d in registry.query(compile_selector('.showable[size="small"]'))] == ["g", "w"]

    def test_replace_all_and_remove_where(self, registry, table):
        registry.replace_all([_make(table, "a", DeviceClass.PHONE), _make(table, "b", DeviceClass.WATCH)])
        assert registry.index_of("b") == 1
        removed = registry.remove_where(lambda d: d.type == "phone")
        assert [d.id for d in removed] == ["a"]
        assert [d.id for d in registry] == ["b"]


class TestRegistryObservers:

    def test_observers_see_add_and_remove(self, registry, table):
        seen = []
        registry.add_observer(lambda device, added: seen.append((device.id, added)))
        registry.add(_make(table, "w", DeviceClass.WATCH))
        registry.remove("w")
        assert seen == [("w", True), ("w", False)]

    def test_failing_observer_does_not_break_registry(self, registry, table):
        def broken(device, added):
            raise RuntimeError("boom")

        registry.add_observer(broken)
        registry.add(_make(table, "w", DeviceClass.WATCH))
        assert registry.get("w") is not None

    def test_remove_observer(self, registry, table):
        seen = []
        observer = lambda device, added: seen.append(device.id)
        registry.add_observer(observer)
        registry.remove_observer(observer)
        registry.add(_make(table, "w", DeviceClass.WATCH))
        assert seen == []
