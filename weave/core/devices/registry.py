"""
Device Registry - The mutable set of devices the engine can address.

Devices are kept most-recent-first: newly joined and manually added devices
are prepended, so they come first in every scan. Default-mode selection and
selector suggestions both depend on that order.
"""

from __future__ import annotations

from typing import Callable, Iterator

from weave.core.errors import DuplicateDeviceIdError
from weave.core.logging_utils import get_module_logger
from weave.core.selector.matcher import matches
from weave.core.selector.query import Query
from .device import Device

logger = get_module_logger("DeviceRegistry")

# Observer called with (device, added)
RegistryObserver = Callable[[Device, bool], None]


class DeviceRegistry:
    """
    Ordered registry of devices keyed by id.

    Usage:
        registry = DeviceRegistry()
        registry.add(watch)
        registry.add(phone)        # phone now scans first
        registry.query(compile_selector(".showable"))
    """

    def __init__(self) -> None:
        self._devices: list[Device] = []
        self._observers: list[RegistryObserver] = []

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices))

    @property
    def devices(self) -> list[Device]:
        return list(self._devices)

    # =========================================================================
    # Mutation
    # =========================================================================

    def add(self, device: Device) -> Device:
        """Prepend a device. Raises DuplicateDeviceIdError if the id is taken."""
        if self.index_of(device.id) >= 0:
            raise DuplicateDeviceIdError(device.id)
        self._devices.insert(0, device)
        logger.debug("Added device %s (%s, live=%s)", device.id, device.type, device.live)
        self._notify(device, added=True)
        return device

    def remove(self, device_id: str) -> bool:
        """Remove a device by id. Returns False if it is not registered."""
        idx = self.index_of(device_id)
        if idx < 0:
            return False
        device = self._devices.pop(idx)
        logger.debug("Removed device %s", device_id)
        self._notify(device, added=False)
        return True

    def replace_all(self, devices: list[Device]) -> None:
        """Swap the whole population (used when emulators are rebuilt)."""
        for device in list(self._devices):
            self._notify(device, added=False)
        self._devices = list(devices)
        for device in self._devices:
            self._notify(device, added=True)

    def remove_where(self, predicate: Callable[[Device], bool]) -> list[Device]:
        removed = [d for d in self._devices if predicate(d)]
        for device in removed:
            self.remove(device.id)
        return removed

    def clear(self) -> None:
        for device in list(self._devices):
            self.remove(device.id)

    # =========================================================================
    # Queries
    # =========================================================================

    def index_of(self, device_id: str) -> int:
        for idx, device in enumerate(self._devices):
            if device.id == device_id:
                return idx
        return -1

    def get(self, device_id: str) -> Device | None:
        idx = self.index_of(device_id)
        return self._devices[idx] if idx >= 0 else None

    def contains(self, device: Device) -> bool:
        """Whether this exact device object is still registered."""
        return any(d is device for d in self._devices)

    def find_by_joint(self, joint: str) -> list[Device]:
        return [d for d in self._devices if d.joint == joint]

    def find_by_type(self, device_type: str) -> list[Device]:
        return [d for d in self._devices if d.type == device_type]

    def query(self, query: Query) -> list[Device]:
        """Devices matching ``query``, in registry order."""
        return [d for d in self._devices if matches(d, query)]

    # =========================================================================
    # Observers
    # =========================================================================

    def add_observer(self, observer: RegistryObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: RegistryObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, device: Device, added: bool) -> None:
        for observer in self._observers:
            try:
                observer(device, added)
            except Exception as e:
                logger.error(f"Error in registry observer: {e}")
