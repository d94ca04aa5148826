"""
Engine - owns the device registry and everything selections need.

One engine is created per host session and passed by reference to every
selection and event manager it hands out. It holds:

- the capability table (device templates, capability list, event index)
- the device registry
- the renderer and transport boundaries
- the random source used for default-mode member choice

Usage:
    engine = Engine()
    engine.set_emulated_devices({"phone": 1, "watch": 1})
    engine.select(".shakable").all().on("shake", on_shake)
    engine.deliver_event("watch0", "shake")
"""

from __future__ import annotations

import random
import secrets
import time
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from weave.core.actions import DeviceActions
from weave.core.devices.catalog import CapabilityTable, resolve_preset
from weave.core.devices.device import Device
from weave.core.devices.events import (
    DeviceInputEvent,
    DeviceJoinedEvent,
    DeviceLeftEvent,
    ProxyEvent,
    SingleDeviceEvent,
)
from weave.core.devices.registry import DeviceRegistry
from weave.core.devices.types import DEFAULT_TIME_RANGE_MS, DeviceClass, SelectionMode
from weave.core.errors import DuplicateDeviceIdError, ErrorKind, InvalidSelectorError
from weave.core.logging_utils import get_module_logger
from weave.core.selection import Selection, SelectionOption
from weave.core.selector.parser import compile_selector
from weave.core.selector.query import Query
from weave.core.selector.suggest import SelectorSuggestion, create_selectors
from weave.core.transport.base import NullTransport, Transport
from weave.core.ui.renderer import HeadlessRenderer, Renderer

logger = get_module_logger("Engine")

OptionLike = Union[SelectionOption, Mapping[str, Any], None]


def _epoch_ms() -> float:
    return time.time() * 1000.0


class Engine:
    """Selection and coordination engine for one session."""

    def __init__(
        self,
        table: CapabilityTable | None = None,
        renderer: Renderer | None = None,
        transport: Transport | None = None,
        rng: random.Random | None = None,
        time_range_ms: float = DEFAULT_TIME_RANGE_MS,
        clock: Callable[[], float] | None = None,
    ):
        self.table = table or CapabilityTable.builtin()
        self.registry = DeviceRegistry()
        self.actions = DeviceActions(renderer or HeadlessRenderer(), transport or NullTransport())
        self.rng = rng or random.Random()
        self.time_range_ms = time_range_ms
        self.layouts: dict[str, str] = {}
        self._clock = clock or _epoch_ms

    # =========================================================================
    # Boundaries
    # =========================================================================

    @property
    def renderer(self) -> Renderer:
        return self.actions.renderer

    @renderer.setter
    def renderer(self, renderer: Renderer) -> None:
        self.actions.renderer = renderer

    @property
    def transport(self) -> Transport:
        return self.actions.transport

    @transport.setter
    def transport(self, transport: Transport) -> None:
        self.actions.transport = transport

    def now(self) -> float:
        return self._clock()

    # =========================================================================
    # Setup
    # =========================================================================

    def setup(self, table: CapabilityTable, use_spec_devices: bool = False) -> None:
        """Install a loaded capability table; optionally register its devices."""
        self.table = table
        if use_spec_devices:
            clones = [template.clone(template.id) for template in table.full_devices]
            self.registry.replace_all(clones)
        logger.info(
            "Engine set up with device types: %s",
            ", ".join(table.device_types()) or "(none)",
        )

    def load_layouts(self, layouts: Mapping[str, str]) -> None:
        self.layouts = dict(layouts)

    def get_layout_by_id(self, layout_id: str) -> str | None:
        return self.layouts.get(layout_id)

    # =========================================================================
    # Selecting
    # =========================================================================

    def compile(self, selector: str | None) -> Query:
        """Compile a selector, warning about capabilities the table does not know."""
        query = compile_selector(selector)
        for name in sorted(query.capabilities()):
            if not self.table.knows_capability(name):
                logger.report(
                    ErrorKind.UNKNOWN_CAPABILITY,
                    "selector %r references unknown capability %r", selector, name,
                )
        return query

    def select(
        self,
        selector: str | None = None,
        mode: SelectionMode = SelectionMode.DEFAULT,
        option: OptionLike = None,
    ) -> Selection:
        """Devices matching ``selector``; an empty selection if it does not compile."""
        try:
            query = self.compile(selector)
        except InvalidSelectorError as e:
            logger.report(e)
            return Selection(self, [], selector, mode, self._option(option))
        return Selection(self, self.registry.query(query), selector, mode, self._option(option))

    def select_all(self) -> Selection:
        return self.select("all")

    def all(self, option: OptionLike = None) -> Selection:
        return self.select("all", SelectionMode.ALL, option)

    def combine(self, option: OptionLike = None) -> Selection:
        return self.select("all", SelectionMode.COMBINE, option)

    def find_by_id(self, device_id: str) -> Device | None:
        return self.registry.get(device_id)

    def find_by_joint(self, joint: str) -> Selection:
        return Selection(self, self.registry.find_by_joint(joint), option=self._option(None))

    def find_by_type(self, device_type: str) -> Selection:
        return Selection(self, self.registry.find_by_type(device_type), option=self._option(None))

    def create_selectors(
        self,
        include_ids: Sequence[str],
        exclude_ids: Sequence[str] = (),
    ) -> list[SelectorSuggestion]:
        return create_selectors(self.registry, self.table, include_ids, exclude_ids)

    def _option(self, option: OptionLike) -> SelectionOption:
        return SelectionOption.coerce(option, self.time_range_ms)

    # =========================================================================
    # Devices
    # =========================================================================

    def create_device(
        self,
        device_id: str,
        device_type: Union[str, DeviceClass],
        name: str | None = None,
        live: bool = False,
    ) -> Device:
        """Clone the template for ``device_type``. Raises ValueError if there is none."""
        device_class = device_type if isinstance(device_type, DeviceClass) else DeviceClass.from_type(device_type)
        template = self.table.template(device_class)
        if template is None:
            raise ValueError(f"No template for device type '{device_class.value}'")
        return template.clone(device_id, name=name.lower() if name else None, live=live)

    def add_device(self, device: Device) -> bool:
        try:
            self.registry.add(device)
        except DuplicateDeviceIdError as e:
            logger.report(e)
            return False
        return True

    def delete_device(self, device_id: str) -> bool:
        return self.registry.remove(device_id)

    def set_emulated_devices(self, counts: Mapping[str, int], keep_live: bool = True) -> list[Device]:
        """
        Replace the emulated population with ``counts`` devices per type.

        Emulators get ids ``<type><n>`` counted from 0. Live devices stay
        in front when ``keep_live`` is set and are dropped otherwise.
        """
        kept = [d for d in self.registry if d.live] if keep_live else []
        taken = {d.id for d in kept}
        emulated: list[Device] = []
        for device_type, count in counts.items():
            for n in range(int(count)):
                device_id = f"{device_type}{n}"
                if device_id in taken:
                    logger.warning("Emulator id %s is taken by a live device", device_id)
                    continue
                try:
                    emulated.append(self.create_device(device_id, device_type))
                except ValueError as e:
                    logger.error(f"Cannot create emulated {device_type}: {e}")
                    break
        self.registry.replace_all(kept + emulated)
        logger.info("Emulated devices: %s", ", ".join(d.id for d in emulated) or "(none)")
        return emulated

    def apply_preset(self, preset: str, keep_live: bool = True) -> list[Device]:
        return self.set_emulated_devices(resolve_preset(preset), keep_live)

    def add_emulated_device(
        self,
        device_type: str,
        device_id: str | None = None,
        name: str | None = None,
    ) -> Device | None:
        """Prepend one emulator; a random id is generated when none is given."""
        try:
            device = self.create_device(device_id or secrets.token_hex(4), device_type, name)
        except ValueError as e:
            logger.error(f"Cannot create emulated device: {e}")
            return None
        if not self.add_device(device):
            return None
        logger.info("Created an emulated device (%s)", device.type)
        return device

    def reset_devices(self) -> None:
        for device in reversed(self.registry.devices):
            self.actions.reset(device)

    # =========================================================================
    # Proxy events
    # =========================================================================

    def device_joined(self, device_id: str, device_type: str, name: str | None = None) -> bool:
        """Register a live device reported by a proxy. A repeated id is ignored."""
        if self.registry.get(device_id) is not None:
            logger.report(ErrorKind.DUPLICATE_DEVICE_ID, "redundant device %s, ignoring registration", device_id)
            return False
        try:
            device = self.create_device(device_id, device_type, name, live=True)
        except ValueError as e:
            logger.error(f"Cannot register live device {device_id}: {e}")
            return False
        if not self.add_device(device):
            return False
        logger.info("Live device joined: %s (%s)", device_id, device.type)
        return True

    def device_left(self, device_id: str) -> bool:
        removed = self.registry.remove(device_id)
        if removed:
            logger.info("Live device went offline: %s", device_id)
        return removed

    def handle_event(self, event: ProxyEvent) -> bool:
        """Entry point for the transport layer."""
        if isinstance(event, DeviceJoinedEvent):
            return self.device_joined(event.device_id, event.device_type, event.name)
        if isinstance(event, DeviceLeftEvent):
            return self.device_left(event.device_id)
        if isinstance(event, DeviceInputEvent):
            return self.deliver_event(event.device_id, event.event_type, event.value, event.timestamp)
        logger.warning("Unhandled proxy event %r", event)
        return False

    def deliver_event(
        self,
        device_id: str,
        event_type: str,
        value: Any = None,
        timestamp: float | None = None,
    ) -> bool:
        """Raise one input occurrence on a device and run its listeners."""
        device = self.registry.get(device_id)
        if device is None:
            logger.warning("Event %s for unknown device %s", event_type, device_id)
            return False

        self.renderer.apply_visual(device.id, event_type)
        event = SingleDeviceEvent(
            devices=Selection(self, [device], option=self._option(None)),
            event_type=event_type,
            timestamp=self.now() if timestamp is None else float(timestamp),
            values=(None if value == "" else value,),
        )
        for listener in device.ordered_listeners(event_type):
            try:
                listener.fn(event)
            except Exception as e:
                logger.exception(f"Error in {event_type} listener on {device.id}: {e}")
        return True

    def __repr__(self) -> str:
        return f"Engine(devices={len(self.registry)}, types={self.table.device_types()})"


__all__ = ["Engine"]
