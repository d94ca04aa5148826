"""
Selection - a mode-bound handle to a set of matched devices.

A selection never owns its devices. It keeps references into the engine's
registry, and every action first drops members that have since left the
registry, so a stale member is skipped rather than reported.

Every public action returns the selection itself so calls can be chained;
failures are logged, never raised.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, Mapping, Optional, Union

from weave.core.devices.device import Device
from weave.core.devices.types import DEFAULT_TIME_RANGE_MS, SelectionMode
from weave.core.errors import ErrorKind, InvalidSelectorError
from weave.core.event_manager import EventCallback, EventManager
from weave.core.logging_utils import get_module_logger
from weave.core.ui.layout import can_show_large, decompose, plan_combine

if TYPE_CHECKING:
    from weave.core.actions import DeviceCallback
    from weave.core.engine import Engine

logger = get_module_logger("Selection")

_selection_ids = itertools.count(1)


@dataclass
class SelectionOption:
    """Per-selection options. ``time_range`` is the correlation window in ms."""
    time_range: float = DEFAULT_TIME_RANGE_MS
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def coerce(
        cls,
        value: Union["SelectionOption", Mapping[str, Any], None],
        default_time_range: float = DEFAULT_TIME_RANGE_MS,
    ) -> "SelectionOption":
        """Build an option; a missing time range falls back to ``default_time_range``."""
        if value is None:
            return cls(time_range=default_time_range)
        if isinstance(value, SelectionOption):
            return value
        extra = dict(value)
        time_range = extra.pop("time_range", extra.pop("timeRange", default_time_range))
        return cls(time_range=float(time_range), extra=extra)


class Selection:
    """
    Ordered member list plus a dispatch mode.

    Usage:
        engine.select(".shakable").all({"time_range": 500}).on("shake", on_shake)
        engine.select(".showable").combine().show(markup)
    """

    def __init__(
        self,
        engine: "Engine",
        devices: list[Device] | None = None,
        selector: str | None = None,
        mode: SelectionMode = SelectionMode.DEFAULT,
        option: Union[SelectionOption, Mapping[str, Any], None] = None,
    ):
        self._engine = engine
        self._devices: list[Device] = list(devices or [])
        self._selector = selector
        self._mode = mode
        self._option = SelectionOption.coerce(option, engine.time_range_ms)
        self._id = f"sel-{next(_selection_ids)}"

    # =========================================================================
    # State
    # =========================================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def selector(self) -> str | None:
        return self._selector

    @property
    def mode(self) -> SelectionMode:
        return self._mode

    @property
    def option(self) -> SelectionOption:
        return self._option

    @property
    def devices(self) -> list[Device]:
        return list(self._devices)

    def size(self) -> int:
        return len(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[Device]:
        return iter(list(self._devices))

    def __contains__(self, device: object) -> bool:
        return any(d is device for d in self._devices)

    def device_ids(self) -> list[str]:
        return [d.id for d in self._devices]

    def device_names(self) -> str:
        return ", ".join(str(d.name) for d in self._devices)

    def set_mode(self, mode: Union[SelectionMode, str]) -> "Selection":
        if not isinstance(mode, SelectionMode):
            try:
                mode = SelectionMode(str(mode).strip().lower())
            except ValueError:
                logger.warning("%s: unknown selection mode %r, keeping %s", self._id, mode, self._mode.value)
                return self
        self._mode = mode
        return self

    def set_option(self, option: Union[SelectionOption, Mapping[str, Any]]) -> "Selection":
        self._option = SelectionOption.coerce(option, self._engine.time_range_ms)
        return self

    def all(self, option: Union[SelectionOption, Mapping[str, Any], None] = None) -> "Selection":
        self.set_mode(SelectionMode.ALL)
        if option is not None:
            self.set_option(option)
        return self

    def combine(self, option: Union[SelectionOption, Mapping[str, Any], None] = None) -> "Selection":
        self.set_mode(SelectionMode.COMBINE)
        if option is not None:
            self.set_option(option)
        return self

    def snapshot(self) -> "Selection":
        """Copy with the same members, mode and option."""
        return Selection(self._engine, self._devices, self._selector, self._mode, self._option)

    # =========================================================================
    # Membership
    # =========================================================================

    def exclude(self, exclusion: Union[Device, "Selection", str]) -> "Selection":
        """Remove a device, another selection's members, or a selector's matches."""
        if isinstance(exclusion, Device):
            self._remove(exclusion)
        elif isinstance(exclusion, Selection):
            for device in exclusion.devices:
                self._remove(device)
        elif isinstance(exclusion, str):
            try:
                query = self._engine.compile(exclusion)
            except InvalidSelectorError as e:
                logger.report(e)
                return self
            for device in self._engine.registry.query(query):
                self._remove(device)
        else:
            logger.warning("Cannot exclude %r from a selection", exclusion)
        return self

    not_ = exclude

    def append(self, other: Union["Selection", Device]) -> "Selection":
        """Concatenate members; duplicates are kept."""
        if isinstance(other, Device):
            self._devices.append(other)
        else:
            self._devices.extend(other.devices)
        return self

    def _remove(self, device: Device) -> None:
        for idx, member in enumerate(self._devices):
            if member is device:
                del self._devices[idx]
                return

    # =========================================================================
    # Dispatch helpers
    # =========================================================================

    def _available(self, action: str) -> list[Device]:
        """Members still registered, or [] after logging NoDeviceAvailable."""
        registry = self._engine.registry
        members = [d for d in self._devices if registry.contains(d)]
        if not members:
            logger.report(ErrorKind.NO_DEVICE_AVAILABLE, 'no device available to run "%s"', action)
        return members

    def _pick_one(self, members: list[Device]) -> Device:
        live = [d for d in members if d.live]
        return self._engine.rng.choice(live or members)

    def _targets(self, action: str) -> list[Device]:
        members = self._available(action)
        if not members:
            return []
        if self._mode is SelectionMode.ALL:
            return members
        return [self._pick_one(members)]

    # =========================================================================
    # Events
    # =========================================================================

    def on(self, event_type: str, fn: EventCallback) -> "Selection":
        """Register ``fn`` for ``event_type`` on the members, per mode."""
        members = self._available(event_type)
        if not members:
            return self

        if self._mode is SelectionMode.COMBINE:
            capability = self._engine.table.capability_for_event(event_type)
            if capability is not None:
                members = [d for d in members if d.supports(capability)]
        manager = EventManager(self, event_type, fn, members)

        actions = self._engine.actions
        for device in members:
            actions.subscribe(device, event_type, manager.event_triggered, manager)
        logger.debug("%s subscribed %s on %d devices", self._id, event_type, len(members))
        return self

    def run(self, fn: Callable[..., Any], data: Any = None) -> "Selection":
        if data is None:
            fn(self)
        else:
            fn(self, data)
        return self

    # =========================================================================
    # Actions
    # =========================================================================

    def show(self, markup: str, callback: Optional["DeviceCallback"] = None) -> "Selection":
        members = self._available("show")
        if not members:
            return self

        layout = decompose(markup or "")
        actions = self._engine.actions

        if self._mode is SelectionMode.DEFAULT:
            actions.show(self._pick_one(members), markup or "", self._id, callback, layout)
        elif self._mode is SelectionMode.ALL:
            for device in members:
                actions.show(device, markup or "", self._id, callback, layout)
        else:
            self._show_combined(members, layout, callback)
        return self

    def _show_combined(self, members: list[Device], layout, callback) -> None:
        renderer = self._engine.renderer
        actions = self._engine.actions
        plan = plan_combine(layout, members)

        if plan.image_device is not None and plan.image_group is not None:
            group = plan.image_group
            actions.show(plan.image_device, renderer.render(group.tag, group.members), self._id, callback)

        if plan.remainder_device is not None:
            markup = "".join(renderer.render(g.tag, g.members) for g in plan.remainder)
            actions.show(plan.remainder_device, markup, self._id, callback)
        elif plan.remainder:
            logger.warning("%s: no free device for %d element groups", self._id, len(plan.remainder))

    def play(self, path: str, callback: Optional["DeviceCallback"] = None) -> "Selection":
        for device in self._targets("play"):
            self._engine.actions.play(device, path, self._id, callback)
        return self

    def call(self, number: str, callback: Optional["DeviceCallback"] = None) -> "Selection":
        for device in self._targets("call"):
            self._engine.actions.call(device, number, self._id, callback)
        return self

    def wakeup(self) -> "Selection":
        for device in self._targets("wakeup"):
            self._engine.actions.wakeup(device)
        return self

    def start_app(self, app_name: str) -> "Selection":
        if self._mode is not SelectionMode.COMBINE:
            for device in self._targets("startApp"):
                self._engine.actions.start_app(device, app_name, self._id)
            return self

        members = self._available("startApp")
        for device in members:
            if can_show_large(device):
                self._engine.actions.start_app(device, app_name, self._id)
                return self
        if members:
            logger.error(f"Unable to start the app {app_name}: no device with a normal-size screen")
        return self

    def kill_app(self, app_name: str) -> "Selection":
        for device in self._targets("killApp"):
            self._engine.actions.kill_app(device, app_name)
        return self

    def reset(self) -> "Selection":
        for device in self._available("reset"):
            self._engine.actions.reset(device)
        return self

    # =========================================================================
    # Shown UI
    # =========================================================================

    def get_device_has_ui_by_id(self, element_id: str) -> Union[Device, "Selection"]:
        """The member showing element ``element_id``; a Selection unless exactly one."""
        holders = [
            device for device in self._devices
            if any(m.id == element_id for g in device.ui_elements for m in g.members)
        ]
        if len(holders) == 1:
            return holders[0]
        return Selection(self._engine, holders)

    def update_ui_attr(self, element_id: str, attr: str, value: Any) -> "Selection":
        holders = self.get_device_has_ui_by_id(element_id)
        devices = [holders] if isinstance(holders, Device) else holders.devices
        for device in devices:
            self._engine.actions.update_ui_attr(device, element_id, attr, value)
        return self

    def __repr__(self) -> str:
        return f"Selection(id={self._id!r}, mode={self._mode.value}, devices={self.device_ids()})"


__all__ = ["Selection", "SelectionOption"]
