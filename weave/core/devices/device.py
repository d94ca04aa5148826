"""
Device - Addressable device representation with capabilities.

A device is a record of identity properties plus a mapping of capability
name to attribute map. It also carries the per-device listener lists and
the UI it currently hosts. Devices never talk to the transport or renderer
themselves; :class:`weave.core.actions.DeviceActions` does that.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from .types import DEVICE_PROPERTIES, DeviceClass

if TYPE_CHECKING:
    from weave.core.event_manager import EventManager
    from weave.core.ui.layout import UIGroup


@dataclass
class Capability:
    """One named facet of a device (e.g. ``showable``)."""
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    events: list[str] = field(default_factory=list)

    @classmethod
    def from_spec(cls, name: str, payload: dict[str, Any] | None) -> "Capability":
        payload = dict(payload or {})
        events = payload.pop("on", None) or []
        return cls(name=name, attributes=payload, events=[str(e) for e in events])

    def get(self, attribute: str, default: Any = None) -> Any:
        return self.attributes.get(attribute, default)


@dataclass
class Listener:
    """A callback attached to one event type on one device."""
    fn: Callable[..., Any]
    manager: "EventManager | None" = None

    @property
    def priority(self) -> int:
        # Directly attached listeners run first, then by how many devices
        # their manager spans.
        if self.manager is None:
            return 0
        return self.manager.device_num()


@dataclass(eq=False)
class Device:
    """
    A device addressable by selectors.

    Equality is identity: selections hold references and exclude members
    by reference, so two devices with the same properties stay distinct.
    """
    id: str
    device_class: DeviceClass
    name: str | None = None
    fullname: str | None = None
    joint: str | None = None
    os: str | None = None
    live: bool = False
    capabilities: dict[str, Capability] = field(default_factory=dict)

    # Runtime state
    selection_id: str | None = None
    html: str = ""
    ui_elements: list["UIGroup"] = field(default_factory=list)
    listeners: dict[str, list[Listener]] = field(default_factory=dict, repr=False)

    @property
    def type(self) -> str:
        return self.device_class.value

    @property
    def has_ui(self) -> bool:
        return bool(self.ui_elements)

    def property_value(self, key: str) -> Any:
        """Value of a device-level property addressed by the '*' target."""
        if key not in DEVICE_PROPERTIES and key != "id":
            return None
        return getattr(self, key, None)

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def capability(self, name: str) -> Capability | None:
        return self.capabilities.get(name)

    def events(self) -> list[str]:
        """All input events this device can raise, in capability order."""
        out: list[str] = []
        for cap in self.capabilities.values():
            for evt in cap.events:
                if evt not in out:
                    out.append(evt)
        return out

    # ------------------------------------------------------------------
    # Listeners

    def add_listener(
        self,
        event_type: str,
        fn: Callable[..., Any],
        manager: "EventManager | None" = None,
    ) -> bool:
        """Attach a listener. Returns True if it is the first for this event type."""
        bucket = self.listeners.setdefault(event_type, [])
        first = not bucket
        bucket.append(Listener(fn=fn, manager=manager))
        return first

    def remove_listeners(self, manager: "EventManager") -> int:
        removed = 0
        for event_type, bucket in list(self.listeners.items()):
            kept = [listener for listener in bucket if listener.manager is not manager]
            removed += len(bucket) - len(kept)
            self.listeners[event_type] = kept
        return removed

    def ordered_listeners(self, event_type: str) -> list[Listener]:
        """Snapshot of listeners for ``event_type`` in firing order.

        The sort is stable, so listeners with equal priority keep their
        registration order.
        """
        return sorted(self.listeners.get(event_type, ()), key=lambda listener: listener.priority)

    # ------------------------------------------------------------------
    # Lifecycle

    def clear_ui(self) -> None:
        self.html = ""
        self.ui_elements = []
        self.selection_id = None

    def clone(self, device_id: str, *, name: str | None = None, live: bool = False) -> "Device":
        """Copy this template under a fresh id (listeners and UI are not copied)."""
        return Device(
            id=device_id,
            device_class=self.device_class,
            name=name if name else self.name,
            fullname=self.fullname,
            joint=self.joint,
            os=self.os,
            live=live,
            capabilities=copy.deepcopy(self.capabilities),
        )

    def __repr__(self) -> str:
        return f"Device(id={self.id!r}, type={self.type!r}, name={self.name!r}, live={self.live})"
