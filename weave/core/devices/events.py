"""
Device Events - Logical events delivered to developer callbacks, plus the
events device proxies send to the engine.

``Event`` is what a callback registered through ``Selection.on`` receives.
``SingleDeviceEvent`` is the one-device case with scalar accessors.

Proxy events (joined / left / input) are the uniform shape the transport
layer hands to ``Engine.handle_event``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

if TYPE_CHECKING:
    from weave.core.selection import Selection
    from .device import Device
    from .types import SelectionMode


@dataclass(frozen=True)
class Event:
    """
    A logical event, possibly aggregated across several devices.

    Attributes:
        devices: Selection of the devices the event covers (carries the mode)
        event_type: Event name, e.g. ``shake`` or ``tap:button``
        timestamp: Milliseconds since the epoch of the triggering occurrence
        values: Per-device values in member order (or the triggering values
            for a combine-mode bypass)
    """
    devices: "Selection"
    event_type: str
    timestamp: float
    values: tuple[Any, ...] = ()

    @property
    def mode(self) -> "SelectionMode":
        return self.devices.mode

    @property
    def value(self) -> Any:
        return list(self.values)


@dataclass(frozen=True)
class SingleDeviceEvent(Event):
    """An occurrence raised by exactly one device."""

    @property
    def device(self) -> "Device | None":
        members = self.devices.devices
        return members[0] if members else None

    @property
    def value(self) -> Any:
        return self.values[0] if self.values else None


# =========================================================================
# Proxy events
# =========================================================================

@dataclass(frozen=True)
class DeviceJoinedEvent:
    """A live device announced itself through a proxy."""
    device_id: str
    device_type: str
    name: str | None = None


@dataclass(frozen=True)
class DeviceLeftEvent:
    """A live device went offline."""
    device_id: str


@dataclass(frozen=True)
class DeviceInputEvent:
    """A raw input occurrence (tap, shake, ...) on one device."""
    device_id: str
    event_type: str
    value: Any = None
    timestamp: float | None = None


ProxyEvent = DeviceJoinedEvent | DeviceLeftEvent | DeviceInputEvent

# Returns whether the event was accepted (a rejected join is not bound to its socket).
ProxyEventHandler = Callable[[ProxyEvent], bool]


def event_from_message(message: Mapping[str, Any]) -> ProxyEvent:
    """
    Build a proxy event from a decoded proxy message.

    Raises:
        ValueError: unknown message type or missing fields
    """
    kind = message.get("type")
    device_id = message.get("id")
    if not isinstance(device_id, str) or not device_id:
        raise ValueError("proxy message without a device id")

    if kind == "join":
        device_type = message.get("deviceType")
        if not isinstance(device_type, str) or not device_type:
            raise ValueError(f"join message for {device_id} without deviceType")
        return DeviceJoinedEvent(device_id=device_id, device_type=device_type, name=message.get("name"))

    if kind == "leave":
        return DeviceLeftEvent(device_id=device_id)

    if kind == "event":
        event_type = message.get("event")
        if not isinstance(event_type, str) or not event_type:
            raise ValueError(f"event message for {device_id} without an event name")
        timestamp = message.get("timestamp")
        return DeviceInputEvent(
            device_id=device_id,
            event_type=event_type,
            value=message.get("value"),
            timestamp=float(timestamp) if isinstance(timestamp, (int, float)) else None,
        )

    raise ValueError(f"unknown proxy message type {kind!r}")
