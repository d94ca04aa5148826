"""Weave - select heterogeneous devices with CSS-like selectors and coordinate them."""

from __future__ import annotations

from importlib import metadata

from .core.devices import Capability, CapabilityTable, Device, DeviceClass, SelectionMode
from .core.devices.events import Event, SingleDeviceEvent
from .core.engine import Engine
from .core.errors import ErrorKind, WeaveError
from .core.selection import Selection, SelectionOption
from .core.selector import compile_selector, matches

try:
    __version__ = metadata.version("weave")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


__all__ = [
    "__version__",
    "Capability",
    "CapabilityTable",
    "Device",
    "DeviceClass",
    "Engine",
    "ErrorKind",
    "Event",
    "Selection",
    "SelectionMode",
    "SelectionOption",
    "SingleDeviceEvent",
    "WeaveError",
    "compile_selector",
    "matches",
]
