"""
Device Catalog - Capability tables and device templates.

The catalog holds what a loaded device spec says about each device type:
which capabilities it has, the attribute values of each capability and the
input events each capability raises. From that it derives the capability
list used for selector suggestions and the event -> capability index used
to route combine-mode subscriptions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from weave.core.logging_utils import get_module_logger
from .device import Capability, Device
from .types import DeviceClass

logger = get_module_logger("DeviceCatalog")


# Built-in capability table, one entry per device class. Used when the host
# starts without a device spec file.
DEFAULT_CAPABILITIES: dict[DeviceClass, dict[str, dict[str, Any]]] = {
    DeviceClass.PHONE: {
        "showable": {"size": "normal", "shape": "rect"},
        "touchable": {"on": ["tap", "tap:button", "swipeLeft", "swipeRight"]},
        "speakable": {},
        "shakable": {"on": ["shake"]},
        "callable": {},
    },
    DeviceClass.WATCH: {
        "showable": {"size": "small", "shape": "round"},
        "touchable": {"on": ["tap", "tap:button", "swipeLeft", "swipeRight", "swipeUp", "swipeDown"]},
        "shakable": {"on": ["shake"]},
        "rotatable": {"on": ["rotateCW", "rotateCCW"]},
    },
    DeviceClass.GLASS: {
        "showable": {"size": "small", "shape": "rect"},
        "touchable": {"on": ["tap", "swipeLeft", "swipeRight"]},
        "speakable": {},
    },
    DeviceClass.TABLET: {
        "showable": {"size": "normal", "shape": "rect"},
        "touchable": {"on": ["tap", "tap:button", "swipeLeft", "swipeRight"]},
        "speakable": {},
    },
}

DEFAULT_PROPERTIES: dict[DeviceClass, dict[str, str]] = {
    DeviceClass.PHONE: {"name": "phone", "joint": "hand", "os": "android"},
    DeviceClass.WATCH: {"name": "watch", "joint": "wrist", "os": "android"},
    DeviceClass.GLASS: {"name": "glass", "joint": "head", "os": "android"},
    DeviceClass.TABLET: {"name": "tablet", "joint": "hand", "os": "android"},
}

# Named emulator populations.
EMULATOR_PRESETS: dict[str, dict[str, int]] = {
    "phone-watch-glass": {"phone": 1, "watch": 1, "glass": 1},
    "phone-watch-tablet": {"phone": 1, "watch": 1, "tablet": 1},
    "phone-watch": {"phone": 1, "watch": 1},
    "one-phone": {"phone": 1},
    "two-phones": {"phone": 2},
    "glass": {"glass": 1},
}


@dataclass
class CapabilityTable:
    """Per-type templates plus the indexes derived from them."""
    templates: dict[DeviceClass, Device] = field(default_factory=dict)
    capability_list: list[str] = field(default_factory=list)
    action_index: dict[str, str] = field(default_factory=dict)
    full_devices: list[Device] = field(default_factory=list)

    def register(self, device: Device) -> None:
        """Index a spec device: first device of a type becomes its template."""
        for cap_name, cap in device.capabilities.items():
            if "." not in cap_name and cap_name not in self.capability_list:
                self.capability_list.append(cap_name)
            for evt in cap.events:
                self.action_index[evt] = cap_name

        if device.device_class not in self.templates:
            self.templates[device.device_class] = device
            logger.debug("Template for %s: %s", device.type, device.id)

        self.full_devices.append(device)

    def knows_capability(self, name: str) -> bool:
        return name in self.capability_list or any(
            name in template.capabilities for template in self.templates.values()
        )

    def capability_for_event(self, event_type: str) -> str | None:
        """Capability owning ``event_type`` (full name first, then prefix before ':')."""
        if event_type in self.action_index:
            return self.action_index[event_type]
        action = event_type.split(":", 1)[0]
        return self.action_index.get(action)

    def template(self, device_class: DeviceClass) -> Device | None:
        return self.templates.get(device_class)

    def device_types(self) -> list[str]:
        return [device_class.value for device_class in self.templates]

    @classmethod
    def builtin(cls) -> "CapabilityTable":
        """Table built from :data:`DEFAULT_CAPABILITIES`."""
        table = cls()
        for device_class, caps in DEFAULT_CAPABILITIES.items():
            props = DEFAULT_PROPERTIES[device_class]
            table.register(
                Device(
                    id=device_class.value,
                    device_class=device_class,
                    name=props["name"],
                    fullname=props["name"],
                    joint=props["joint"],
                    os=props["os"],
                    capabilities=build_capabilities(caps),
                )
            )
        return table


def build_capabilities(payload: Mapping[str, Any] | None) -> dict[str, Capability]:
    """Turn a ``{capability: {attr: value, "on": [...]}}`` mapping into Capability objects."""
    capabilities: dict[str, Capability] = {}
    for cap_name, cap_payload in (payload or {}).items():
        if not isinstance(cap_payload, Mapping):
            cap_payload = {}
        capabilities[str(cap_name)] = Capability.from_spec(str(cap_name), dict(cap_payload))
    return capabilities


def resolve_preset(name: str) -> dict[str, int]:
    try:
        return dict(EMULATOR_PRESETS[name])
    except KeyError:
        raise ValueError(
            f"Unknown emulator preset '{name}' (available: {', '.join(EMULATOR_PRESETS)})"
        ) from None


__all__ = [
    "CapabilityTable",
    "DEFAULT_CAPABILITIES",
    "EMULATOR_PRESETS",
    "build_capabilities",
    "resolve_preset",
]
