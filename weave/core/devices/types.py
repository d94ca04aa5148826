"""
Core type definitions for devices and selections.

These enums are used across the whole engine: selector matching,
selection dispatch and UI rendering all branch on them instead of on
raw type strings.
"""

from enum import Enum


class DeviceClass(Enum):
    """Closed set of device classes the engine knows how to address."""
    PHONE = "phone"
    WATCH = "watch"
    GLASS = "glass"
    TABLET = "tablet"

    @classmethod
    def from_type(cls, value: str) -> "DeviceClass":
        """Resolve a spec/proxy type string (case-insensitive)."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown device type '{value}'") from None

    @property
    def renders_cards(self) -> bool:
        """Watch and glass show one element per card instead of a full panel."""
        return self in (DeviceClass.WATCH, DeviceClass.GLASS)


class SelectionMode(Enum):
    """Fan-out discipline of a selection."""
    DEFAULT = "default"      # pick one member
    ALL = "all"              # broadcast + synchronized aggregation
    COMBINE = "combine"      # members act as one composite device


# Device-level properties addressable through the '*' selector target.
DEVICE_PROPERTIES: tuple[str, ...] = ("name", "type", "joint", "os")

# Interactive acknowledgement that bypasses the combine-mode window.
TAP_BUTTON_EVENT = "tap:button"

# Default correlation window for 'all' and 'combine' selections.
DEFAULT_TIME_RANGE_MS = 1000
