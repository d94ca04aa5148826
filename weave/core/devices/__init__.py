"""
Device model for Weave.

Device records, per-class capability tables, the registry and the event
types exchanged with device proxies and developer callbacks.
"""

from .types import DEVICE_PROPERTIES, DEFAULT_TIME_RANGE_MS, TAP_BUTTON_EVENT, DeviceClass, SelectionMode
from .device import Capability, Device, Listener
from .catalog import CapabilityTable, DEFAULT_CAPABILITIES, EMULATOR_PRESETS, build_capabilities, resolve_preset
from .registry import DeviceRegistry
from .spec_loader import load_device_spec, load_device_spec_async, parse_device_spec

__all__ = [
    'DEVICE_PROPERTIES',
    'DEFAULT_TIME_RANGE_MS',
    'TAP_BUTTON_EVENT',
    'DeviceClass',
    'SelectionMode',
    'Capability',
    'Device',
    'Listener',
    'CapabilityTable',
    'DEFAULT_CAPABILITIES',
    'EMULATOR_PRESETS',
    'build_capabilities',
    'resolve_preset',
    'DeviceRegistry',
    'load_device_spec',
    'load_device_spec_async',
    'parse_device_spec',
]
