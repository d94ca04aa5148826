"""
Device spec loader.

Reads the JSON device specification (capability table plus device list)
that the host consumes once at setup, and turns it into a
:class:`CapabilityTable` of Device templates.

Expected layout::

    {
      "deviceCapabilities": {"<key>": {"showable": {"size": "small", "on": [...]}}},
      "devices": {"<key>": {"id": "...", "type": "watch", "name": "...", "joint": "wrist"}}
    }
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Mapping

import aiofiles

from weave.core.errors import ErrorKind, SpecLoadError
from weave.core.logging_utils import get_module_logger
from .catalog import CapabilityTable, build_capabilities
from .device import Device
from .types import DEVICE_PROPERTIES, DeviceClass

logger = get_module_logger("SpecLoader")


def _lower(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).lower()


def parse_device_spec(payload: Mapping[str, Any]) -> CapabilityTable:
    """Build a capability table from an already-decoded spec payload."""
    if not isinstance(payload, Mapping):
        raise SpecLoadError("device spec must be a JSON object")

    capabilities = payload.get("deviceCapabilities")
    devices = payload.get("devices")
    if not isinstance(capabilities, Mapping) or not isinstance(devices, Mapping):
        raise SpecLoadError("device spec needs 'deviceCapabilities' and 'devices' objects")

    table = CapabilityTable()
    for key, info in devices.items():
        if not isinstance(info, Mapping):
            logger.report(ErrorKind.INVALID_SPEC, "device entry %s is not an object", key)
            continue

        try:
            device_class = DeviceClass.from_type(info.get("type", ""))
        except ValueError as exc:
            logger.report(ErrorKind.INVALID_SPEC, "skipping device %s (%s)", key, exc)
            continue

        props = {prop: _lower(info.get(prop)) for prop in DEVICE_PROPERTIES if prop != "type"}
        device = Device(
            id=str(info.get("id") or key),
            device_class=device_class,
            name=props["name"],
            fullname=info.get("fullname"),
            joint=props["joint"],
            os=props["os"],
            live=False,
            capabilities=build_capabilities(capabilities.get(key)),
        )
        table.register(device)

    logger.info(
        "Loaded device spec: %d devices, %d capabilities, %d events",
        len(table.full_devices),
        len(table.capability_list),
        len(table.action_index),
    )
    return table


def _decode(text: str, source: Path) -> Mapping[str, Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SpecLoadError(f"{source}: invalid JSON ({exc})") from exc


def load_device_spec(path: Path) -> CapabilityTable:
    """Load and parse a spec file synchronously."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecLoadError(f"cannot read device spec {path}: {exc}") from exc
    return parse_device_spec(_decode(text, path))


async def load_device_spec_async(path: Path) -> CapabilityTable:
    """Async version for use in the host event loop."""
    path = Path(path)
    if not await asyncio.to_thread(path.exists):
        raise SpecLoadError(f"device spec not found: {path}")
    try:
        async with aiofiles.open(path, "r", encoding="utf-8") as fh:
            text = await fh.read()
    except OSError as exc:
        raise SpecLoadError(f"cannot read device spec {path}: {exc}") from exc
    return parse_device_spec(_decode(text, path))


__all__ = ["parse_device_spec", "load_device_spec", "load_device_spec_async"]
