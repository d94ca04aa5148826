"""
Device Actions - execute one action on one device.

Selections decide *which* members an action goes to; this module decides
what happens on each of them: the renderer is always updated (it stands
in for the emulator screen), and live devices additionally receive the
verb over the transport.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Callable, Optional

from weave.core.logging_utils import get_module_logger
from weave.core.ui.layout import UILayout, cards, decompose

if TYPE_CHECKING:
    from weave.core.devices.device import Device
    from weave.core.event_manager import EventManager
    from weave.core.transport.base import Transport
    from weave.core.ui.renderer import Renderer

logger = get_module_logger("DeviceActions")

DeviceCallback = Callable[["Device"], Any]

# Attribute names accepted by update_ui_attr, mapped to UIMember fields.
_MEMBER_FIELDS = {"value": "val", "val": "val", "html": "html", "id": "id", "src": "src"}


class DeviceActions:
    """Per-device action execution against a renderer and a transport."""

    def __init__(self, renderer: "Renderer", transport: "Transport"):
        self.renderer = renderer
        self.transport = transport

    def _send(self, device: "Device", verb: str, payload: Any = None) -> None:
        if not device.live:
            return
        try:
            self.transport.send(device.id, verb, payload)
        except Exception as e:
            logger.error(f"Transport failed to send {verb} to {device.id}: {e}")

    @staticmethod
    def _callback(device: "Device", fn: Optional[DeviceCallback]) -> None:
        if fn is None:
            return
        try:
            fn(device)
        except Exception as e:
            logger.exception(f"Error in action callback for {device.id}: {e}")

    # =========================================================================
    # UI
    # =========================================================================

    def show(
        self,
        device: "Device",
        markup: str,
        selection_id: str | None = None,
        callback: Optional[DeviceCallback] = None,
        layout: UILayout | None = None,
    ) -> "Device":
        """Render ``markup`` (or the groups in ``layout``) on a device."""
        if layout is None:
            layout = decompose(markup)

        device.selection_id = selection_id
        # Each device owns its element state; update_ui_attr edits one device only.
        device.ui_elements = copy.deepcopy(list(layout.groups))
        device.html = self.renderer.render_panel(markup, layout) if markup else ""

        self.wakeup(device)
        self.renderer.show_ui(device, self.screen_content(device))
        if device.device_class.renders_cards:
            self._send(device, "show", [group.to_dict() for group in device.ui_elements])
        else:
            self._send(device, "show", device.html)

        self._callback(device, callback)
        return device

    @staticmethod
    def screen_content(device: "Device") -> Any:
        """What an emulated screen shows: the panel, or the first card."""
        if not device.html:
            return ""
        if not device.device_class.renders_cards:
            return device.html
        rows = cards(device.ui_elements)
        return rows[0][0] if rows else ""

    def update_ui_attr(self, device: "Device", element_id: str, attr: str, value: Any) -> bool:
        """Change one attribute of a shown element and re-show the device UI."""
        field_name = _MEMBER_FIELDS.get(attr)
        if field_name is None:
            logger.warning("Cannot update unknown UI attribute %s", attr)
            return False

        found = False
        for group in device.ui_elements:
            for member in group.members:
                if member.id == element_id:
                    setattr(member, field_name, None if value is None else str(value))
                    found = True
                    break
        if not found:
            return False

        markup = "".join(self.renderer.render(g.tag, g.members) for g in device.ui_elements)
        self.show(device, markup, device.selection_id)
        return True

    # =========================================================================
    # Media, calls and apps
    # =========================================================================

    def play(
        self,
        device: "Device",
        path: str,
        selection_id: str | None = None,
        callback: Optional[DeviceCallback] = None,
    ) -> "Device":
        device.selection_id = selection_id
        self.wakeup(device)
        self.renderer.apply_visual(device.id, "play")
        self._send(device, "play", path)
        self._callback(device, callback)
        return device

    def call(
        self,
        device: "Device",
        number: str,
        selection_id: str | None = None,
        callback: Optional[DeviceCallback] = None,
    ) -> "Device":
        device.selection_id = selection_id
        self.wakeup(device)
        self.renderer.show_ui(device, f"Calling {number}...")
        self._send(device, "call", number)
        self._callback(device, callback)
        return device

    def wakeup(self, device: "Device") -> "Device":
        self.renderer.apply_visual(device.id, "wakeup")
        self._send(device, "wakeup")
        return device

    def start_app(self, device: "Device", app_name: str, selection_id: str | None = None) -> "Device":
        device.selection_id = selection_id
        self.renderer.show_ui(device, f'<div class="app app{app_name}"></div>')
        self._send(device, "startApp", app_name)
        return device

    def kill_app(self, device: "Device", app_name: str) -> "Device":
        self.renderer.show_ui(device, "")
        self._send(device, "killApp", app_name)
        return device

    def reset(self, device: "Device") -> "Device":
        device.clear_ui()
        self.renderer.show_ui(device, "")
        self.renderer.apply_visual(device.id, "reset")
        self._send(device, "reset")
        return device

    # =========================================================================
    # Events
    # =========================================================================

    def subscribe(
        self,
        device: "Device",
        event_type: str,
        fn: Callable[..., Any],
        manager: "EventManager | None" = None,
    ) -> bool:
        """Attach a listener; the first one on a live device is announced."""
        first = device.add_listener(event_type, fn, manager)
        if first:
            self._send(device, "on", event_type)
        return first


__all__ = ["DeviceActions", "DeviceCallback"]
