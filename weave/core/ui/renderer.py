"""
Renderer - the boundary between the engine and whatever draws device UI.

The engine only makes grouping decisions. Turning element groups into
markup, wrapping a device panel, flashing an input visual and putting
content on an emulated screen are all delegated to a renderer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

from weave.core.logging_utils import get_module_logger
from .layout import BUTTON_TAG, TEXT_TAG, UILayout, UIMember, render_markup

if TYPE_CHECKING:
    from weave.core.devices.device import Device

logger = get_module_logger("Renderer")


@runtime_checkable
class Renderer(Protocol):
    """Protocol every renderer implements."""

    def render(self, tag: str, members: Sequence[UIMember]) -> str:
        """Markup for one element group."""
        ...

    def render_panel(self, markup: str, layout: UILayout) -> str:
        """Wrap a device's markup in its panel."""
        ...

    def apply_visual(self, device_id: str, event_name: str) -> None:
        """Show the visual cue for an input event or action on a device."""
        ...

    def show_ui(self, device: "Device", content: Any) -> None:
        """Put content on a device's (emulated) screen."""
        ...


@dataclass(frozen=True)
class PanelSetup:
    """Sizing rules for the panel a device's UI is wrapped in (percentages)."""
    id: str = "rootPanel"
    max_width: int = 95
    max_height: int = 70
    min_height: int = 15
    font_size: int = 40
    small_font_size: int = 30
    text_row_height: int = 10


def wrap_panel(markup: str, layout: UILayout, setup: PanelSetup = PanelSetup()) -> str:
    """Wrap markup in a styled panel sized for its text rows and button groups."""
    if not markup:
        return markup

    panel = f"#{setup.id}"
    style = (
        f"{panel} {{height:100%;padding:5px;font-size:20px!important;text-align:center;}}"
        f"{panel} div {{height:100%;overflow:auto;text-align:center;}}"
        f"{panel} img {{max-width:100%;max-height:100%;height:auto;}}"
    )
    text_rows = layout.row_count(TEXT_TAG)
    if text_rows:
        style += f"{panel} p {{height:{setup.text_row_height}%;margin-bottom:5px;}}"

    if layout.row_count(BUTTON_TAG) and layout.max_buttons:
        height = setup.max_height - text_rows * setup.text_row_height
        height = max(height / layout.max_buttons, setup.min_height)
        font = setup.font_size if height > setup.min_height else setup.small_font_size
        style += (
            f"{panel} button {{width:{setup.max_width}%;height:{height:g}%;"
            f"margin-bottom:5px;font-size:{font}px;}}"
        )
    return f'<div id="{setup.id}"><style>{style}</style>{markup}</div>'


class HeadlessRenderer:
    """
    Renderer used when no emulator window is attached.

    It renders markup the same way an emulator would and records, per
    device, the last content shown and the visuals applied, so hosts and
    tests can inspect what each device would display.
    """

    def __init__(self, setup: PanelSetup | None = None) -> None:
        self.setup = setup or PanelSetup()
        self.screens: dict[str, Any] = {}
        self.visuals: list[tuple[str, str]] = []

    def render(self, tag: str, members: Sequence[UIMember]) -> str:
        return render_markup(tag, members)

    def render_panel(self, markup: str, layout: UILayout) -> str:
        return wrap_panel(markup, layout, self.setup)

    def apply_visual(self, device_id: str, event_name: str) -> None:
        self.visuals.append((device_id, event_name))
        logger.debug("%s <- %s", device_id, event_name)

    def show_ui(self, device: "Device", content: Any) -> None:
        self.screens[device.id] = content

    def screen(self, device_id: str) -> Any:
        return self.screens.get(device_id)


__all__ = ["Renderer", "PanelSetup", "HeadlessRenderer", "wrap_panel"]
