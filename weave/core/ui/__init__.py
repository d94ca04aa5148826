"""UI decomposition, combine planning and the renderer boundary."""

from .layout import (
    CombinePlan,
    UIGroup,
    UILayout,
    UIMember,
    decompose,
    plan_combine,
    render_markup,
)
from .renderer import HeadlessRenderer, PanelSetup, Renderer, wrap_panel

__all__ = [
    "CombinePlan",
    "UIGroup",
    "UILayout",
    "UIMember",
    "decompose",
    "plan_combine",
    "render_markup",
    "HeadlessRenderer",
    "PanelSetup",
    "Renderer",
    "wrap_panel",
]
