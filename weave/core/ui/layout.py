"""
UI decomposition and combine-mode planning.

Markup passed to ``Selection.show`` is broken into ordered element groups:
consecutive elements with the same tag form one group. A bare string is a
single ``P`` group, and a root ``<div>`` is flattened to its descendants.
Combine mode then hands the first image group to a device that can show
non-small content and the rest, concatenated, to the first device that
holds no UI yet.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Sequence

from bs4 import BeautifulSoup, Tag

if TYPE_CHECKING:
    from weave.core.devices.device import Device

IMAGE_TAG = "IMG"
BUTTON_TAG = "BUTTON"
TEXT_TAG = "P"


@dataclass
class UIMember:
    html: str
    val: str | None = None
    id: str | None = None
    src: str | None = None


@dataclass
class UIGroup:
    tag: str
    members: list[UIMember] = field(default_factory=list)

    @property
    def is_image(self) -> bool:
        return self.tag == IMAGE_TAG

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.tag, "members": [asdict(m) for m in self.members]}


@dataclass
class UILayout:
    groups: list[UIGroup] = field(default_factory=list)
    total: int = 0
    max_buttons: int = 0
    rows: dict[str, list[int]] = field(default_factory=dict)

    def first_index(self, tag: str) -> int | None:
        indexes = self.rows.get(tag)
        return indexes[0] if indexes else None

    def row_count(self, tag: str) -> int:
        return len(self.rows.get(tag, ()))

    def _append(self, tag: str, members: list[UIMember]) -> None:
        self.groups.append(UIGroup(tag, members))
        self.rows.setdefault(tag, []).append(len(self.groups) - 1)
        if tag == BUTTON_TAG:
            self.max_buttons = max(self.max_buttons, len(members))


def _member(el: Tag) -> UIMember:
    return UIMember(
        html=el.decode_contents(),
        val=el.get("value") or None,
        id=el.get("id") or None,
        src=el.get("src") or None,
    )


def decompose(markup: str) -> UILayout:
    """Group the elements of ``markup`` by consecutive tag."""
    layout = UILayout()
    if not markup:
        return layout

    soup = BeautifulSoup(markup, "html.parser")
    top = [child for child in soup.contents if isinstance(child, Tag)]
    if not top:
        layout._append(TEXT_TAG, [UIMember(html=markup)])
        return layout

    if top[0].name == "div":
        elements = [el for root in top for el in root.find_all(True)]
    else:
        elements = top
    layout.total = len(elements)

    current_tag: str | None = None
    current: list[UIMember] = []
    for el in elements:
        tag = el.name.upper()
        if tag != current_tag:
            if current_tag is not None:
                layout._append(current_tag, current)
            current_tag = tag
            current = []
        current.append(_member(el))
    if current_tag is not None:
        layout._append(current_tag, current)
    return layout


def render_markup(tag: str, members: Sequence[UIMember]) -> str:
    """Serialize one element group back to markup."""
    name = tag.lower()
    parts = []
    for item in members:
        attrs = ""
        if item.id is not None:
            attrs += f' id="{item.id}"'
        if item.src is not None:
            attrs += f' src="{item.src}"'
        if item.val is not None:
            attrs += f' value="{item.val}"'
        parts.append(f"<{name}{attrs}>{item.html}</{name}>")
    return "".join(parts)


def render_card(tag: str, member: UIMember) -> str:
    """Single-element card used by watch and glass emulators."""
    name = tag.lower()
    val = member.val or ""
    return f'<{name} value="{val}" class="{val}" src="{member.src or ""}">{member.html}</{name}>'


def cards(groups: Sequence[UIGroup]) -> list[list[str]]:
    """One row of cards per group, one card per member."""
    return [[render_card(g.tag, m) for m in g.members] for g in groups if g.members]


def can_show_large(device: "Device") -> bool:
    showable = device.capability("showable")
    return showable is not None and showable.get("size") != "small"


@dataclass
class CombinePlan:
    image_group: UIGroup | None = None
    image_device: "Device | None" = None
    remainder: list[UIGroup] = field(default_factory=list)
    remainder_device: "Device | None" = None


def plan_combine(layout: UILayout, members: Sequence["Device"]) -> CombinePlan:
    """
    First-fit assignment of element groups to members.

    Two independent scans in member order: the first image group goes to the
    first member without UI that can show non-small content; everything else
    goes to the first member without UI that did not just take the image.
    Once an image is placed, later image groups are left out of the
    remainder. If no member can take the image, every group (images
    included) stays in the remainder.
    """
    plan = CombinePlan()
    image_idx = layout.first_index(IMAGE_TAG)

    if image_idx is not None:
        for device in members:
            if not device.has_ui and can_show_large(device):
                plan.image_group = layout.groups[image_idx]
                plan.image_device = device
                break

    if plan.image_device is not None:
        plan.remainder = [group for group in layout.groups if group.tag != IMAGE_TAG]
    else:
        plan.remainder = list(layout.groups)
    if plan.remainder:
        for device in members:
            if device is plan.image_device or device.has_ui:
                continue
            plan.remainder_device = device
            break
    return plan


__all__ = [
    "UIMember",
    "UIGroup",
    "UILayout",
    "CombinePlan",
    "decompose",
    "render_markup",
    "render_card",
    "cards",
    "can_show_large",
    "plan_combine",
]
