"""
Selector suggestion.

Given the ids of devices a developer picked (for example in a device
panel), synthesize selector strings that would select them:

1. one selector from the device properties (type, joint, os) the picked
   devices have in common,
2. one selector per capability every picked device has, constrained by
   the attribute values they all share,
3. a name-list fallback appended last.

Suggestions 1 and 2 are ordered by how many registry devices they match,
fewest first, so the most specific selector leads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from weave.core.errors import InvalidSelectorError
from weave.core.logging_utils import get_module_logger
from .parser import compile_selector
from .query import Query

if TYPE_CHECKING:
    from weave.core.devices.catalog import CapabilityTable
    from weave.core.devices.device import Device
    from weave.core.devices.registry import DeviceRegistry

logger = get_module_logger("SelectorSuggest")

_VALUE_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_-")

# Properties used for the property suggestion; 'name' only feeds the fallback.
_SUGGEST_PROPERTIES = ("type", "joint", "os")


@dataclass(frozen=True)
class SelectorSuggestion:
    selector: str
    query: Query
    device_ids: tuple[str, ...]


def _selector_value(value: Any) -> str | None:
    """Selector-safe form of a stored value, or None if it cannot be expressed."""
    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value).lower()
    if not text or any(ch not in _VALUE_CHARS for ch in text):
        return None
    return text


def _unique(values: Iterable[str]) -> list[str]:
    out: list[str] = []
    for value in values:
        if value not in out:
            out.append(value)
    return out


def _brackets(constraints: dict[str, list[str]]) -> str:
    return "".join(f'[{key}="{",".join(values)}"]' for key, values in constraints.items())


def _property_selector(devices: Sequence["Device"]) -> str:
    common: dict[str, list[str]] = {}
    for prop in _SUGGEST_PROPERTIES:
        values = [_selector_value(d.property_value(prop)) for d in devices]
        if any(v is None for v in values):
            continue
        common[prop] = _unique(values)

    types = common.pop("type", None)
    if types and len(types) == 1:
        return f":{types[0]}{_brackets(common)}"
    if types:
        common = {"type": types, **common}
    return f"*{_brackets(common)}"


def _capability_selectors(devices: Sequence["Device"], capability_list: Sequence[str]) -> list[str]:
    selectors = []
    for cap_name in capability_list:
        caps = [d.capability(cap_name) for d in devices]
        if any(cap is None for cap in caps):
            continue
        shared: dict[str, list[str]] = {}
        for attr, value in caps[0].attributes.items():
            if all(attr in cap.attributes and cap.attributes[attr] == value for cap in caps[1:]):
                text = _selector_value(value)
                if text is not None:
                    shared[attr] = [text]
        selectors.append(f".{cap_name}{_brackets(shared)}")
    return selectors


def _build(selector: str, registry: "DeviceRegistry") -> SelectorSuggestion | None:
    try:
        query = compile_selector(selector)
    except InvalidSelectorError as exc:
        logger.debug("Discarding suggestion %s (%s)", selector, exc)
        return None
    ids = tuple(d.id for d in registry.query(query))
    return SelectorSuggestion(selector=selector, query=query, device_ids=ids)


def create_selectors(
    registry: "DeviceRegistry",
    table: "CapabilityTable",
    include_ids: Sequence[str],
    exclude_ids: Sequence[str] = (),
) -> list[SelectorSuggestion]:
    """
    Suggest selectors for the devices in ``include_ids``.

    Suggestions that would also select a device in ``exclude_ids`` are
    dropped. The name-list fallback is always last and is not ranked.
    """
    if not include_ids:
        return []

    picked = [d for d in registry if d.id in include_ids]
    if not picked:
        return []

    candidates = [_property_selector(picked)]
    candidates.extend(_capability_selectors(picked, table.capability_list))

    excluded = set(exclude_ids)
    suggestions: list[SelectorSuggestion] = []
    for selector in _unique(candidates):
        suggestion = _build(selector, registry)
        if suggestion is None or excluded.intersection(suggestion.device_ids):
            continue
        suggestions.append(suggestion)
    suggestions.sort(key=lambda s: len(s.device_ids))

    names = _unique(v for v in (_selector_value(d.name) for d in picked) if v is not None)
    if names:
        fallback = _build(",".join(f"#{name}" for name in names), registry)
        if fallback is not None:
            suggestions.append(fallback)
    return suggestions


__all__ = ["SelectorSuggestion", "create_selectors"]
