"""Evaluate compiled queries against device records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from .query import WILDCARD, Constraint, ConstraintOp, Group, Query, QueryOp

if TYPE_CHECKING:
    from weave.core.devices.device import Device


def _normalize_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).lower()


def satisfies(stored: Any, constraint: Constraint) -> bool:
    value = _normalize_value(stored)
    if value is None:
        return False
    if constraint.op is ConstraintOp.OR:
        return value in constraint.values
    return all(value == expected for expected in constraint.values)


def _constraints_hold(lookup: Mapping[str, Any], constraints: Mapping[str, Constraint]) -> bool:
    for attr, constraint in constraints.items():
        if attr not in lookup or not satisfies(lookup[attr], constraint):
            return False
    return True


def group_matches(device: "Device", group: Group) -> bool:
    """A group holds when every one of its targets holds."""
    for target, constraints in group:
        if target == WILDCARD:
            props = {attr: device.property_value(attr) for attr in constraints}
            if not _constraints_hold(props, constraints):
                return False
            continue

        capability = device.capability(target)
        if capability is None:
            return False
        if not _constraints_hold(capability.attributes, constraints):
            return False
    return True


def matches(device: "Device", query: Query) -> bool:
    """Whether ``device`` satisfies ``query``."""
    if query.op is QueryOp.NONE:
        return False
    if query.op is QueryOp.OR:
        return any(group_matches(device, group) for group in query.groups)
    return all(group_matches(device, group) for group in query.groups)


__all__ = ["matches", "group_matches", "satisfies"]
