"""
Compiled selector values.

A :class:`Query` is either an AND or an OR over :class:`Group` values, or
the NONE marker that matches nothing. Each group maps a target key (a
capability name, or ``*`` for device-level properties) to attribute
constraints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

WILDCARD = "*"


class QueryOp(Enum):
    AND = "and"
    OR = "or"
    NONE = "none"


class ConstraintOp(Enum):
    AND = "and"      # stored value must equal every listed value
    OR = "or"        # stored value must equal at least one listed value
    EQ = "eq"        # scalar constraint produced by '#name'


@dataclass(frozen=True)
class Constraint:
    op: ConstraintOp
    values: tuple[str, ...]

    @classmethod
    def all_of(cls, *values: str) -> "Constraint":
        return cls(ConstraintOp.AND, tuple(values))

    @classmethod
    def any_of(cls, *values: str) -> "Constraint":
        return cls(ConstraintOp.OR, tuple(values))

    @classmethod
    def equals(cls, value: str) -> "Constraint":
        return cls(ConstraintOp.EQ, (value,))

    def to_dict(self) -> Any:
        if self.op is ConstraintOp.EQ:
            return self.values[0]
        return {self.op.value: list(self.values)}


@dataclass(frozen=True)
class Group:
    """Target key -> attribute -> constraint."""
    targets: dict[str, dict[str, Constraint]] = field(default_factory=dict)

    def __iter__(self) -> Iterator[tuple[str, dict[str, Constraint]]]:
        return iter(self.targets.items())

    def __len__(self) -> int:
        return len(self.targets)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            target: {attr: c.to_dict() for attr, c in constraints.items()}
            for target, constraints in self.targets.items()
        }


@dataclass(frozen=True)
class Query:
    op: QueryOp
    groups: tuple[Group, ...] = ()
    source: str = ""

    @property
    def matches_nothing(self) -> bool:
        return self.op is QueryOp.NONE

    def capabilities(self) -> set[str]:
        """Capability names referenced by the query (wildcard excluded)."""
        return {target for group in self.groups for target in group.targets if target != WILDCARD}

    def to_dict(self) -> dict[str, Any]:
        if self.matches_nothing:
            return {}
        return {self.op.value: [group.to_dict() for group in self.groups]}


MATCH_NONE = Query(QueryOp.NONE, (), "none")
MATCH_ALL = Query(QueryOp.AND, (Group({WILDCARD: {}}),), "all")

__all__ = [
    "WILDCARD",
    "QueryOp",
    "ConstraintOp",
    "Constraint",
    "Group",
    "Query",
    "MATCH_NONE",
    "MATCH_ALL",
]
