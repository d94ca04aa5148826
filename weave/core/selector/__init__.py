"""Selector language: compile selector strings and match them against devices."""

from .query import (
    MATCH_ALL,
    MATCH_NONE,
    WILDCARD,
    Constraint,
    ConstraintOp,
    Group,
    Query,
    QueryOp,
)
from .parser import compile_selector
from .matcher import matches

__all__ = [
    "MATCH_ALL",
    "MATCH_NONE",
    "WILDCARD",
    "Constraint",
    "ConstraintOp",
    "Group",
    "Query",
    "QueryOp",
    "compile_selector",
    "matches",
]
