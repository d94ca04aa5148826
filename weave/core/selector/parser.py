"""
Selector compiler.

Grammar (after lower-casing and removing whitespace)::

    SELECTOR   := GROUP (',' GROUP)*
    GROUP      := PART+
    PART       := '.' NAME BRACKET*
                | '#' NAME BRACKET*
                | ':' NAME BRACKET*
                | '*' BRACKET*
                | NAME BRACKET*              (first part of a group only)
    BRACKET    := '[' NAME '=' '"' VALUE (',' VALUE)* '"' ']'

``none`` and the empty string compile to MATCH_NONE; ``all``, ``any`` and
``*`` compile to MATCH_ALL. Commas inside a quoted value separate
alternatives; commas outside brackets separate OR groups.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from weave.core.errors import InvalidSelectorError
from .query import MATCH_ALL, MATCH_NONE, WILDCARD, Constraint, Group, Query, QueryOp

NONE_TOKENS = frozenset({"", "none"})
ALL_TOKENS = frozenset({"all", "any", "*"})

_NAME_CHARS = frozenset("abcdefghijklmnopqrstuvwxyz0123456789_-")


class TokenKind(Enum):
    DOT = "."
    COMMA = ","
    HASH = "#"
    COLON = ":"
    STAR = "*"
    LBRACKET = "["
    RBRACKET = "]"
    EQUALS = "="
    STRING = "string"
    NAME = "name"
    END = "end"


_PUNCTUATION = {kind.value: kind for kind in TokenKind if len(kind.value) == 1}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    pos: int


def normalize(selector: str) -> str:
    return "".join(str(selector).lower().split())


def tokenize(text: str) -> list[Token]:
    """Split a normalized selector into tokens."""
    tokens: list[Token] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, i))
            i += 1
        elif ch == '"':
            end = text.find('"', i + 1)
            if end < 0:
                raise InvalidSelectorError(text, "unterminated quote", i)
            tokens.append(Token(TokenKind.STRING, text[i + 1:end], i))
            i = end + 1
        elif ch in _NAME_CHARS:
            start = i
            while i < len(text) and text[i] in _NAME_CHARS:
                i += 1
            tokens.append(Token(TokenKind.NAME, text[start:i], start))
        else:
            raise InvalidSelectorError(text, f"unexpected character {ch!r}", i)
    tokens.append(Token(TokenKind.END, "", len(text)))
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    # -- token helpers -------------------------------------------------

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def expect(self, kind: TokenKind, what: str) -> Token:
        token = self.peek()
        if token.kind is not kind:
            found = token.text or "end of selector"
            raise InvalidSelectorError(self.text, f"expected {what}, found {found!r}", token.pos)
        return self.advance()

    # -- grammar -------------------------------------------------------

    def parse(self) -> Query:
        groups = [self.parse_group()]
        while self.peek().kind is TokenKind.COMMA:
            self.advance()
            groups.append(self.parse_group())
        self.expect(TokenKind.END, "',' or end of selector")
        op = QueryOp.OR if len(groups) > 1 else QueryOp.AND
        return Query(op, tuple(groups), self.text)

    def parse_group(self) -> Group:
        targets: dict[str, dict[str, Constraint]] = {}
        start = self.peek()
        if start.kind is TokenKind.NAME:
            self.advance()
            self._merge(targets, start.text, self.parse_brackets())
        while self.peek().kind in (TokenKind.DOT, TokenKind.HASH, TokenKind.COLON, TokenKind.STAR):
            self.parse_part(targets)
        if not targets:
            raise InvalidSelectorError(self.text, "empty selector group", start.pos)
        return Group(targets)

    def parse_part(self, targets: dict[str, dict[str, Constraint]]) -> None:
        token = self.advance()
        if token.kind is TokenKind.STAR:
            self._merge(targets, WILDCARD, self.parse_brackets())
            return

        name = self.expect(TokenKind.NAME, f"a name after {token.text!r}").text
        constraints: dict[str, Constraint] = {}
        if token.kind is TokenKind.DOT:
            target = name
        elif token.kind is TokenKind.HASH:
            target = WILDCARD
            constraints["name"] = Constraint.equals(name)
        else:
            target = WILDCARD
            constraints["type"] = Constraint.all_of(name)
        constraints.update(self.parse_brackets())
        self._merge(targets, target, constraints)

    def parse_brackets(self) -> dict[str, Constraint]:
        constraints: dict[str, Constraint] = {}
        while self.peek().kind is TokenKind.LBRACKET:
            self.advance()
            key = self.expect(TokenKind.NAME, "an attribute name").text
            self.expect(TokenKind.EQUALS, "'='")
            raw = self.expect(TokenKind.STRING, "a quoted value")
            self.expect(TokenKind.RBRACKET, "']'")
            values = raw.text.split(",")
            for value in values:
                if not value or any(ch not in _NAME_CHARS for ch in value):
                    raise InvalidSelectorError(self.text, f"invalid attribute value {raw.text!r}", raw.pos)
            if len(values) > 1:
                constraints[key] = Constraint.any_of(*values)
            else:
                constraints[key] = Constraint.all_of(values[0])
        return constraints

    @staticmethod
    def _merge(targets: dict[str, dict[str, Constraint]], target: str, constraints: dict[str, Constraint]) -> None:
        targets.setdefault(target, {}).update(constraints)


def compile_selector(selector: str | None) -> Query:
    """Compile a selector string into a Query.

    Raises:
        InvalidSelectorError: the string does not follow the selector grammar.
    """
    if selector is None:
        return MATCH_NONE
    text = normalize(selector)
    if text in NONE_TOKENS:
        return MATCH_NONE
    if text in ALL_TOKENS:
        return Query(MATCH_ALL.op, MATCH_ALL.groups, text)
    return _Parser(text).parse()


__all__ = ["compile_selector", "tokenize", "normalize", "Token", "TokenKind"]
