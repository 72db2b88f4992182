"""Member filter expressions compiled to SQLAlchemy clauses.

Supports the subset of the filter language used for audiences and post
visibility: ``field:value``, ``field:-value``, ``field:[a,b]``, ``+`` (and),
``,`` (or) and parenthesised groups.
"""
from __future__ import annotations

import re
from typing import Any

from sqlalchemy import and_, or_, not_
from sqlalchemy.sql.elements import ColumnElement

from quillpress.backend.errors import ValidationError
from quillpress.backend.models.member import Member, Label

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<quoted>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<punct>[():+,\[\]-])
      | (?P<word>[^\s():+,\[\]'"]+)
    )""",
    re.VERBOSE,
)

_COLUMNS = {
    "status": Member.status,
    "email": Member.email,
    "uuid": Member.uuid,
    "name": Member.name,
    "subscribed": Member.subscribed,
}


class FilterSyntaxError(ValueError):
    pass


def _tokenize(expr: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    text = expr.strip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if not m or m.end() == pos:
            raise FilterSyntaxError(f"unexpected character at {pos}")
        pos = m.end()
        if m.group("quoted"):
            raw = m.group("quoted")[1:-1]
            tokens.append(("value", re.sub(r"\\(.)", r"\1", raw)))
        elif m.group("punct"):
            tokens.append(("punct", m.group("punct")))
        elif m.group("word"):
            tokens.append(("value", m.group("word")))
    return tokens


class _Parser:
    def __init__(self, tokens: list[tuple[str, str]]) -> None:
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, punct: str | None = None) -> tuple[str, str]:
        tok = self.peek()
        if tok is None:
            raise FilterSyntaxError("unexpected end of filter")
        if punct is not None and tok != ("punct", punct):
            raise FilterSyntaxError(f"expected {punct!r}, got {tok[1]!r}")
        self.pos += 1
        return tok

    def parse(self) -> ColumnElement:
        clause = self.parse_or()
        if self.peek() is not None:
            raise FilterSyntaxError(f"unexpected token {self.peek()[1]!r}")
        return clause

    def parse_or(self) -> ColumnElement:
        parts = [self.parse_and()]
        while self.peek() == ("punct", ","):
            self.take(",")
            parts.append(self.parse_and())
        return parts[0] if len(parts) == 1 else or_(*parts)

    def parse_and(self) -> ColumnElement:
        parts = [self.parse_term()]
        while self.peek() == ("punct", "+"):
            self.take("+")
            parts.append(self.parse_term())
        return parts[0] if len(parts) == 1 else and_(*parts)

    def parse_term(self) -> ColumnElement:
        if self.peek() == ("punct", "("):
            self.take("(")
            clause = self.parse_or()
            self.take(")")
            return clause
        kind, field = self.take()
        if kind != "value":
            raise FilterSyntaxError(f"expected field name, got {field!r}")
        self.take(":")
        negate = False
        if self.peek() == ("punct", "-"):
            self.take("-")
            negate = True
        if self.peek() == ("punct", "["):
            self.take("[")
            values = [self._value()]
            while self.peek() == ("punct", ","):
                self.take(",")
                values.append(self._value())
            self.take("]")
            return _compare(field, values, negate)
        return _compare(field, self._value(), negate)

    def _value(self) -> str:
        kind, value = self.take()
        if kind != "value":
            raise FilterSyntaxError(f"expected value, got {value!r}")
        return value


def _coerce(field: str, value: str) -> Any:
    if field == "subscribed":
        lowered = value.lower()
        if lowered not in ("true", "false"):
            raise FilterSyntaxError(f"subscribed expects true/false, got {value!r}")
        return lowered == "true"
    return value


def _compare(field: str, value: str | list[str], negate: bool) -> ColumnElement:
    if field == "label":
        slugs = value if isinstance(value, list) else [value]
        clause = Member.labels.any(Label.slug.in_(slugs))
        return not_(clause) if negate else clause
    column = _COLUMNS.get(field)
    if column is None:
        raise FilterSyntaxError(f"unknown field {field!r}")
    if isinstance(value, list):
        coerced = [_coerce(field, v) for v in value]
        return column.not_in(coerced) if negate else column.in_(coerced)
    coerced = _coerce(field, value)
    return column != coerced if negate else column == coerced


def compile_member_filter(expr: str) -> ColumnElement:
    """Compile a filter expression into a WHERE clause over members."""
    try:
        return _Parser(_tokenize(expr or "")).parse()
    except FilterSyntaxError as e:
        raise ValidationError(f"Invalid member filter: {e}", property="filter") from e
