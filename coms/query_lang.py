"""
Filter expressions (the `where` command)
========================================

A small boolean expression language that compiles into the filter mapping
used by the view engine. Examples:
- where status == Active and joined_date >= 2023-01-01
- where project_ids has 3 and age >= 18 and age <= 65
- where donor_type == "Major Sponsor"

Filters are AND-combined by the view engine, so the language only has `and`.

This file provides:
- Tokenizer (turns text into tokens)
- Parser (builds a list of comparisons)
- `compile_filters` (comparisons -> {field: value | Range})
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import re

from .fields import DATE, NUMERIC, EntityConfig, Range

# expr := comparison (AND comparison)*
# comparison := IDENT OP VALUE
# OP := == >= <= has
# VALUE := date | number | quoted string | bareword

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<OP>==|!=|>=|<=|>|<) |
        (?P<KW>\band\b|\bor\b|\bhas\b) |
        (?P<DATE>\d{4}-\d{2}-\d{2}) |
        (?P<NUMBER>-?\d+(?:\.\d+)?) |
        (?P<STRING>"([^"\\]|\\.)*"|'([^'\\]|\\.)*') |
        (?P<IDENT>[A-Za-z_][A-Za-z0-9_\-]*)
    )\s*
    """,
    re.VERBOSE | re.IGNORECASE
)

_SUPPORTED_OPS = ("==", ">=", "<=", "has")


@dataclass(frozen=True)
class Token:
    kind: str
    value: str


class ParseError(ValueError):
    pass


def tokenize(s: str) -> List[Token]:
    """Tokenize an input string into Token objects."""
    pos = 0
    out: List[Token] = []
    while pos < len(s):
        m = _TOKEN_RE.match(s, pos)
        if not m or m.end() == pos:
            raise ParseError(f"Unexpected character near: {s[pos:pos+20]!r}")
        pos = m.end()
        if m.group("STRING") is not None:
            out.append(Token(kind="STRING", value=m.group("STRING")))
            continue
        kind = None
        val = None
        for k in ("OP", "KW", "DATE", "NUMBER", "IDENT"):
            if m.group(k) is not None:
                kind, val = k, m.group(k)
                break
        if kind is None:
            raise ParseError("Tokenizer error.")
        if kind == "KW":
            kind = val.upper()
            val = val.lower()
        out.append(Token(kind=kind, value=val))
    return out


@dataclass(frozen=True)
class Cmp:
    field: str
    op: str
    value: Any


def parse(expr: str) -> List[Cmp]:
    toks = tokenize(expr.strip())
    if not toks:
        raise ParseError("Empty expression")
    p = _Parser(toks)
    out = [p.parse_comparison()]
    while p.match("AND"):
        out.append(p.parse_comparison())
    if not p.at_end():
        t = p.peek()
        if t.kind == "OR":
            raise ParseError("'or' is not supported: filters always combine with 'and'")
        raise ParseError(f"Unexpected token: {t.value}")
    return out


class _Parser:
    def __init__(self, toks: List[Token]) -> None:
        self.toks = toks
        self.i = 0

    def at_end(self) -> bool:
        return self.i >= len(self.toks)

    def peek(self) -> Token:
        return self.toks[self.i]

    def take(self, kind: str) -> Token:
        if self.at_end():
            raise ParseError(f"Expected {kind}, got end of input")
        t = self.peek()
        if t.kind != kind:
            raise ParseError(f"Expected {kind}, got {t.kind} ({t.value})")
        self.i += 1
        return t

    def match(self, *kinds: str) -> Optional[Token]:
        if self.at_end():
            return None
        if self.peek().kind in kinds:
            t = self.peek()
            self.i += 1
            return t
        return None

    def parse_comparison(self) -> Cmp:
        field = self.take("IDENT").value
        if self.match("HAS"):
            op = "has"
        else:
            op = self.take("OP").value
            if op not in _SUPPORTED_OPS:
                raise ParseError(f"Unsupported operator: {op} (use ==, >=, <= or has)")
        val_tok = self.match("DATE", "NUMBER", "STRING", "IDENT")
        if not val_tok:
            raise ParseError("Expected a value after operator")
        return Cmp(field=field, op=op, value=_coerce_value(val_tok))


def _coerce_value(tok: Token) -> Any:
    if tok.kind == "NUMBER":
        return float(tok.value) if "." in tok.value else int(tok.value)
    if tok.kind == "STRING":
        s = tok.value
        if s[0] == s[-1] and s[0] in ("'", '"'):
            s = s[1:-1]
        return re.sub(r"\\(.)", r"\1", s)
    return tok.value


def coerce_for_field(value: Any, compare: str) -> Any:
    """Bring a typed-in value to the field's type (numbers for numeric fields)."""
    if compare == NUMERIC and isinstance(value, str):
        try:
            return float(value) if "." in value else int(value)
        except ValueError:
            raise ParseError(f"Expected a number, got {value!r}") from None
    if compare == DATE:
        s = str(value)
        if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", s):
            raise ParseError(f"Expected a date (YYYY-MM-DD), got {value!r}")
        return s
    if compare != NUMERIC and not isinstance(value, str):
        return str(value)
    return value


def compile_filters(expr: str, config: Optional[EntityConfig] = None) -> Dict[str, Any]:
    """Parse `expr` into {field: value} with `>=`/`<=` pairs merged into one Range."""
    out: Dict[str, Any] = {}
    for c in parse(expr):
        value = c.value
        if config is not None:
            spec = config.field(c.field)
            if spec is None or spec.match is None:
                raise ParseError(
                    f"{c.field!r} is not filterable for {config.name} "
                    f"(try: {', '.join(config.filterable_fields)})"
                )
            value = coerce_for_field(value, spec.compare)
        if c.op in ("==", "has"):
            if c.field in out:
                raise ParseError(f"{c.field!r} is given more than once")
            out[c.field] = value
            continue
        current = out.get(c.field)
        if current is not None and not isinstance(current, Range):
            raise ParseError(f"{c.field!r} is given more than once")
        current = current or Range()
        if c.op == ">=":
            out[c.field] = Range(low=value, high=current.high)
        else:
            out[c.field] = Range(low=current.low, high=value)
    return out
