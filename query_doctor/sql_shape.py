"""Token-level helpers describing the shape of a SQL statement.

These work on the lexer's token stream rather than on raw text, so words
inside comments or string literals never count as clauses.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sqlparse import lexer
from sqlparse import tokens as T

_DML = ("SELECT", "INSERT", "UPDATE", "DELETE", "MERGE")
_AGGREGATES = frozenset({"COUNT", "MIN", "MAX", "SUM", "AVG", "EXISTS"})
_LIMITING = frozenset({"LIMIT", "FETCH", "TOP"})


@dataclass(frozen=True)
class Token:
    ttype: Any
    value: str
    depth: int

    @property
    def upper(self) -> str:
        return " ".join(self.value.split()).upper()

    @property
    def is_word(self) -> bool:
        return self.ttype in T.Keyword or self.ttype in T.Name

    @property
    def is_placeholder(self) -> bool:
        return self.ttype in T.Name.Placeholder


@lru_cache(maxsize=2048)
def significant_tokens(text: str) -> tuple[Token, ...]:
    """All tokens except whitespace and comments, annotated with paren depth."""
    result = []
    depth = 0
    for ttype, value in lexer.tokenize(text):
        if ttype in T.Whitespace or ttype in T.Comment:
            continue
        if ttype in T.Punctuation and value == ")":
            depth = max(depth - 1, 0)
        result.append(Token(ttype, value, depth))
        if ttype in T.Punctuation and value == "(":
            depth += 1
    return tuple(result)


def top_level_keywords(text: str) -> list[str]:
    return [t.upper for t in significant_tokens(text) if t.depth == 0 and t.ttype in T.Keyword]


def statement_type(text: str) -> str:
    """SELECT, INSERT, UPDATE, DELETE, MERGE, or OTHER.

    A leading ``WITH`` clause is skipped: the type is that of the first
    top-level DML keyword.
    """
    tokens = [t for t in significant_tokens(text) if t.depth == 0]
    if not tokens:
        return "OTHER"
    if tokens[0].upper != "WITH":
        return tokens[0].upper if tokens[0].upper in _DML else "OTHER"
    for token in tokens[1:]:
        if token.upper in _DML:
            return token.upper
    return "OTHER"


def has_where(text: str) -> bool:
    return "WHERE" in top_level_keywords(text)


def has_limit(text: str) -> bool:
    return any(t.depth == 0 and t.is_word and t.upper in _LIMITING for t in significant_tokens(text))


def has_order_by(text: str) -> bool:
    words = top_level_keywords(text)
    if "ORDER BY" in words:
        return True
    return any(a == "ORDER" and b == "BY" for a, b in zip(words, words[1:]))


def is_aggregate_only(text: str) -> bool:
    """True for ``SELECT COUNT(...)``-style statements that return a single value."""
    tokens = significant_tokens(text)
    for i, token in enumerate(tokens[:-1]):
        if token.upper == "SELECT" and token.depth == 0:
            nxt = tokens[i + 1]
            after = tokens[i + 2] if i + 2 < len(tokens) else None
            return nxt.upper in _AGGREGATES and after is not None and after.value == "("
    return False


def referenced_tables(text: str) -> list[str]:
    """Table names following FROM, JOIN, UPDATE and INTO, in first-seen order."""
    tokens = significant_tokens(text)
    tables: list[str] = []
    i = 0
    while i < len(tokens):
        word = tokens[i].upper
        if tokens[i].ttype in T.Keyword and (word in ("FROM", "UPDATE", "INTO") or word.endswith("JOIN")):
            name, i = _qualified_name(tokens, i + 1)
            if name and name not in tables:
                tables.append(name)
            continue
        i += 1
    return tables


def _qualified_name(tokens: tuple[Token, ...], start: int) -> tuple[str, int]:
    parts = []
    i = start
    while i < len(tokens):
        token = tokens[i]
        if token.ttype in T.Name or token.ttype in T.Literal.String.Symbol:
            parts.append(token.value.strip('"'))
        elif token.ttype in T.Keyword and not parts and token.upper not in ("SELECT", "LATERAL"):
            # unreserved words such as "user" or "order" lex as keywords
            parts.append(token.value)
        else:
            break
        if i + 1 < len(tokens) and tokens[i + 1].value == ".":
            i += 2
            continue
        i += 1
        break
    return ".".join(parts), i


def bound_value(parameters: Mapping[Any, Any], marker: str, position: int) -> Any:
    """Resolve the value bound to a placeholder.

    ``?`` and ``%s`` are positional (``position`` counts earlier markers),
    ``$n`` is 1-based positional, ``:name`` and ``%(name)s`` are named.
    Returns None when nothing is bound.
    """
    if marker.startswith("$") and marker[1:].isdigit():
        keys: tuple[Any, ...] = (int(marker[1:]) - 1, marker[1:], marker)
    elif marker.startswith(":"):
        keys = (marker[1:], marker)
    elif marker.startswith("%(") and marker.endswith(")s"):
        keys = (marker[2:-2],)
    else:
        keys = (position, str(position))
    for key in keys:
        if key in parameters:
            return parameters[key]
    if isinstance(keys[0], int):
        values = list(parameters.values())
        if 0 <= keys[0] < len(values):
            return values[keys[0]]
    return None


def leading_wildcard_likes(text: str, parameters: Mapping[Any, Any] | None = None) -> list[str]:
    """Patterns used with LIKE/ILIKE that start with ``%``.

    Literal patterns are read from the statement; placeholder patterns are
    resolved against the bound ``parameters``.
    """
    parameters = parameters or {}
    tokens = significant_tokens(text)
    patterns = []
    position = 0
    for i, token in enumerate(tokens):
        if token.is_placeholder:
            if not token.value.startswith((":", "$", "%(")):
                position += 1
            continue
        if not token.upper.endswith("LIKE") or i + 1 >= len(tokens):
            continue
        nxt = tokens[i + 1]
        if nxt.ttype in T.Literal.String.Single:
            pattern = nxt.value[1:-1]
        elif nxt.is_placeholder:
            value = bound_value(parameters, nxt.value, position)
            pattern = value if isinstance(value, str) else ""
        else:
            continue
        if pattern.startswith("%"):
            patterns.append(pattern)
    return patterns
