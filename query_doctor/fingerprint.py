"""Literal-invariant fingerprints of SQL statements.

Two statements that differ only in literal values (numbers, quoted strings,
bound-parameter markers) or in incidental whitespace, comments and keyword
case produce the same fingerprint. Used for clustering repeated shapes and
for deduplicating operations inside an issue.
"""

from __future__ import annotations

from functools import lru_cache

from sqlparse import lexer
from sqlparse import tokens as T

PLACEHOLDER = "?"

# Keywords whose parenthesized list holds values, not names.
_VALUE_LISTS = frozenset({"IN", "VALUES"})


def is_literal(ttype) -> bool:
    """True for numeric and single-quoted string literals and bound-parameter markers."""
    return ttype in T.Literal.Number or ttype in T.Literal.String.Single or ttype in T.Name.Placeholder


@lru_cache(maxsize=4096)
def fingerprint(text: str) -> str:
    """Return the normalized shape of ``text``.

    Literals collapse to ``?``, comma-separated runs of literals collapse to a
    single ``?`` (so ``IN (1, 2, 3)`` becomes ``IN (?)``), keywords fold to
    upper case and tokens are re-joined with single spaces. A double-quoted
    token counts as a literal only in operand position (``name = "Jane"``,
    ``IN ("a", "b")``); elsewhere it is a quoted identifier. Total: any
    string yields a result, the empty string yields ``""``.
    """
    tokens = [
        (ttype, value) for ttype, value in lexer.tokenize(text) if ttype not in T.Whitespace and ttype not in T.Comment
    ]

    out: list[str] = []
    lists: list[bool] = []  # one entry per open paren: does it hold values?
    closed_list = False
    prev_ttype = None
    for i, (ttype, value) in enumerate(tokens):
        literal = is_literal(ttype) or (
            ttype in T.Literal.String.Symbol and _is_operand(tokens, i, prev_ttype, out, lists)
        )
        prev_ttype = ttype
        if literal:
            while out and out[-1] == "-":
                out.pop()
            if out and out[-1] == PLACEHOLDER:
                continue
            if len(out) >= 2 and out[-1] == "," and out[-2] == PLACEHOLDER:
                out.pop()
                continue
            out.append(PLACEHOLDER)
            continue

        if value == "(":
            lists.append(bool(out) and (out[-1] in _VALUE_LISTS or (out[-1] == "," and closed_list)))
        elif value == ")" and lists:
            closed_list = lists.pop()
        if ttype in T.Keyword or ttype in T.Operator.Comparison:
            value = " ".join(value.split()).upper()
        out.append(value)

    while out and out[-1] == ";":
        out.pop()
    return _join(out)


def _is_operand(tokens, i: int, prev_ttype, out: list[str], lists: list[bool]) -> bool:
    if i + 1 < len(tokens) and tokens[i + 1][1] == ".":
        return False
    if prev_ttype is not None and prev_ttype in T.Operator.Comparison:
        return True
    return bool(lists) and lists[-1] and bool(out) and out[-1] in ("(", ",")


def _join(parts: list[str]) -> str:
    text = ""
    glue = True
    for part in parts:
        if part == ".":
            text += part
            glue = True
            continue
        text += part if glue else " " + part
        glue = False
    return text
