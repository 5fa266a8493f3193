"""AST visitors that flag structural patterns in source fragments.

Visitors only read nodes. Each accumulates matches, deduplicated in
first-match order, exposed through ``matches()`` and ``has_matches()``.
Working on the syntax tree means comments, docstrings and unrelated string
literals can never produce a match.
"""

from __future__ import annotations

import ast
from collections.abc import Iterable

SELF_NAME = "self"


class _MatchAccumulator(ast.NodeVisitor):
    def __init__(self) -> None:
        self._matches: list[str] = []

    def _add(self, name: str) -> None:
        if name not in self._matches:
            self._matches.append(name)

    def matches(self) -> list[str]:
        return list(self._matches)

    def has_matches(self) -> bool:
        return bool(self._matches)


def _is_self(node: ast.AST) -> bool:
    return isinstance(node, ast.Name) and node.id == SELF_NAME


def _decapitalize(name: str) -> str:
    return name[:1].lower() + name[1:]


def accessor_field(method: str) -> str | None:
    """Field name behind an accessor: ``getPassword`` and ``get_password`` give ``password``."""
    if method.startswith("get_") and len(method) > 4:
        return method[4:]
    if method.startswith("get") and len(method) > 3 and method[3].isupper():
        return _decapitalize(method[3:])
    return None


class SensitiveFieldExposureVisitor(_MatchAccumulator):
    """Finds configured sensitive fields exposed by a fragment.

    Matches dict literal keys, ``self.get<Name>()`` / ``self.get_<name>()``
    accessor calls and plain ``self.<name>`` reads.
    """

    def __init__(self, sensitive_fields: Iterable[str]) -> None:
        super().__init__()
        self.sensitive_fields = frozenset(sensitive_fields)

    def visit_Dict(self, node: ast.Dict) -> None:
        for key in node.keys:
            # None key means a ``**mapping`` unpack
            if isinstance(key, ast.Constant) and isinstance(key.value, str) and key.value in self.sensitive_fields:
                self._add(key.value)
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        if isinstance(func, ast.Attribute) and _is_self(func.value):
            field_name = accessor_field(func.attr)
            if field_name in self.sensitive_fields:
                self._add(field_name)
        self.generic_visit(node)

    def visit_Attribute(self, node: ast.Attribute) -> None:
        if isinstance(node.ctx, ast.Load) and _is_self(node.value) and node.attr in self.sensitive_fields:
            self._add(node.attr)
        self.generic_visit(node)


SQL_SINKS = frozenset({"execute", "executemany", "raw", "text", "exec_driver_sql"})


def interpolation_pattern(node: ast.AST) -> str | None:
    """Name of the string-building pattern ``node`` uses, if any.

    Only dynamic strings count: an f-string without placeholders or a
    concatenation of two constants is not interpolation.
    """
    if isinstance(node, ast.JoinedStr):
        if any(isinstance(v, ast.FormattedValue) for v in node.values):
            return "fstring"
        return None
    if isinstance(node, ast.BinOp):
        if isinstance(node.op, ast.Mod) and _is_str_constant(node.left):
            return "percent_format"
        if isinstance(node.op, ast.Add) and _has_str_operand(node) and not _all_constant(node):
            return "concatenation"
        return None
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr == "format"
        and _is_str_constant(node.func.value)
    ):
        return "str_format"
    return None


def _is_str_constant(node: ast.AST) -> bool:
    return isinstance(node, ast.Constant) and isinstance(node.value, str)


def _has_str_operand(node: ast.BinOp) -> bool:
    for side in (node.left, node.right):
        if _is_str_constant(side) or isinstance(side, ast.JoinedStr):
            return True
        if isinstance(side, ast.BinOp) and isinstance(side.op, ast.Add) and _has_str_operand(side):
            return True
    return False


def _all_constant(node: ast.AST) -> bool:
    if isinstance(node, ast.BinOp):
        return _all_constant(node.left) and _all_constant(node.right)
    return isinstance(node, ast.Constant)


def _sink_name(call: ast.Call) -> str | None:
    func = call.func
    if isinstance(func, ast.Attribute):
        return func.attr
    if isinstance(func, ast.Name):
        return func.id
    return None


class SqlInjectionPatternVisitor(_MatchAccumulator):
    """Finds SQL built by string interpolation and passed to an execution call.

    The statement may be passed directly or through a local variable
    assigned earlier in the same fragment. Matches are pattern names:
    ``fstring``, ``percent_format``, ``str_format``, ``concatenation``.

    Visit the statements of a function body; nested function definitions
    are separate fragments and are not entered.
    """

    def __init__(self, sinks: Iterable[str] = SQL_SINKS) -> None:
        super().__init__()
        self.sinks = frozenset(sinks)
        self._tainted: dict[str, str] = {}
        self._strings: set[str] = set()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        return

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Assign(self, node: ast.Assign) -> None:
        pattern = interpolation_pattern(node.value)
        for target in node.targets:
            if not isinstance(target, ast.Name):
                continue
            if pattern:
                self._tainted[target.id] = pattern
            else:
                self._tainted.pop(target.id, None)
                if _is_str_constant(node.value):
                    self._strings.add(target.id)
        self.generic_visit(node)

    def visit_AugAssign(self, node: ast.AugAssign) -> None:
        target = node.target
        if isinstance(target, ast.Name) and isinstance(node.op, ast.Add):
            known = target.id in self._tainted or target.id in self._strings
            if known and not isinstance(node.value, ast.Constant):
                self._tainted.setdefault(target.id, "concatenation")
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        if _sink_name(node) in self.sinks and node.args:
            statement = node.args[0]
            pattern = interpolation_pattern(statement)
            if pattern is None and isinstance(statement, ast.Name):
                pattern = self._tainted.get(statement.id)
            if pattern:
                self._add(pattern)
        self.generic_visit(node)
