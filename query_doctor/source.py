"""Parsed source code units consumed by the security analyzers."""

from __future__ import annotations

import ast
from collections.abc import Iterator
from pathlib import Path

from query_doctor.errors import ValidationError

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


class SourceUnit:
    """One module of source code, parsed once.

    Raises:
        ValidationError: ``source`` is not valid Python.
    """

    def __init__(self, path: str, source: str):
        self.path = path
        self.source = source
        try:
            self.tree = ast.parse(source, filename=path)
        except SyntaxError as exc:
            raise ValidationError(f"Cannot parse {path}: {exc.msg} (line {exc.lineno})") from exc

    @classmethod
    def from_file(cls, path: str) -> SourceUnit:
        return cls(path, Path(path).read_text(encoding="utf-8"))

    def classes(self) -> list[ast.ClassDef]:
        return [node for node in ast.walk(self.tree) if isinstance(node, ast.ClassDef)]

    def functions(self) -> list[FunctionNode]:
        return [node for node in ast.walk(self.tree) if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef))]

    def methods(self) -> Iterator[tuple[ast.ClassDef, FunctionNode]]:
        """Functions defined directly in a class body, with their class."""
        for cls in self.classes():
            for node in cls.body:
                if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    yield cls, node

    def __repr__(self):
        return f"SourceUnit({self.path!r})"
