"""Typed access to fields of records whose shape varies between producers."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any


class _Missing:
    """Marker for an absent property; falsy and distinct from None."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING: Any = _Missing()


def get_property(source: Any, name: str, default: Any = MISSING) -> Any:
    """Read ``name`` from a mapping or an object.

    Lookup order: mapping key, attribute, then a named accessor
    (``get_<snake_name>()`` or ``get<CamelName>()``). Never raises for an
    absent property; returns ``default`` instead.
    """
    if isinstance(source, Mapping):
        if name in source:
            return source[name]
        return default

    value = getattr(source, name, MISSING)
    if value is not MISSING and not callable(value):
        return value

    for accessor in _accessor_names(name):
        method = getattr(source, accessor, None)
        if callable(method):
            return method()
    return default


def first_property(source: Any, *names: str, default: Any = MISSING) -> Any:
    """Return the first present property among ``names``."""
    for name in names:
        value = get_property(source, name)
        if value is not MISSING:
            return value
    return default


def _accessor_names(name: str) -> tuple[str, str]:
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()
    return f"get_{snake}", "get" + name[:1].upper() + name[1:]
