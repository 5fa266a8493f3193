"""Explicit cache for table and entity metadata shared across passes."""

from __future__ import annotations

from collections.abc import Callable, Hashable
from typing import Any


class MetadataCache:
    """Read-mostly cache created once by the host and handed to every pass.

    ``invalidate`` swaps in a fresh backing dict instead of clearing the
    current one, so a pass still holding a lookup result keeps a consistent
    view.
    """

    def __init__(self):
        self._entries: dict[Hashable, Any] = {}

    def get(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, calling ``loader`` on a miss.

        Exceptions from ``loader`` propagate and nothing is stored.
        """
        entries = self._entries
        if key in entries:
            return entries[key]
        value = loader()
        self._entries = {**entries, key: value}
        return value

    def invalidate(self) -> None:
        self._entries = {}

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries
