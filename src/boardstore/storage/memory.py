"""In-memory key-value store."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any


class MemoryStore:
    """
    Key-value store backed by a dict.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set_many(self, items: Mapping[str, Any]) -> None:
        self._data.update(copy.deepcopy(dict(items)))

    async def keys(self) -> list[str]:
        return sorted(self._data)

    def dump(self) -> dict[str, Any]:
        """Return a copy of everything stored."""
        return copy.deepcopy(self._data)
