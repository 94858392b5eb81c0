"""Key-value substrate protocol for persisted board data."""

from collections.abc import Mapping
from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Interface for the flat key-value store that holds persisted slots.

    The store knows nothing about boards, columns or cards. It holds a few
    named slots (see ``boardstore.models.records``), each a plain
    YAML/JSON-compatible value, and offers no relations, transactions or
    queries. Implementations include:
    - In-memory (tests, throwaway sessions)
    - YAML files on disk
    """

    async def get(self, key: str, default: Any = None) -> Any:
        """Read a slot.

        Args:
            key: Slot name (e.g., "boards", "version")
            default: Value returned when the slot has never been written

        Returns:
            The stored value, or default.
        """
        ...

    async def set_many(self, items: Mapping[str, Any]) -> None:
        """Write several slots together.

        Args:
            items: Slot name to value. Every slot is written or the call
                raises before any slot changes.
        """
        ...

    async def keys(self) -> list[str]:
        """List the slots that have been written."""
        ...
