"""Normalized board/column/card store with serialized writes."""

from .errors import BoardStoreError, MigrationError, SchemaViolationError, StorageError
from .models import Board, Card, Column, Snapshot
from .services import CURRENT_VERSION, BoardStore
from .storage import MemoryStore, YamlFileStore

__version__ = "0.1.0"

__all__ = [
    "CURRENT_VERSION",
    "Board",
    "BoardStore",
    "BoardStoreError",
    "Card",
    "Column",
    "MemoryStore",
    "MigrationError",
    "SchemaViolationError",
    "Snapshot",
    "StorageError",
    "YamlFileStore",
]
