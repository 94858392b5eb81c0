"""Key-value substrates for persisted data."""

from .filesystem import YamlFileStore
from .memory import MemoryStore
from .protocol import KeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "YamlFileStore",
]
