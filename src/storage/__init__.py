"""Storage layer: key-value backends and typed persistence on top of them.

Everything that survives between runs goes through a KeyValueStore, so
in-memory and on-disk backends are interchangeable.
"""

from src.storage.key_value_store import KeyValueStore, InMemoryStore, JsonFileStore
from src.storage.persistence import DataPersistence, STORAGE_KEYS

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "DataPersistence",
    "STORAGE_KEYS",
]
