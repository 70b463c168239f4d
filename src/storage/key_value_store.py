"""Key-value string storage backends.

All persistence (history, preferences, model cache, settings, feedback)
goes through :class:`KeyValueStore`, so callers never know whether values
live in memory or on disk. Values are opaque strings; callers serialize.
"""

import json
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from src.data_layer.exceptions import (
    RecommendationError,
    StorageQuotaExceededError,
    StorageUnavailableError,
)

PROBE_KEY = "__storage_test__"


class KeyValueStore(ABC):
    """Abstraction for string storage keyed by name.

    Implementations raise :class:`StorageUnavailableError` when the backend
    cannot be used and :class:`StorageQuotaExceededError` when a write does
    not fit. :meth:`is_available` never raises.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string for *key*, or ``None`` if absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete *key*. Removing an absent key is a no-op."""
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        """Return all stored keys, sorted."""
        ...

    def is_available(self) -> bool:
        """Probe the backend with a write/remove round trip."""
        try:
            self.set(PROBE_KEY, PROBE_KEY)
            self.remove(PROBE_KEY)
            return True
        except (RecommendationError, OSError):
            return False


class InMemoryStore(KeyValueStore):
    """Process-local store, optionally capped at a byte capacity.

    Usage:
        store = InMemoryStore(capacity_bytes=5 * 1024 * 1024)
        store.set("food_app_settings", '{"theme": "dark"}')
    """

    def __init__(self, capacity_bytes: Optional[int] = None, available: bool = True):
        """Initialize in-memory store.

        Args:
            capacity_bytes: Maximum total size of keys plus values (UTF-8), or None
            available: False simulates a disabled backend (every call raises)
        """
        self.capacity_bytes = capacity_bytes
        self.available = available
        self._data: Dict[str, str] = {}

    def _require_available(self) -> None:
        if not self.available:
            raise StorageUnavailableError("In-memory store is disabled")

    def _size_with(self, key: str, value: str) -> int:
        total = 0
        for k, v in self._data.items():
            if k == key:
                continue
            total += len(k.encode("utf-8")) + len(v.encode("utf-8"))
        return total + len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def get(self, key: str) -> Optional[str]:
        self._require_available()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._require_available()
        if self.capacity_bytes is not None:
            size = self._size_with(key, value)
            if size > self.capacity_bytes:
                raise StorageQuotaExceededError(key, size, self.capacity_bytes)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._require_available()
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        self._require_available()
        return sorted(self._data)


class JsonFileStore(KeyValueStore):
    """Disk-backed store: one JSON file per key in a directory.

    Each file holds ``{"key": ..., "value": ...}`` so the original key can be
    recovered from a sanitized filename. Files are human readable for easy
    inspection and debugging.

    Usage:
        store = JsonFileStore(storage_dir=".cache/whattoeat")
        store.set("food_selection_history", "[]")
        store.get("food_selection_history")
    """

    DEFAULT_STORAGE_DIR = ".cache/whattoeat"

    def __init__(self, storage_dir: Optional[str] = None):
        """Initialize store with directory path.

        Args:
            storage_dir: Directory for value files (created if not exists)
        """
        self.storage_dir = Path(storage_dir or self.DEFAULT_STORAGE_DIR)
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Reported through is_available() / StorageUnavailableError on use
            pass

    def get(self, key: str) -> Optional[str]:
        file_path = self._get_file_path(key)
        if not file_path.exists():
            return None
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data["value"]
        except (json.JSONDecodeError, KeyError, TypeError):
            # Corrupted file - treat as miss
            return None
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot read '{key}': {e}", context={"path": str(file_path)}
            ) from e

    def set(self, key: str, value: str) -> None:
        file_path = self._get_file_path(key)
        try:
            with open(file_path, "w", encoding="utf-8") as f:
                json.dump({"key": key, "value": value}, f, ensure_ascii=False)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot write '{key}': {e}", context={"path": str(file_path)}
            ) from e

    def remove(self, key: str) -> None:
        file_path = self._get_file_path(key)
        try:
            file_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot remove '{key}': {e}", context={"path": str(file_path)}
            ) from e

    def keys(self) -> List[str]:
        if not self.storage_dir.is_dir():
            raise StorageUnavailableError(
                f"Storage directory missing: {self.storage_dir}"
            )
        found = []
        for file_path in self.storage_dir.glob("*.json"):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    found.append(json.load(f)["key"])
            except (json.JSONDecodeError, KeyError, TypeError, OSError):
                continue
        return sorted(found)

    def _get_file_path(self, key: str) -> Path:
        return self.storage_dir / f"{self._to_safe_filename(key)}.json"

    def _to_safe_filename(self, key: str) -> str:
        """Convert a key to a filesystem-safe filename (without extension)."""
        # Replace special chars with underscores
        safe = re.sub(r"[^\w\-]", "_", key)
        # Collapse multiple underscores
        safe = re.sub(r"_+", "_", safe)
        safe = safe.strip("_")
        return safe or "unnamed"
