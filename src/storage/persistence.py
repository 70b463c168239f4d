"""Persistence of user history, preferences, settings, feedback and model cache.

Every public method degrades instead of raising: when the backing store is
unavailable, writes return ``False`` and reads return ``None``; corrupted
values read as empty. Lists are capped and evict their oldest entries first.
"""

from __future__ import annotations

import json
import logging
import random
import string
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from src.data_layer.exceptions import RecommendationError
from src.data_layer.models import parse_timestamp
from src.storage.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

STORAGE_KEYS: Dict[str, str] = {
    "USER_HISTORY": "food_selection_history",
    "USER_PREFERENCES": "food_recommendation_preferences",
    "MODEL_CACHE": "food_model_cache",
    "SETTINGS": "food_app_settings",
    "FEEDBACK_DATA": "food_feedback_data",
}

MAX_HISTORY = 500
MAX_FEEDBACK = 200
MODEL_CACHE_TTL = timedelta(days=7)
EXPORT_VERSION = "1.0"

_BASE36 = string.digits + string.ascii_lowercase


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_data_hash(text: str) -> str:
    """32-bit rolling string hash (h * 31 + c) over UTF-16 code units, as hex.

    Negative values keep their sign (``"-1a2b"``).
    """
    h = 0
    raw = text.encode("utf-16-le")
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    if h < 0:
        return "-" + format(-h, "x")
    return format(h, "x")


def _cap(entries: List[Any], limit: int) -> List[Any]:
    """Keep the most recent *limit* entries, oldest first."""
    if len(entries) > limit:
        return entries[len(entries) - limit:]
    return entries


class DataPersistence:
    """Typed access to the persisted buckets of the recommender.

    Usage:
        persistence = DataPersistence(JsonFileStore(".cache/whattoeat"))
        persistence.save_selection_history({"food_id": "noodles"})
        persistence.get_selection_history()
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None):
        """Initialize persistence layer.

        Args:
            store: Backing key-value store
            clock: Returns the current time (UTC); injectable for tests
        """
        self.store = store
        self.clock = clock or _utc_now
        # Serializes read-modify-write of list buckets across request threads
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ready(self) -> bool:
        if not self.store.is_available():
            logger.warning("Storage unavailable; persistence is disabled")
            return False
        return True

    def _now_iso(self) -> str:
        return self.clock().isoformat()

    def _read_json(self, key: str, default: Any) -> Any:
        try:
            raw = self.store.get(key)
        except RecommendationError as e:
            logger.error("Failed to read '%s': %s", key, e)
            return default
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("Stored value for '%s' is not valid JSON: %s", key, e)
            return default

    def _write_json(self, key: str, value: Any) -> bool:
        try:
            self.store.set(key, json.dumps(value, ensure_ascii=False))
            return True
        except (RecommendationError, TypeError, ValueError) as e:
            logger.error("Failed to save '%s': %s", key, e)
            return False

    def _append_capped(self, key: str, entry: Dict[str, Any], limit: int) -> bool:
        with self._lock:
            entries = self._read_json(key, [])
            if not isinstance(entries, list):
                entries = []
            entries.append(entry)
            return self._write_json(key, _cap(entries, limit))

    # ------------------------------------------------------------------
    # Selection history
    # ------------------------------------------------------------------

    def save_selection_history(self, selection: Dict[str, Any]) -> bool:
        """Append a selection, stamping it if it has no timestamp. Keeps the last 500."""
        if not self._ready():
            return False
        entry = dict(selection)
        entry["timestamp"] = selection.get("timestamp") or self._now_iso()
        return self._append_capped(STORAGE_KEYS["USER_HISTORY"], entry, MAX_HISTORY)

    def get_selection_history(self) -> Optional[List[Dict[str, Any]]]:
        if not self._ready():
            return None
        history = self._read_json(STORAGE_KEYS["USER_HISTORY"], [])
        return history if isinstance(history, list) else []

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def save_preferences(self, preferences: Dict[str, Any]) -> bool:
        """Store preferences with a ``lastUpdated`` stamp."""
        if not self._ready():
            return False
        stamped = dict(preferences)
        stamped["lastUpdated"] = self._now_iso()
        return self._write_json(STORAGE_KEYS["USER_PREFERENCES"], stamped)

    def get_preferences(self) -> Optional[Dict[str, Any]]:
        if not self._ready():
            return None
        return self._read_json(STORAGE_KEYS["USER_PREFERENCES"], None)

    # ------------------------------------------------------------------
    # Model cache (generic cached artifact, 7 day TTL)
    # ------------------------------------------------------------------

    def cache_model(self, model_data: Dict[str, Any], model_version: str = "1.0") -> bool:
        """Cache a model dictionary together with its version, time and hash."""
        if not self._ready():
            return False
        try:
            serialized = json.dumps(model_data, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Model data is not serializable: %s", e)
            return False
        cache_data = {
            "model": model_data,
            "version": model_version,
            "cachedAt": self._now_iso(),
            "hash": generate_data_hash(serialized),
        }
        return self._write_json(STORAGE_KEYS["MODEL_CACHE"], cache_data)

    def get_cached_model(self) -> Optional[Dict[str, Any]]:
        """Return the cache envelope, or None if absent, corrupt or older than 7 days.

        Stale entries are removed as a side effect.
        """
        if not self._ready():
            return None
        cached = self._read_json(STORAGE_KEYS["MODEL_CACHE"], None)
        if not isinstance(cached, dict):
            return None
        try:
            cached_at = parse_timestamp(cached.get("cachedAt"))
        except ValueError:
            cached_at = None
        if cached_at is None:
            logger.info("Model cache has no valid timestamp; ignoring it")
            return None
        if cached_at.tzinfo is None:
            cached_at = cached_at.replace(tzinfo=timezone.utc)
        if self.clock() - cached_at > MODEL_CACHE_TTL:
            logger.info("Model cache expired")
            self.clear_model_cache()
            return None
        return cached

    def clear_model_cache(self) -> None:
        if not self._ready():
            return
        try:
            self.store.remove(STORAGE_KEYS["MODEL_CACHE"])
        except RecommendationError as e:
            logger.error("Failed to clear model cache: %s", e)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def save_settings(self, settings: Dict[str, Any]) -> bool:
        if not self._ready():
            return False
        return self._write_json(STORAGE_KEYS["SETTINGS"], settings)

    def get_settings(self) -> Optional[Dict[str, Any]]:
        if not self._ready():
            return None
        return self._read_json(STORAGE_KEYS["SETTINGS"], None)

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def save_feedback(self, feedback: Dict[str, Any]) -> bool:
        """Append feedback with a fresh id and timestamp. Keeps the last 200."""
        if not self._ready():
            return False
        entry = dict(feedback)
        entry["id"] = self.generate_id()
        entry["timestamp"] = self._now_iso()
        return self._append_capped(STORAGE_KEYS["FEEDBACK_DATA"], entry, MAX_FEEDBACK)

    def get_feedback_data(self) -> Optional[List[Dict[str, Any]]]:
        if not self._ready():
            return None
        feedback = self._read_json(STORAGE_KEYS["FEEDBACK_DATA"], [])
        return feedback if isinstance(feedback, list) else []

    # ------------------------------------------------------------------
    # Export / import / housekeeping
    # ------------------------------------------------------------------

    def export_all_data(self) -> Optional[str]:
        """Serialize history, preferences, settings and feedback to one JSON document."""
        if not self._ready():
            return None
        export_data = {
            "exportDate": self._now_iso(),
            "version": EXPORT_VERSION,
            "history": self.get_selection_history(),
            "preferences": self.get_preferences(),
            "settings": self.get_settings(),
            "feedback": self.get_feedback_data(),
        }
        return json.dumps(export_data, indent=2, ensure_ascii=False)

    def import_data(self, json_data: str) -> bool:
        """Overwrite each bucket present in *json_data*; absent buckets are untouched.

        Returns:
            True if every present bucket was written, False on parse or write failure
        """
        if not self._ready():
            return False
        try:
            data = json.loads(json_data)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error("Import failed, invalid JSON: %s", e)
            return False
        if not isinstance(data, dict):
            logger.error("Import failed, expected a JSON object")
            return False

        buckets = {
            "history": STORAGE_KEYS["USER_HISTORY"],
            "preferences": STORAGE_KEYS["USER_PREFERENCES"],
            "settings": STORAGE_KEYS["SETTINGS"],
            "feedback": STORAGE_KEYS["FEEDBACK_DATA"],
        }
        ok = True
        with self._lock:
            for field_name, key in buckets.items():
                if data.get(field_name) is not None:
                    ok = self._write_json(key, data[field_name]) and ok
        return ok

    def clear_all_data(self) -> bool:
        if not self._ready():
            return False
        try:
            for key in STORAGE_KEYS.values():
                self.store.remove(key)
            return True
        except RecommendationError as e:
            logger.error("Failed to clear data: %s", e)
            return False

    def get_storage_stats(self) -> Optional[Dict[str, Dict[str, Any]]]:
        """Byte size of every bucket plus the total."""
        if not self._ready():
            return None
        stats: Dict[str, Dict[str, Any]] = {}
        total = 0
        try:
            for name, key in STORAGE_KEYS.items():
                size = len((self.store.get(key) or "").encode("utf-8"))
                stats[name] = {"size": size, "sizeKB": f"{size / 1024:.2f}"}
                total += size
        except RecommendationError as e:
            logger.error("Failed to compute storage stats: %s", e)
            return None
        stats["total"] = {"size": total, "sizeKB": f"{total / 1024:.2f}"}
        return stats

    def generate_id(self) -> str:
        """Time-ordered unique id: base36 milliseconds plus random base36 suffix."""
        millis = int(self.clock().timestamp() * 1000)
        suffix = "".join(random.choice(_BASE36) for _ in range(10))
        return _to_base36(millis) + suffix
