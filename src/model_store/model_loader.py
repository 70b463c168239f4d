"""Model store: load, cache and expire the recommendation model.

DESIGN DECISIONS:
- Fail open: any fetch, parse or validation failure yields DEFAULT_MODEL,
  tagged as a fallback so callers can tell they run degraded
- Validation is a shallow merge with the default shape; it repairs missing
  top-level keys and never rejects nested values
- The cached model expires after 24 hours (age strictly greater than TTL)
- One cache slot per store; read-check-write is serialized with a lock
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from src.data_layer.exceptions import ModelParseError, RecommendationError
from src.data_layer.models import DEFAULT_MODEL, RecommendationModel, parse_timestamp
from src.model_store.fetcher import ModelFetcher
from src.storage.key_value_store import KeyValueStore

logger = logging.getLogger(__name__)

MODEL_STORAGE_KEY = "food_recommendation_model"
MODEL_TIMESTAMP_KEY = "food_model_timestamp"
MODEL_VERSION_KEY = "food_model_version"

DEFAULT_MODEL_URL = "data/js_model_data.json"
MODEL_TTL = timedelta(hours=24)


class LoadSource(Enum):
    """Where a loaded model came from."""

    CACHE = "cache"
    FETCHED = "fetched"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ModelLoadResult:
    """A usable model plus how it was obtained.

    Attributes:
        model: Model to score with (DEFAULT_MODEL on fallback)
        source: CACHE, FETCHED or FALLBACK
        reason: Why the store fell back (None otherwise)
    """

    model: RecommendationModel
    source: LoadSource
    reason: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source is LoadSource.FALLBACK

    @classmethod
    def fallback(cls, reason: str) -> "ModelLoadResult":
        return cls(model=DEFAULT_MODEL, source=LoadSource.FALLBACK, reason=reason)


def validate_model_data(model_data: Any) -> Dict[str, Any]:
    """Shallow-merge raw model JSON over the default model shape.

    Args:
        model_data: Decoded model JSON

    Returns:
        Dictionary with every top-level key present

    Raises:
        ModelParseError: If *model_data* is not a JSON object
    """
    if not isinstance(model_data, Mapping):
        raise ModelParseError(
            f"Model data must be an object, got {type(model_data).__name__}"
        )

    defaults = DEFAULT_MODEL.to_dict()
    validated = {**defaults, **model_data}

    if not isinstance(validated.get("base_scores"), Mapping):
        validated["base_scores"] = {}
    if not validated.get("metadata") or not isinstance(validated["metadata"], Mapping):
        validated["metadata"] = defaults["metadata"]
    if not validated.get("features") or not isinstance(validated["features"], Mapping):
        validated["features"] = defaults["features"]

    return validated


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ModelStore:
    """Owns the current model and its cache lifecycle.

    Usage:
        store = ModelStore(JsonFileStore(), SourceDispatchFetcher())
        result = store.load("data/js_model_data.json")
        if result.is_fallback:
            print(f"Running with default model: {result.reason}")
        scorer.score(item, result.model, context)
    """

    def __init__(
        self,
        storage: KeyValueStore,
        fetcher: ModelFetcher,
        clock: Optional[Callable[[], datetime]] = None,
        ttl: timedelta = MODEL_TTL,
    ):
        """Initialize model store.

        Args:
            storage: Key-value store holding the cached model
            fetcher: Fetcher used on cache miss or forced refresh
            clock: Returns the current time (UTC); injectable for tests
            ttl: Age after which a cached model is stale
        """
        self.storage = storage
        self.fetcher = fetcher
        self.clock = clock or _utc_now
        self.ttl = ttl
        self._lock = threading.Lock()
        self._current: Optional[RecommendationModel] = None
        self._loaded_at: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load(self, source: str = DEFAULT_MODEL_URL, force_refresh: bool = False) -> ModelLoadResult:
        """Return the cached model if fresh, otherwise fetch, validate and cache.

        Args:
            source: Model URL or path handed to the fetcher
            force_refresh: Ignore the cache and fetch

        Returns:
            ModelLoadResult; never raises
        """
        with self._lock:
            if not force_refresh:
                cached = self._load_from_storage()
                if cached is not None:
                    model, stored_at = cached
                    logger.info("Using cached model data")
                    # Age counts from when the model was fetched, not from this hit
                    self._set_current(model, loaded_at=stored_at)
                    return ModelLoadResult(model=model, source=LoadSource.CACHE)

            logger.info("Loading model data from: %s", source)
            try:
                raw = self.fetcher.fetch(source)
                model = RecommendationModel.from_dict(validate_model_data(raw))
            except Exception as e:  # fail open: any load error means default model
                logger.error("Error loading model from %s: %s", source, e)
                self._set_current(DEFAULT_MODEL)
                return ModelLoadResult.fallback(str(e))

            self._save_to_storage(model)
            self._set_current(model)
            logger.info(
                "Model loaded: version %s, converted %s",
                model.metadata.version,
                model.metadata.conversion_time,
            )
            return ModelLoadResult(model=model, source=LoadSource.FETCHED)

    def refresh(self, source: str = DEFAULT_MODEL_URL) -> ModelLoadResult:
        """Fetch regardless of cache state."""
        return self.load(source, force_refresh=True)

    def clear(self) -> None:
        """Evict the cached model and the in-memory reference. Idempotent."""
        with self._lock:
            for key in (MODEL_STORAGE_KEY, MODEL_TIMESTAMP_KEY, MODEL_VERSION_KEY):
                try:
                    self.storage.remove(key)
                except RecommendationError as e:
                    logger.error("Error clearing model cache key '%s': %s", key, e)
            self._current = None
            self._loaded_at = None
            logger.info("Model cache cleared")

    @property
    def current_model(self) -> RecommendationModel:
        """The in-memory model, or DEFAULT_MODEL before any load."""
        return self._current or DEFAULT_MODEL

    @property
    def is_loaded(self) -> bool:
        return self._current is not None

    def stats(self) -> Dict[str, Any]:
        """Observational summary of the in-memory model. No side effects."""
        model = self._current
        if model is None:
            return {
                "status": "not_loaded",
                "model_age": None,
                "version": None,
                "data_points": 0,
            }

        model_age = None
        if self._loaded_at is not None:
            age_ms = int((self.clock() - self._loaded_at).total_seconds() * 1000)
            model_age = {
                "milliseconds": age_ms,
                "seconds": age_ms // 1000,
                "minutes": age_ms // (1000 * 60),
                "hours": age_ms // (1000 * 60 * 60),
            }

        return {
            "status": "loaded",
            "model_age": model_age,
            "version": model.metadata.version or "unknown",
            "conversion_time": model.metadata.conversion_time,
            "data_points": len(model.base_scores),
            "has_preferences": {
                "time": bool(model.time_preferences),
                "tag": bool(model.tag_preferences),
                "season": bool(model.season_preferences),
                "category": bool(model.category_preferences),
            },
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_current(self, model: RecommendationModel, loaded_at: Optional[datetime] = None) -> None:
        self._current = model
        self._loaded_at = loaded_at or self.clock()

    def _load_from_storage(self) -> Optional[Tuple[RecommendationModel, datetime]]:
        """Cached model and its store time if present, decodable and not older than the TTL."""
        try:
            model_str = self.storage.get(MODEL_STORAGE_KEY)
            timestamp_str = self.storage.get(MODEL_TIMESTAMP_KEY)
        except RecommendationError as e:
            logger.error("Error loading model from storage: %s", e)
            return None

        if not model_str or not timestamp_str:
            return None

        try:
            model_data = json.loads(model_str)
            timestamp = parse_timestamp(timestamp_str)
            if timestamp.tzinfo is None:
                timestamp = timestamp.replace(tzinfo=timezone.utc)
            if self.clock() - timestamp > self.ttl:
                logger.info("Cached model is outdated, will reload")
                return None
            return RecommendationModel.from_dict(validate_model_data(model_data)), timestamp
        except (ValueError, TypeError, ModelParseError) as e:
            # JSONDecodeError is a ValueError; corrupted cache reads as a miss
            logger.error("Error loading model from storage: %s", e)
            return None

    def _save_to_storage(self, model: RecommendationModel) -> None:
        try:
            self.storage.set(MODEL_STORAGE_KEY, json.dumps(model.to_dict(), ensure_ascii=False))
            self.storage.set(MODEL_TIMESTAMP_KEY, self.clock().isoformat())
            if model.metadata.version:
                self.storage.set(MODEL_VERSION_KEY, model.metadata.version)
        except RecommendationError as e:
            logger.error("Error saving model to storage: %s", e)
            # Storage may be full; drop the partial write
            try:
                self.storage.remove(MODEL_STORAGE_KEY)
                self.storage.remove(MODEL_TIMESTAMP_KEY)
            except RecommendationError as cleanup_error:
                logger.error("Failed to clean storage: %s", cleanup_error)
