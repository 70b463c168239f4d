"""Model store: fetch, validate, cache and expire the recommendation model."""

from src.model_store.fetcher import (
    ModelFetcher,
    HttpModelFetcher,
    LocalFileFetcher,
    SourceDispatchFetcher,
)
from src.model_store.model_loader import (
    ModelStore,
    ModelLoadResult,
    LoadSource,
    validate_model_data,
    DEFAULT_MODEL_URL,
)

__all__ = [
    "ModelFetcher",
    "HttpModelFetcher",
    "LocalFileFetcher",
    "SourceDispatchFetcher",
    "ModelStore",
    "ModelLoadResult",
    "LoadSource",
    "validate_model_data",
    "DEFAULT_MODEL_URL",
]
