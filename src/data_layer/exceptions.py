"""Structured error types for the recommendation engine.

Every failure mode has its own type so callers can decide whether to degrade
or propagate. Only ``InvalidScoreError`` is meant to reach the caller; the
others are caught at the component boundary (storage, model store) and
converted to a safe default.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Machine-readable error codes.

    Codes are string values for easy serialization and logging.
    """

    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    STORAGE_QUOTA_EXCEEDED = "STORAGE_QUOTA_EXCEEDED"
    PARSE_FAILURE = "PARSE_FAILURE"
    FETCH_FAILURE = "FETCH_FAILURE"
    INVALID_SCORE = "INVALID_SCORE"


class RecommendationError(Exception):
    """Base exception for all recommendation engine errors.

    Attributes:
        code: ErrorCode identifying the error type
        message: Human-readable error description
        context: Dictionary of relevant error context (key, url, etc.)
    """

    code = ErrorCode.PARSE_FAILURE

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(f"[{self.code.value}] {message}")

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": self.context,
        }


class StorageUnavailableError(RecommendationError):
    """Raised by a key-value store whose availability probe fails."""

    code = ErrorCode.STORAGE_UNAVAILABLE


class StorageQuotaExceededError(RecommendationError):
    """Raised when a write would exceed the store's capacity."""

    code = ErrorCode.STORAGE_QUOTA_EXCEEDED

    def __init__(self, key: str, size: int, capacity: int):
        self.key = key
        self.size = size
        self.capacity = capacity
        super().__init__(
            f"Writing '{key}' needs {size} bytes; capacity is {capacity} bytes",
            context={"key": key, "size": size, "capacity": capacity},
        )


class ModelParseError(RecommendationError):
    """Raised when cached or fetched model JSON cannot be decoded."""

    code = ErrorCode.PARSE_FAILURE


class ModelFetchError(RecommendationError):
    """Raised on network errors or non-success responses while fetching a model."""

    code = ErrorCode.FETCH_FAILURE

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.source = source
        self.status_code = status_code
        context: Dict[str, Any] = {"source": source}
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, context=context)


class InvalidScoreError(RecommendationError, ValueError):
    """Raised when a selection is attempted over NaN or infinite scores."""

    code = ErrorCode.INVALID_SCORE

    def __init__(self, item_id: str, score: float):
        self.item_id = item_id
        self.score = score
        super().__init__(
            f"Score for '{item_id}' is not finite: {score!r}",
            context={"item_id": item_id, "score": repr(score)},
        )
