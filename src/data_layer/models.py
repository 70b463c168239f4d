"""Data models for the food recommendation engine."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


NEUTRAL_SCORE = 0.5

# Fixed numeric parameters a food item may carry (each an integer 1-5)
PARAM_NAMES = ("price", "taste", "health", "cookTime", "favorite")
PARAM_MIN = 1
PARAM_MAX = 5


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO 8601 string (a trailing 'Z' is accepted) into a datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class FoodItem:
    """A food that can be scored, ordered and recommended."""

    id: str  # Unique within a food list
    name: str
    description: Optional[str] = None
    tags: Tuple[str, ...] = ()
    category: Optional[str] = None
    seasons: Tuple[str, ...] = ()  # e.g. ("summer", "autumn")
    contexts: Tuple[str, ...] = ()  # e.g. ("lunch", "general")
    params: Dict[str, int] = field(default_factory=dict)  # price/taste/health/cookTime/favorite
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FoodItem":
        """Create a FoodItem from its JSON representation.

        Args:
            data: Dictionary with at least ``id`` and ``name``

        Returns:
            FoodItem instance

        Raises:
            KeyError: If ``id`` or ``name`` is missing
        """
        params = {}
        for name, value in (data.get("params") or {}).items():
            params[str(name)] = int(value)

        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description"),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            category=data.get("category"),
            seasons=tuple(str(s) for s in data.get("seasons") or ()),
            contexts=tuple(str(c) for c in data.get("contexts") or ()),
            params=params,
            created_at=parse_timestamp(data.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "category": self.category,
            "seasons": list(self.seasons),
            "contexts": list(self.contexts),
            "params": dict(self.params),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ModelFeatures:
    """Feature vocabularies the model was trained on."""

    tags: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()
    times: Tuple[str, ...] = ()
    seasons: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelFeatures":
        return cls(
            tags=tuple(data.get("tags") or ()),
            categories=tuple(data.get("categories") or ()),
            times=tuple(data.get("times") or ()),
            seasons=tuple(data.get("seasons") or ()),
        )

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "tags": list(self.tags),
            "categories": list(self.categories),
            "times": list(self.times),
            "seasons": list(self.seasons),
        }


@dataclass(frozen=True)
class ModelMetadata:
    """Model version and the time it was exported."""

    version: str = "1.0"
    conversion_time: Optional[str] = None  # ISO 8601


@dataclass(frozen=True)
class RecommendationModel:
    """Scoring parameters. Never mutated after load; a reload builds a new value.

    Every preference value lies in [0, 1]; an absent entry means neutral 0.5.
    """

    base_scores: Mapping[str, float] = field(default_factory=dict)
    time_preferences: Mapping[str, float] = field(default_factory=dict)
    season_preferences: Mapping[str, float] = field(default_factory=dict)
    tag_preferences: Mapping[str, float] = field(default_factory=dict)
    category_preferences: Mapping[str, float] = field(default_factory=dict)
    features: ModelFeatures = field(default_factory=ModelFeatures)
    metadata: ModelMetadata = field(default_factory=ModelMetadata)

    # Feature type names accepted by feature_preference()
    FEATURE_TYPES = ("tags", "categories", "times", "seasons")

    # Score maps are read-only copies, so a shared model cannot be altered
    _MAP_FIELDS = (
        "base_scores",
        "time_preferences",
        "season_preferences",
        "tag_preferences",
        "category_preferences",
    )

    def __post_init__(self):
        for name in self._MAP_FIELDS:
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def _preference_map(self, feature_type: str) -> Mapping[str, float]:
        return {
            "tags": self.tag_preferences,
            "categories": self.category_preferences,
            "times": self.time_preferences,
            "seasons": self.season_preferences,
        }.get(feature_type, {})

    def feature_preference(self, feature_type: str, feature_value: str) -> float:
        """User preference for one feature value, neutral 0.5 when unknown.

        Args:
            feature_type: One of "tags", "categories", "times", "seasons"
            feature_value: Feature label (e.g. "spicy", "lunch")

        Returns:
            Preference in [0, 1]
        """
        preferences = self._preference_map(feature_type)
        value = preferences.get(feature_value)
        if value is None:
            return NEUTRAL_SCORE
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the model JSON wire format."""
        return {
            "base_scores": dict(self.base_scores),
            "time_preferences": dict(self.time_preferences),
            "season_preferences": dict(self.season_preferences),
            "tag_preferences": dict(self.tag_preferences),
            "category_preferences": dict(self.category_preferences),
            "features": self.features.to_dict(),
            "metadata": {
                "version": self.metadata.version,
                "conversion_time": self.metadata.conversion_time,
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RecommendationModel":
        """Build a model from an already-validated wire dictionary.

        Entries whose value is not numeric are skipped, so they read as
        absent (neutral) rather than failing the whole model.
        """
        metadata = data.get("metadata") or {}
        return cls(
            base_scores=_numeric_map(data.get("base_scores")),
            time_preferences=_numeric_map(data.get("time_preferences")),
            season_preferences=_numeric_map(data.get("season_preferences")),
            tag_preferences=_numeric_map(data.get("tag_preferences")),
            category_preferences=_numeric_map(data.get("category_preferences")),
            features=ModelFeatures.from_dict(data.get("features") or {}),
            metadata=ModelMetadata(
                version=str(metadata.get("version", "1.0")),
                conversion_time=metadata.get("conversion_time"),
            ),
        )


def _numeric_map(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, Mapping):
        return {}
    out: Dict[str, float] = {}
    for key, value in raw.items():
        # bool is an int subclass but never a meaningful score
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        out[str(key)] = float(value)
    return out


DEFAULT_MODEL = RecommendationModel(
    metadata=ModelMetadata(
        version="1.0",
        conversion_time=datetime.now(timezone.utc).isoformat(),
    )
)


@dataclass(frozen=True)
class Context:
    """Season and time-of-day bucket for one selection round."""

    season: Optional[str] = None  # "spring", "summer", "autumn", "winter"
    time: Optional[str] = None  # "lunch", "dinner", "general"


@dataclass(frozen=True)
class ScoredItem:
    """A food paired with its score for the current round. Never persisted."""

    item: FoodItem
    score: float


@dataclass(frozen=True)
class ParamWeights:
    """Integer weights (1-5) for the parameter-weight scoring strategy."""

    price: int = 3
    taste: int = 5
    health: int = 4
    cookTime: int = 2
    favorite: int = 5

    def __post_init__(self):
        """Validate every weight is an integer in [1, 5]."""
        for name in PARAM_NAMES:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Weight '{name}' must be an integer, got {value!r}")
            if value < PARAM_MIN or value > PARAM_MAX:
                raise ValueError(
                    f"Weight '{name}' must be in [{PARAM_MIN}, {PARAM_MAX}], got {value}"
                )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ParamWeights":
        unknown = set(data) - set(PARAM_NAMES)
        if unknown:
            raise ValueError(f"Unknown parameter weights: {sorted(unknown)}")
        return cls(**{name: data[name] for name in PARAM_NAMES if name in data})

    def to_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in PARAM_NAMES}
