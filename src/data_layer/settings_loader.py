"""Application settings loader for YAML configuration."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from src.data_layer.models import ParamWeights
from src.scoring.food_scorer import ScoringStrategy
from src.selection.selector import SelectionMode

MODEL_URL_ENV_VAR = "WHATTOEAT_MODEL_URL"


@dataclass
class AppSettings:
    """Runtime configuration for the recommender."""

    model_url: str = "data/js_model_data.json"
    foods_path: str = "data/food_data.json"
    storage_dir: str = ".cache/whattoeat"
    scoring_strategy: ScoringStrategy = ScoringStrategy.CONTEXT_BLEND
    selection_mode: SelectionMode = SelectionMode.SOFTMAX
    param_weights: ParamWeights = field(default_factory=ParamWeights)
    thinking_delay_seconds: float = 1.5  # Simulated "thinking" before showing a pick
    model_ttl_hours: float = 24.0


class AppSettingsLoader:
    """Loader for application settings from YAML."""

    def __init__(self, yaml_path: Optional[str] = None):
        """Initialize settings loader.

        Args:
            yaml_path: Path to YAML settings file; None or a missing file
                means built-in defaults
        """
        self.yaml_path = Path(yaml_path) if yaml_path else None

    def load(self) -> AppSettings:
        """Load settings from YAML, then apply environment overrides.

        Returns:
            AppSettings object

        Raises:
            ValueError: If a strategy, mode or weight value is invalid
        """
        data = {}
        if self.yaml_path is not None and self.yaml_path.exists():
            with open(self.yaml_path, "r") as f:
                data = yaml.safe_load(f) or {}

        defaults = AppSettings()
        model = data.get("model", {})
        scoring = data.get("scoring", {})
        storage = data.get("storage", {})

        settings = AppSettings(
            model_url=str(model.get("url", defaults.model_url)),
            model_ttl_hours=float(model.get("ttl_hours", defaults.model_ttl_hours)),
            foods_path=str(data.get("foods_path", defaults.foods_path)),
            storage_dir=str(storage.get("dir", defaults.storage_dir)),
            scoring_strategy=ScoringStrategy.from_string(
                scoring.get("strategy", defaults.scoring_strategy.value)
            ),
            selection_mode=SelectionMode.from_string(
                scoring.get("selection", defaults.selection_mode.value)
            ),
            param_weights=ParamWeights.from_dict(scoring.get("param_weights") or {}),
            thinking_delay_seconds=float(
                data.get("thinking_delay_seconds", defaults.thinking_delay_seconds)
            ),
        )

        # Environment wins over the file so deployments can repoint the model
        env_url = os.environ.get(MODEL_URL_ENV_VAR)
        if env_url:
            settings.model_url = env_url

        return settings
