"""Tests for data layer components."""
import pytest
import json
import yaml
from pathlib import Path
from tempfile import NamedTemporaryFile

from src.data_layer.food_db import FoodDB
from src.data_layer.models import ParamWeights
from src.data_layer.settings_loader import MODEL_URL_ENV_VAR, AppSettingsLoader
from src.scoring.food_scorer import ScoringStrategy
from src.selection.selector import SelectionMode

REPO_ROOT = Path(__file__).resolve().parent.parent


def write_temp(data, suffix, dump):
    with NamedTemporaryFile(mode="w", suffix=suffix, delete=False, encoding="utf-8") as f:
        dump(data, f)
        return f.name


class TestFoodDB:
    """Tests for FoodDB."""

    def test_load_foods_from_list(self):
        """Test loading a bare JSON list of foods."""
        temp_path = write_temp(
            [
                {"id": "congee", "name": "Congee", "tags": ["light"]},
                {"id": "hot_pot", "name": "Hot Pot", "params": {"price": 5}},
            ],
            ".json",
            json.dump,
        )
        try:
            db = FoodDB(temp_path)
            foods = db.get_all_foods()
            assert [f.id for f in foods] == ["congee", "hot_pot"]
            assert foods[0].tags == ("light",)
            assert foods[1].params == {"price": 5}
        finally:
            Path(temp_path).unlink()

    def test_load_foods_from_object(self):
        """Test loading foods wrapped in a {"foods": [...]} object."""
        temp_path = write_temp({"foods": [{"id": "a", "name": "A"}]}, ".json", json.dump)
        try:
            assert len(FoodDB(temp_path).get_all_foods()) == 1
        finally:
            Path(temp_path).unlink()

    def test_get_food_by_id(self):
        temp_path = write_temp([{"id": "a", "name": "A"}], ".json", json.dump)
        try:
            db = FoodDB(temp_path)
            assert db.get_food_by_id("a").name == "A"
            assert db.get_food_by_id("zzz") is None
        finally:
            Path(temp_path).unlink()

    def test_duplicate_ids_rejected(self):
        temp_path = write_temp(
            [{"id": "a", "name": "A"}, {"id": "a", "name": "Again"}], ".json", json.dump
        )
        try:
            with pytest.raises(ValueError, match="Duplicate food id"):
                FoodDB(temp_path)
        finally:
            Path(temp_path).unlink()

    def test_get_all_foods_returns_copy(self):
        temp_path = write_temp([{"id": "a", "name": "A"}], ".json", json.dump)
        try:
            db = FoodDB(temp_path)
            db.get_all_foods().clear()
            assert len(db.get_all_foods()) == 1
        finally:
            Path(temp_path).unlink()

    def test_bundled_food_data_loads(self):
        foods = FoodDB(str(REPO_ROOT / "data" / "food_data.json")).get_all_foods()
        assert len(foods) >= 5


class TestAppSettingsLoader:
    """Tests for AppSettingsLoader."""

    def test_defaults_without_file(self, monkeypatch):
        monkeypatch.delenv(MODEL_URL_ENV_VAR, raising=False)
        settings = AppSettingsLoader(None).load()

        assert settings.model_url == "data/js_model_data.json"
        assert settings.scoring_strategy is ScoringStrategy.CONTEXT_BLEND
        assert settings.selection_mode is SelectionMode.SOFTMAX
        assert settings.param_weights == ParamWeights()
        assert settings.thinking_delay_seconds == 1.5
        assert settings.model_ttl_hours == 24.0

    def test_missing_file_means_defaults(self, monkeypatch):
        monkeypatch.delenv(MODEL_URL_ENV_VAR, raising=False)
        settings = AppSettingsLoader("does/not/exist.yaml").load()
        assert settings.foods_path == "data/food_data.json"

    def test_load_settings_from_yaml(self, monkeypatch):
        """Test loading every section from YAML."""
        monkeypatch.delenv(MODEL_URL_ENV_VAR, raising=False)
        temp_path = write_temp(
            {
                "foods_path": "my_foods.json",
                "thinking_delay_seconds": 0,
                "model": {"url": "https://example.com/model.json", "ttl_hours": 6},
                "storage": {"dir": "/tmp/wte"},
                "scoring": {
                    "strategy": "parameter_weight",
                    "selection": "weighted_pool",
                    "param_weights": {"taste": 1, "price": 5},
                },
            },
            ".yaml",
            yaml.dump,
        )
        try:
            settings = AppSettingsLoader(temp_path).load()
            assert settings.foods_path == "my_foods.json"
            assert settings.thinking_delay_seconds == 0.0
            assert settings.model_url == "https://example.com/model.json"
            assert settings.model_ttl_hours == 6.0
            assert settings.storage_dir == "/tmp/wte"
            assert settings.scoring_strategy is ScoringStrategy.PARAMETER_WEIGHT
            assert settings.selection_mode is SelectionMode.WEIGHTED_POOL
            assert settings.param_weights.taste == 1
            assert settings.param_weights.price == 5
            assert settings.param_weights.health == 4
        finally:
            Path(temp_path).unlink()

    def test_env_var_overrides_model_url(self, monkeypatch):
        monkeypatch.setenv(MODEL_URL_ENV_VAR, "https://override/model.json")
        assert AppSettingsLoader(None).load().model_url == "https://override/model.json"

    def test_invalid_strategy_raises(self):
        temp_path = write_temp({"scoring": {"strategy": "astrology"}}, ".yaml", yaml.dump)
        try:
            with pytest.raises(ValueError):
                AppSettingsLoader(temp_path).load()
        finally:
            Path(temp_path).unlink()

    def test_invalid_weight_raises(self):
        temp_path = write_temp({"scoring": {"param_weights": {"taste": 9}}}, ".yaml", yaml.dump)
        try:
            with pytest.raises(ValueError):
                AppSettingsLoader(temp_path).load()
        finally:
            Path(temp_path).unlink()

    def test_bundled_settings_load(self, monkeypatch):
        monkeypatch.delenv(MODEL_URL_ENV_VAR, raising=False)
        settings = AppSettingsLoader(str(REPO_ROOT / "config" / "settings.yaml")).load()
        assert settings.model_url == "data/js_model_data.json"
