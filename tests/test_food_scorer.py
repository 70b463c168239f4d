"""Tests for food scoring strategies."""

import pytest

from src.data_layer.models import Context, FoodItem, ParamWeights, RecommendationModel
from src.scoring.food_scorer import (
    FoodScorer,
    ScoringStrategy,
    base_score,
    context_blend_score,
    parameter_weight_score,
    tag_category_score,
)


@pytest.fixture
def model():
    return RecommendationModel(
        base_scores={"x": 0.6, "hot_pot": 0.6, "top": 0.95},
        time_preferences={"lunch": 0.8, "dinner": 0.4},
        season_preferences={"winter": 0.9, "summer": 1.0},
        tag_preferences={"spicy": 0.8, "soup": 0.5},
        category_preferences={"sichuan": 0.7},
    )


@pytest.fixture
def hot_pot():
    return FoodItem(
        id="hot_pot",
        name="Hot Pot",
        tags=("spicy", "soup", "shared"),
        category="sichuan",
        seasons=("winter",),
        contexts=("dinner",),
    )


class TestBaseScore:
    """Tests for base score lookup."""

    def test_known_item(self, model):
        assert base_score(FoodItem(id="x", name="X"), model) == 0.6

    def test_unknown_item_is_neutral(self, model):
        assert base_score(FoodItem(id="nope", name="Nope"), model) == 0.5


class TestContextBlend:
    """Tests for the sequential time/season blend."""

    def test_time_only_blend(self, model):
        """Base 0.6 blended with lunch 0.8 gives 0.66."""
        score = context_blend_score(FoodItem(id="x", name="X"), model, Context(time="lunch"))
        assert score == pytest.approx(0.66)

    def test_time_then_season_blend(self, model):
        score = context_blend_score(
            FoodItem(id="x", name="X"), model, Context(season="winter", time="dinner")
        )
        expected = (0.6 * 0.7 + 0.4 * 0.3) * 0.8 + 0.9 * 0.2
        assert score == pytest.approx(expected)

    def test_no_context_returns_base(self, model):
        assert context_blend_score(FoodItem(id="x", name="X"), model, None) == 0.6

    def test_unknown_preferences_are_skipped(self, model):
        score = context_blend_score(
            FoodItem(id="x", name="X"), model, Context(season="spring", time="general")
        )
        assert score == pytest.approx(0.6)

    def test_zero_preference_still_blends(self):
        model = RecommendationModel(base_scores={"x": 1.0}, time_preferences={"lunch": 0.0})
        score = context_blend_score(FoodItem(id="x", name="X"), model, Context(time="lunch"))
        assert score == pytest.approx(0.7)

    def test_out_of_range_values_are_clamped(self):
        model = RecommendationModel(base_scores={"hi": 3.0, "lo": -2.0})
        context = Context()

        assert context_blend_score(FoodItem(id="hi", name="Hi"), model, context) == 1.0
        assert context_blend_score(FoodItem(id="lo", name="Lo"), model, context) == 0.0

    def test_result_within_unit_interval(self, model):
        score = context_blend_score(
            FoodItem(id="top", name="Top"), model, Context(season="summer", time="lunch")
        )
        assert 0.0 <= score <= 1.0


class TestParameterWeight:
    """Tests for the additive parameter-weight strategy."""

    def test_default_weights(self):
        item = FoodItem(
            id="a",
            name="A",
            params={"price": 1, "taste": 5, "health": 3, "cookTime": 2, "favorite": 4},
        )
        # (6-1)*3 + 5*5 + 3*4 + (6-2)*2 + 4*5
        assert parameter_weight_score(item, ParamWeights()) == 80.0

    def test_missing_params_count_as_three(self):
        item = FoodItem(id="a", name="A")
        # 3*3 + 3*5 + 3*4 + 3*2 + 3*5
        assert parameter_weight_score(item, ParamWeights()) == 57.0

    def test_cheaper_and_quicker_score_higher(self):
        cheap = FoodItem(id="c", name="C", params={"price": 1, "cookTime": 1})
        pricey = FoodItem(id="p", name="P", params={"price": 5, "cookTime": 5})
        weights = ParamWeights()

        assert parameter_weight_score(cheap, weights) > parameter_weight_score(pricey, weights)

    def test_custom_weights(self):
        item = FoodItem(id="a", name="A", params={"taste": 5})
        low = ParamWeights(taste=1)
        high = ParamWeights(taste=5)

        assert parameter_weight_score(item, high) - parameter_weight_score(item, low) == 20.0


class TestTagCategory:
    """Tests for the additive tag/category strategy."""

    def test_all_bonuses(self, model, hot_pot):
        score = tag_category_score(hot_pot, model, Context(season="winter", time="dinner"))
        # base + tags (0.8 + 0.5) * 0.1 + category 0.7 * 0.2 + season 0.9 * 0.2 + time 0.4 * 0.2
        assert score == pytest.approx(0.6 + 0.13 + 0.14 + 0.18 + 0.08)

    def test_season_and_time_only_when_item_lists_them(self, model, hot_pot):
        score = tag_category_score(hot_pot, model, Context(season="summer", time="lunch"))
        assert score == pytest.approx(0.6 + 0.13 + 0.14)

    def test_missing_preferences_add_nothing(self):
        item = FoodItem(id="a", name="A", tags=("unknown",), category="mystery")
        score = tag_category_score(item, RecommendationModel(), Context())
        assert score == pytest.approx(0.5)

    def test_not_clamped(self):
        model = RecommendationModel(base_scores={"a": 1.0}, category_preferences={"c": 1.0})
        item = FoodItem(id="a", name="A", category="c")
        assert tag_category_score(item, model, None) == pytest.approx(1.2)


class TestFoodScorer:
    """Tests for the strategy dispatcher."""

    def test_default_strategy_is_context_blend(self, model):
        scorer = FoodScorer()
        score = scorer.score(FoodItem(id="x", name="X"), model, Context(time="lunch"))

        assert scorer.strategy is ScoringStrategy.CONTEXT_BLEND
        assert score == pytest.approx(0.66)

    def test_parameter_weight_ignores_model(self, model):
        scorer = FoodScorer(ScoringStrategy.PARAMETER_WEIGHT)
        item = FoodItem(id="x", name="X")

        assert scorer.score(item, model) == scorer.score(item, RecommendationModel())

    def test_score_all_preserves_order(self, model, hot_pot):
        items = [hot_pot, FoodItem(id="x", name="X")]
        scored = FoodScorer(ScoringStrategy.TAG_CATEGORY).score_all(items, model, Context())

        assert [entry.item.id for entry in scored] == ["hot_pot", "x"]

    def test_score_batch_by_id(self, model):
        scores = FoodScorer().score_batch(["x", "nope"], model, Context(time="lunch"))

        assert scores["x"] == pytest.approx(0.66)
        assert scores["nope"] == pytest.approx(0.5 * 0.7 + 0.8 * 0.3)

    def test_strategy_from_string(self):
        assert ScoringStrategy.from_string("tag_category") is ScoringStrategy.TAG_CATEGORY
        with pytest.raises(ValueError, match="Unknown scoring strategy"):
            ScoringStrategy.from_string("vibes")
