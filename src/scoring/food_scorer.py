"""Food scoring strategies.

Three strategies share one contract, ``(item, model, context) -> float``:

- CONTEXT_BLEND: base score blended with the time preference, then with the
  season preference, clamped to [0, 1].
- PARAMETER_WEIGHT: additive sum of the item's fixed 1-5 parameters under
  integer weights. Model independent, unbounded.
- TAG_CATEGORY: base score plus small additive bonuses for matching tags,
  category, season and time bucket. Unbounded.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from src.data_layer.models import (
    NEUTRAL_SCORE,
    Context,
    FoodItem,
    ParamWeights,
    RecommendationModel,
    ScoredItem,
)

logger = logging.getLogger(__name__)

# Context blend weights (running score share, preference share)
TIME_BLEND = (0.7, 0.3)
SEASON_BLEND = (0.8, 0.2)

# Tag/category additive multipliers
TAG_BONUS = 0.1
CATEGORY_BONUS = 0.2
SEASON_BONUS = 0.2
TIME_BONUS = 0.2

# Parameter value used when an item does not carry a parameter
DEFAULT_PARAM_VALUE = 3
# Inverted parameters reward lower raw values: (6 - raw)
INVERSION_BASE = 6


class ScoringStrategy(Enum):
    """Selectable scoring strategy."""

    CONTEXT_BLEND = "context_blend"
    PARAMETER_WEIGHT = "parameter_weight"
    TAG_CATEGORY = "tag_category"

    @classmethod
    def from_string(cls, value: str) -> "ScoringStrategy":
        """Parse a config string, raising ValueError for unknown names."""
        for strategy in cls:
            if strategy.value == value:
                return strategy
        valid = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown scoring strategy '{value}'; expected one of: {valid}")


def _clamp01(x: float) -> float:
    """Clamp to [0, 1]."""
    return max(0.0, min(1.0, x))


def base_score(item: FoodItem, model: RecommendationModel) -> float:
    """Unblended model score for *item*, neutral 0.5 when absent."""
    value = model.base_scores.get(item.id)
    if value is None:
        return NEUTRAL_SCORE
    return value


def context_blend_score(
    item: FoodItem,
    model: RecommendationModel,
    context: Optional[Context],
) -> float:
    """Sequential blend: time first, then season, each on the running score. [0, 1]."""
    score = base_score(item, model)

    if context is not None:
        if context.time:
            time_pref = model.time_preferences.get(context.time)
            if time_pref is not None:
                score = score * TIME_BLEND[0] + time_pref * TIME_BLEND[1]

        if context.season:
            season_pref = model.season_preferences.get(context.season)
            if season_pref is not None:
                score = score * SEASON_BLEND[0] + season_pref * SEASON_BLEND[1]

    return _clamp01(score)


def _param(item: FoodItem, name: str) -> int:
    return item.params.get(name, DEFAULT_PARAM_VALUE)


def parameter_weight_score(item: FoodItem, weights: ParamWeights) -> float:
    """Weighted sum of the item's parameters. Price and cookTime are inverted."""
    return float(
        (INVERSION_BASE - _param(item, "price")) * weights.price
        + _param(item, "taste") * weights.taste
        + _param(item, "health") * weights.health
        + (INVERSION_BASE - _param(item, "cookTime")) * weights.cookTime
        + _param(item, "favorite") * weights.favorite
    )


def tag_category_score(
    item: FoodItem,
    model: RecommendationModel,
    context: Optional[Context],
) -> float:
    """Base score plus additive tag, category, season and time bonuses.

    Preferences missing from the model add nothing. No clamping; the result
    only has meaning relative to other items in the same list.
    """
    score = base_score(item, model)

    for tag in item.tags:
        score += model.tag_preferences.get(tag, 0.0) * TAG_BONUS

    if item.category:
        score += model.category_preferences.get(item.category, 0.0) * CATEGORY_BONUS

    if context is not None:
        if context.season and context.season in item.seasons:
            score += model.season_preferences.get(context.season, 0.0) * SEASON_BONUS
        if context.time and context.time in item.contexts:
            score += model.time_preferences.get(context.time, 0.0) * TIME_BONUS

    return score


class FoodScorer:
    """Scores food items under one configured strategy."""

    def __init__(
        self,
        strategy: ScoringStrategy = ScoringStrategy.CONTEXT_BLEND,
        weights: Optional[ParamWeights] = None,
    ):
        """Initialize food scorer.

        Args:
            strategy: Scoring strategy to apply
            weights: Parameter weights (PARAMETER_WEIGHT strategy only)
        """
        self.strategy = strategy
        self.weights = weights or ParamWeights()

    def score(
        self,
        item: FoodItem,
        model: RecommendationModel,
        context: Optional[Context] = None,
    ) -> float:
        """Score a single item.

        Args:
            item: Food item to score
            model: Model parameters (ignored by PARAMETER_WEIGHT)
            context: Season/time snapshot for this round

        Returns:
            Scalar desirability score
        """
        if self.strategy is ScoringStrategy.CONTEXT_BLEND:
            return context_blend_score(item, model, context)
        if self.strategy is ScoringStrategy.PARAMETER_WEIGHT:
            return parameter_weight_score(item, self.weights)
        return tag_category_score(item, model, context)

    def score_all(
        self,
        items: Iterable[FoodItem],
        model: RecommendationModel,
        context: Optional[Context] = None,
    ) -> List[ScoredItem]:
        """Score every item, preserving input order."""
        return [ScoredItem(item=item, score=self.score(item, model, context)) for item in items]

    def score_batch(
        self,
        food_ids: Iterable[str],
        model: RecommendationModel,
        context: Optional[Context] = None,
    ) -> Dict[str, float]:
        """Map food ids straight to scores, for callers holding ids only.

        Only id-based information is available, so tags and parameters are
        treated as absent.
        """
        scores: Dict[str, float] = {}
        for food_id in food_ids:
            scores[food_id] = self.score(FoodItem(id=food_id, name=food_id), model, context)
        logger.debug("Scored %d ids with %s", len(scores), self.strategy.value)
        return scores
