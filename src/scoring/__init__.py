"""Scoring module for food evaluation under a season/time context."""

from .food_scorer import FoodScorer, ScoringStrategy
from .context import build_context

__all__ = [
    "FoodScorer",
    "ScoringStrategy",
    "build_context",
]
