"""Recommendation rounds over a food list."""

from .recommender import Recommender, RecommendationResult

__all__ = [
    "Recommender",
    "RecommendationResult",
]
