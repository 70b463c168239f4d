"""Weighted-random selection over scored food items.

Two interchangeable modes:

- SOFTMAX: exp-normalized probabilities, sampled by walking the cumulative
  distribution in input order.
- WEIGHTED_POOL: each item replicated max(1, round(score / max * 10)) times,
  then a uniform draw from the pool.

Both are deterministic given the uniform [0, 1) source passed in as ``rng``.
No I/O, no state.
"""

from __future__ import annotations

import math
import random
from enum import Enum
from typing import Callable, List, Optional, Sequence

from src.data_layer.exceptions import InvalidScoreError
from src.data_layer.models import FoodItem, ScoredItem

UniformSource = Callable[[], float]

# Pool slots awarded to the top-scoring item
POOL_SCALE = 10
MIN_POOL_WEIGHT = 1


class SelectionMode(Enum):
    """Selectable sampling algorithm."""

    SOFTMAX = "softmax"
    WEIGHTED_POOL = "weighted_pool"

    @classmethod
    def from_string(cls, value: str) -> "SelectionMode":
        """Parse a config string, raising ValueError for unknown names."""
        for mode in cls:
            if mode.value == value:
                return mode
        valid = ", ".join(m.value for m in cls)
        raise ValueError(f"Unknown selection mode '{value}'; expected one of: {valid}")


def _check_finite(scored: Sequence[ScoredItem]) -> None:
    for entry in scored:
        if not math.isfinite(entry.score):
            raise InvalidScoreError(entry.item.id, entry.score)


def _uniform_index(u: float, n: int) -> int:
    """Map u in [0, 1) onto an index in [0, n)."""
    return min(int(u * n), n - 1)


def round_half_up(x: float) -> int:
    """Round to nearest integer; exact .5 ties go up (2.5 -> 3)."""
    return int(math.floor(x + 0.5))


# --- Softmax sampling ---


def softmax_probabilities(scores: Sequence[float]) -> List[float]:
    """Convert finite scores into probabilities summing to 1.

    Scores are shifted by their maximum before exponentiation. The result is
    identical to exp(s) / sum(exp(s)) but cannot overflow for large
    parameter-weight sums.
    """
    if not scores:
        return []
    top = max(scores)
    exps = [math.exp(s - top) for s in scores]
    total = sum(exps)
    return [e / total for e in exps]


def softmax_select(scored: Sequence[ScoredItem], rng: UniformSource) -> FoodItem:
    """Pick the first item whose cumulative probability exceeds a uniform draw.

    Falls back to a uniform pick when floating-point rounding leaves the
    cumulative sum at or below the draw.
    """
    probabilities = softmax_probabilities([entry.score for entry in scored])
    u = rng()
    cumulative = 0.0
    for entry, probability in zip(scored, probabilities):
        cumulative += probability
        if u < cumulative:
            return entry.item
    return scored[_uniform_index(rng(), len(scored))].item


# --- Weighted pool ---


def pool_weight(score: float, max_score: float) -> int:
    """Number of pool slots for *score*; at least one.

    A non-positive max_score gives every item exactly one slot.
    """
    if max_score <= 0:
        return MIN_POOL_WEIGHT
    return max(MIN_POOL_WEIGHT, round_half_up((score / max_score) * POOL_SCALE))


def pool_weights(scored: Sequence[ScoredItem]) -> List[int]:
    """Pool slot counts in input order."""
    if not scored:
        return []
    max_score = max(entry.score for entry in scored)
    return [pool_weight(entry.score, max_score) for entry in scored]


def build_weighted_pool(scored: Sequence[ScoredItem]) -> List[FoodItem]:
    """Flat pool with each item repeated by its weight, in input order."""
    pool: List[FoodItem] = []
    for entry, weight in zip(scored, pool_weights(scored)):
        pool.extend([entry.item] * weight)
    return pool


def weighted_pool_select(scored: Sequence[ScoredItem], rng: UniformSource) -> FoodItem:
    """Uniform draw from the replicated pool."""
    pool = build_weighted_pool(scored)
    return pool[_uniform_index(rng(), len(pool))]


# --- Public API ---


def select(
    scored: Sequence[ScoredItem],
    mode: SelectionMode = SelectionMode.SOFTMAX,
    rng: Optional[UniformSource] = None,
) -> Optional[FoodItem]:
    """Choose one item from scored candidates.

    Args:
        scored: Candidates with their scores, in display order
        mode: Sampling algorithm
        rng: Zero-argument uniform [0, 1) source (defaults to random.random)

    Returns:
        The chosen FoodItem, or None when there are no candidates

    Raises:
        InvalidScoreError: If any score is NaN or infinite
    """
    if not scored:
        return None
    _check_finite(scored)
    if rng is None:
        rng = random.random
    if mode is SelectionMode.WEIGHTED_POOL:
        return weighted_pool_select(scored, rng)
    return softmax_select(scored, rng)
