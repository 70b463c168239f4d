"""Display ordering for food lists.

Pure and side-effect free: returns a new list, never mutates the input.
Sorting is stable in both directions, so items with equal keys keep their
input order. Score ordering recomputes scores on every call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, Tuple

from src.data_layer.models import PARAM_NAMES, Context, FoodItem, RecommendationModel
from src.scoring.food_scorer import FoodScorer


class SortField(Enum):
    ID = "id"
    NAME = "name"
    CATEGORY = "category"
    PARAM = "param"
    CREATED_AT = "created_at"
    SCORE = "score"


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


def parse_sort(value: str) -> Tuple[SortField, SortDirection, Optional[str]]:
    """Parse a ``field-direction`` string such as ``"score-desc"``.

    A parameter name (``"taste-desc"``) selects PARAM ordering on that
    parameter. The direction defaults to ascending when omitted.

    Returns:
        (field, direction, param_name)

    Raises:
        ValueError: If the field or direction is unknown
    """
    field_str, _, direction_str = value.strip().partition("-")
    try:
        direction = SortDirection(direction_str or "asc")
    except ValueError:
        raise ValueError(f"Unknown sort direction '{direction_str}'") from None

    if field_str in PARAM_NAMES:
        return SortField.PARAM, direction, field_str
    try:
        field = SortField(field_str)
    except ValueError:
        raise ValueError(f"Unknown sort field '{field_str}'") from None
    if field is SortField.PARAM:
        raise ValueError("Parameter ordering needs a parameter name, e.g. 'taste-desc'")
    return field, direction, None


def _created_key(item: FoodItem) -> Tuple[int, float]:
    # Items without a timestamp sort before dated ones
    if item.created_at is None:
        return (0, 0.0)
    return (1, item.created_at.timestamp())


def _key_function(
    field: SortField,
    param: Optional[str],
) -> Callable[[FoodItem], Any]:
    if field is SortField.ID:
        return lambda item: item.id.lower()
    if field is SortField.NAME:
        return lambda item: item.name.lower()
    if field is SortField.CATEGORY:
        return lambda item: item.category or ""
    if field is SortField.PARAM:
        if not param:
            raise ValueError("PARAM ordering requires a parameter name")
        return lambda item: float(item.params.get(param, 0))
    if field is SortField.CREATED_AT:
        return _created_key
    raise ValueError(f"No static key for {field}")


def order_foods(
    items: Sequence[FoodItem],
    field: SortField,
    direction: SortDirection = SortDirection.ASC,
    *,
    param: Optional[str] = None,
    scorer: Optional[FoodScorer] = None,
    model: Optional[RecommendationModel] = None,
    context: Optional[Context] = None,
) -> List[FoodItem]:
    """Return *items* in display order.

    Args:
        items: Foods to order (not mutated)
        field: Sort field
        direction: Ascending or descending
        param: Parameter name for PARAM ordering
        scorer: Scorer for SCORE ordering
        model: Model for SCORE ordering
        context: Current context for SCORE ordering

    Returns:
        New list, stably sorted

    Raises:
        ValueError: If SCORE ordering lacks a scorer or model, or PARAM lacks a name
    """
    reverse = direction is SortDirection.DESC

    if field is SortField.SCORE:
        if scorer is None or model is None:
            raise ValueError("SCORE ordering requires a scorer and a model")
        scored = scorer.score_all(items, model, context)
        scored = sorted(scored, key=lambda entry: entry.score, reverse=reverse)
        return [entry.item for entry in scored]

    return sorted(items, key=_key_function(field, param), reverse=reverse)
