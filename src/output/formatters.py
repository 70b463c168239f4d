"""Formatters for recommendation output (JSON and Markdown)."""

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from src.data_layer.models import FoodItem
from src.recommender.recommender import RecommendationResult
from src.scoring.context import context_label


def format_food_line(food: FoodItem, score: Optional[float] = None) -> str:
    """Format a food as a single line (e.g., "Beef Noodles [noodles] #spicy #hot (0.66)").

    Args:
        food: FoodItem object
        score: Optional score to append

    Returns:
        Formatted string
    """
    parts = [food.name]
    if food.category:
        parts.append(f"[{food.category}]")
    parts.extend(f"#{tag}" for tag in food.tags)
    if score is not None:
        parts.append(f"({score:.2f})")
    return " ".join(parts)


def format_context_line(season: Optional[str], time_bucket: Optional[str]) -> str:
    """Format the context as e.g. "Context: summer Lunch" (no label for general)."""
    label = context_label(time_bucket)
    if label:
        return f"Context: {season} {label}"
    return f"Context: {season}"


def format_food_list_markdown(
    foods: Sequence[FoodItem],
    scores: Optional[Mapping[str, float]] = None,
) -> str:
    """Format an ordered food list as a Markdown bullet list.

    Args:
        foods: Foods in display order
        scores: Optional food id -> score mapping

    Returns:
        Markdown string
    """
    if not foods:
        return "_No foods loaded._"
    lines = []
    for food in foods:
        score = scores.get(food.id) if scores else None
        lines.append(f"- {format_food_line(food, score)}")
    return "\n".join(lines)


def format_recommendation_json(result: RecommendationResult) -> Dict[str, Any]:
    """Convert a RecommendationResult to a JSON-serializable dictionary."""
    selected = result.selected
    return {
        "success": result.success,
        "selected": selected.to_dict() if selected else None,
        "context": {"season": result.context.season, "time": result.context.time},
        "model": {
            "source": result.model_load.source.value,
            "version": result.model_load.model.metadata.version,
            "fallback_reason": result.model_load.reason,
        },
        "scores": [
            {"id": entry.item.id, "name": entry.item.name, "score": entry.score}
            for entry in result.scored
        ],
        "message": result.message,
        "warnings": list(result.warnings),
    }


def format_recommendation_json_string(result: RecommendationResult, indent: int = 2) -> str:
    return json.dumps(format_recommendation_json(result), indent=indent, ensure_ascii=False)


def format_recommendation_markdown(result: RecommendationResult) -> str:
    """Format a RecommendationResult as Markdown.

    Args:
        result: RecommendationResult to format

    Returns:
        Markdown string with the pick, its description and the context
    """
    lines: List[str] = ["# What to Eat", ""]
    lines.append(format_context_line(result.context.season, result.context.time))
    lines.append("")

    if result.selected is None:
        lines.append("No recommendation available.")
    else:
        food = result.selected
        lines.append(f"## {food.name}")
        description = food.description or ", ".join(food.tags)
        if description:
            lines.append("")
            lines.append(description)

    if result.warnings:
        lines.append("")
        lines.append("**Warnings:**")
        for warning in result.warnings:
            lines.append(f"- {warning}")

    return "\n".join(lines)
