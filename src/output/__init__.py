"""Output formatting for recommendations and food lists."""

from src.output.formatters import (
    format_recommendation_json,
    format_recommendation_json_string,
    format_recommendation_markdown,
    format_food_list_markdown,
    format_food_line,
)

__all__ = [
    "format_recommendation_json",
    "format_recommendation_json_string",
    "format_recommendation_markdown",
    "format_food_list_markdown",
    "format_food_line",
]
