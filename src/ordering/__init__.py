"""Ordering module for food list display."""

from .food_orderer import SortDirection, SortField, order_foods, parse_sort

__all__ = [
    "SortDirection",
    "SortField",
    "order_foods",
    "parse_sort",
]
