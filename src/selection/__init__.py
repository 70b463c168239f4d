"""Selection module for weighted-random food picks."""

from .selector import SelectionMode, select, softmax_probabilities, build_weighted_pool

__all__ = [
    "SelectionMode",
    "select",
    "softmax_probabilities",
    "build_weighted_pool",
]
