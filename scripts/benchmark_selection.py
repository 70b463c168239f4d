#!/usr/bin/env python3
"""Benchmark selection: run time and empirical pick distribution.

Run from repo root:
  python scripts/benchmark_selection.py

Optional: WHATTOEAT_ROUNDS, WHATTOEAT_MODE (softmax | weighted_pool) and
WHATTOEAT_STRATEGY (context_blend | parameter_weight | tag_category) via env.
"""
from __future__ import annotations

import os
import sys
import time
from collections import Counter

# Allow importing from src when run from repo root
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.data_layer.food_db import FoodDB
from src.data_layer.models import RecommendationModel
from src.model_store.fetcher import LocalFileFetcher
from src.model_store.model_loader import validate_model_data
from src.scoring.context import build_context
from src.scoring.food_scorer import FoodScorer, ScoringStrategy
from src.selection.selector import (
    SelectionMode,
    build_weighted_pool,
    select,
    softmax_probabilities,
)


def main() -> None:
    rounds = int(os.environ.get("WHATTOEAT_ROUNDS", "20000"))
    mode = SelectionMode.from_string(os.environ.get("WHATTOEAT_MODE", "softmax"))
    strategy = ScoringStrategy.from_string(
        os.environ.get("WHATTOEAT_STRATEGY", "context_blend")
    )

    foods = FoodDB("data/food_data.json").get_all_foods()
    raw = LocalFileFetcher().fetch("data/js_model_data.json")
    model = RecommendationModel.from_dict(validate_model_data(raw))
    context = build_context()
    scored = FoodScorer(strategy).score_all(foods, model, context)

    if mode is SelectionMode.SOFTMAX:
        expected = softmax_probabilities([entry.score for entry in scored])
    else:
        pool = build_weighted_pool(scored)
        expected = [pool.count(entry.item) / len(pool) for entry in scored]

    t0 = time.perf_counter()
    counts = Counter(select(scored, mode).id for _ in range(rounds))
    t1 = time.perf_counter()

    print("--- Selection benchmark ---")
    print(f"Context: {context.season} / {context.time}")
    print(f"Strategy: {strategy.value}, mode: {mode.value}")
    print(f"Rounds: {rounds}")
    print(f"Wall time: {t1 - t0:.3f}s ({(t1 - t0) / rounds * 1e6:.1f}us per pick)")
    for entry, probability in zip(scored, expected):
        observed = counts.get(entry.item.id, 0) / rounds
        print(
            f"  {entry.item.name:<16} score={entry.score:8.3f} "
            f"expected={probability:6.3f} observed={observed:6.3f}"
        )
    print("---------------------------")


if __name__ == "__main__":
    main()
