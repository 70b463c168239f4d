#!/usr/bin/env python3
"""Command-line interface for the What to Eat recommender."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from src.data_layer.food_db import FoodDB
from src.data_layer.settings_loader import AppSettings, AppSettingsLoader
from src.ordering.food_orderer import SortField, parse_sort
from src.output.formatters import (
    format_context_line,
    format_food_list_markdown,
    format_recommendation_json_string,
    format_recommendation_markdown,
)
from src.recommender.recommender import Recommender, build_recommender
from src.scoring.context import build_context


def load_settings(args: argparse.Namespace) -> AppSettings:
    """Load settings from --config and apply command-line overrides."""
    settings = AppSettingsLoader(args.config).load()
    if args.foods:
        settings.foods_path = args.foods
    if args.model_url:
        settings.model_url = args.model_url
    if args.storage_dir:
        settings.storage_dir = args.storage_dir
    return settings


def load_foods(settings: AppSettings) -> FoodDB:
    foods_path = Path(settings.foods_path)
    if not foods_path.exists():
        print(f"Error: Foods file not found: {foods_path}", file=sys.stderr)
        sys.exit(1)
    print(f"Loading foods from {foods_path}...", file=sys.stderr)
    return FoodDB(str(foods_path))


def cmd_recommend(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    if args.no_delay:
        recommender.thinking_delay = 0
    food_db = load_foods(settings)
    foods = food_db.get_all_foods()
    print(f"Found {len(foods)} foods", file=sys.stderr)

    result = recommender.recommend(foods)
    if args.strict and result.model_load.is_fallback:
        print(f"Error: model unavailable: {result.model_load.reason}", file=sys.stderr)
        sys.exit(3)

    if args.output == "json":
        print(format_recommendation_json_string(result))
    else:
        print(format_recommendation_markdown(result))

    if not result.success:
        sys.exit(2)


def cmd_list(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    try:
        sort_field, direction, param = parse_sort(args.sort)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    foods = load_foods(settings).get_all_foods()
    ordered = recommender.ordered(foods, sort_field, direction, param=param)
    context = build_context()

    scores = None
    if sort_field is SortField.SCORE:
        model = recommender.model_store.current_model
        scores = {e.item.id: e.score for e in recommender.scorer.score_all(foods, model, context)}

    if args.output == "json":
        print(json.dumps([f.to_dict() for f in ordered], indent=2, ensure_ascii=False))
    else:
        print(format_context_line(context.season, context.time))
        print()
        print(format_food_list_markdown(ordered, scores))


def cmd_model_stats(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    recommender.model_store.load(settings.model_url)
    print(json.dumps(recommender.model_store.stats(), indent=2, ensure_ascii=False))


def cmd_refresh_model(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    result = recommender.model_store.refresh(settings.model_url)
    if result.is_fallback:
        print(f"Error: refresh failed: {result.reason}", file=sys.stderr)
        sys.exit(3)
    print(f"Model refreshed (version {result.model.metadata.version})", file=sys.stderr)


def cmd_export(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    exported = recommender.persistence.export_all_data()
    if exported is None:
        print("Error: storage unavailable", file=sys.stderr)
        sys.exit(1)
    if args.output_file:
        Path(args.output_file).write_text(exported, encoding="utf-8")
        print(f"Data exported to {args.output_file}", file=sys.stderr)
    else:
        print(exported)


def cmd_import(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    path = Path(args.file)
    if not path.exists():
        print(f"Error: Import file not found: {path}", file=sys.stderr)
        sys.exit(1)
    if not recommender.persistence.import_data(path.read_text(encoding="utf-8")):
        print(f"Error: could not import {path}", file=sys.stderr)
        sys.exit(1)
    print(f"Data imported from {path}", file=sys.stderr)


def cmd_history(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    history = recommender.persistence.get_selection_history() or []
    print(json.dumps(history[-args.limit:], indent=2, ensure_ascii=False))


def cmd_feedback(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    if not recommender.record_feedback(args.food_id, liked=args.like, note=args.note):
        print("Error: feedback was not saved", file=sys.stderr)
        sys.exit(1)
    print("Feedback saved", file=sys.stderr)


def cmd_clear(args: argparse.Namespace, settings: AppSettings, recommender: Recommender) -> None:
    recommender.model_store.clear()
    if not recommender.persistence.clear_all_data():
        print("Error: storage unavailable", file=sys.stderr)
        sys.exit(1)
    print("All stored data cleared", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recommend something to eat based on a learned preference model"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)"
    )
    parser.add_argument("--foods", type=str, help="Path to foods JSON file (overrides config)")
    parser.add_argument("--model-url", type=str, help="Model URL or path (overrides config)")
    parser.add_argument("--storage-dir", type=str, help="Storage directory (overrides config)")
    parser.add_argument(
        "--output",
        type=str,
        choices=["markdown", "json"],
        default="markdown",
        help="Output format: markdown (default) or json"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    recommend = sub.add_parser("recommend", help="Pick one food")
    recommend.add_argument("--no-delay", action="store_true", help="Skip the thinking pause")
    recommend.add_argument(
        "--strict", action="store_true", help="Exit with code 3 if the model cannot be loaded"
    )
    recommend.set_defaults(handler=cmd_recommend)

    list_cmd = sub.add_parser("list", help="List foods in display order")
    list_cmd.add_argument(
        "--sort",
        default="name-asc",
        help="field-direction, e.g. name-asc, category-asc, score-desc, taste-desc"
    )
    list_cmd.set_defaults(handler=cmd_list)

    sub.add_parser("model-stats", help="Show model status").set_defaults(handler=cmd_model_stats)
    sub.add_parser("refresh-model", help="Force a model reload").set_defaults(handler=cmd_refresh_model)

    export = sub.add_parser("export", help="Export history, preferences, settings and feedback")
    export.add_argument("--output-file", type=str, help="Write to file instead of stdout")
    export.set_defaults(handler=cmd_export)

    import_cmd = sub.add_parser("import", help="Import a previously exported file")
    import_cmd.add_argument("file", type=str)
    import_cmd.set_defaults(handler=cmd_import)

    history = sub.add_parser("history", help="Show recent selections")
    history.add_argument("--limit", type=int, default=20)
    history.set_defaults(handler=cmd_history)

    feedback = sub.add_parser("feedback", help="Like or dislike a food")
    feedback.add_argument("food_id", type=str)
    vote = feedback.add_mutually_exclusive_group(required=True)
    vote.add_argument("--like", dest="like", action="store_true")
    vote.add_argument("--dislike", dest="like", action="store_false")
    feedback.add_argument("--note", type=str)
    feedback.set_defaults(handler=cmd_feedback)

    sub.add_parser("clear", help="Remove all stored data").set_defaults(handler=cmd_clear)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args)
    except (ValueError, OSError) as e:
        print(f"Error: invalid settings: {e}", file=sys.stderr)
        sys.exit(1)

    recommender = build_recommender(settings)
    args.handler(args, settings, recommender)


if __name__ == "__main__":
    main()
