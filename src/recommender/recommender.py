"""Recommendation round: load model, score, pause, pick, record."""

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from src.data_layer.models import Context, FoodItem, ScoredItem
from src.model_store.fetcher import SourceDispatchFetcher
from src.model_store.model_loader import DEFAULT_MODEL_URL, ModelLoadResult, ModelStore
from src.ordering.food_orderer import SortDirection, SortField, order_foods
from src.scoring.context import build_context, thinking_message
from src.scoring.food_scorer import FoodScorer
from src.selection.selector import SelectionMode, UniformSource, select
from src.storage.key_value_store import JsonFileStore, KeyValueStore
from src.storage.persistence import DataPersistence

logger = logging.getLogger(__name__)

DEFAULT_THINKING_DELAY = 1.5


@dataclass
class RecommendationResult:
    """Outcome of one recommendation round."""
    selected: Optional[FoodItem]  # None when there was nothing to pick from
    scored: List[ScoredItem]
    context: Context
    model_load: ModelLoadResult
    message: str
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.selected is not None


class Recommender:
    """Runs recommendation rounds over a food list."""

    def __init__(self,
                 model_store: ModelStore,
                 scorer: FoodScorer,
                 persistence: Optional[DataPersistence] = None,
                 selection_mode: SelectionMode = SelectionMode.SOFTMAX,
                 model_source: str = DEFAULT_MODEL_URL,
                 rng: Optional[UniformSource] = None,
                 thinking_delay: float = DEFAULT_THINKING_DELAY,
                 sleep: Callable[[float], None] = time.sleep):
        """Initialize recommender.

        Args:
            model_store: ModelStore supplying the current model
            scorer: FoodScorer with the configured strategy
            persistence: Optional DataPersistence for history and feedback
            selection_mode: Sampling algorithm
            model_source: URL or path passed to the model store
            rng: Uniform [0, 1) source (defaults to random.random)
            thinking_delay: Seconds to pause before revealing a pick
            sleep: Sleep function (replaced in tests)
        """
        self.model_store = model_store
        self.scorer = scorer
        self.persistence = persistence
        self.selection_mode = selection_mode
        self.model_source = model_source
        self.rng = rng or random.random
        self.thinking_delay = thinking_delay
        self.sleep = sleep

    def recommend(self, foods: Sequence[FoodItem], now: Optional[datetime] = None) -> RecommendationResult:
        """Pick one food for the current season and time of day.

        Args:
            foods: Candidate foods, in display order
            now: Wall-clock time for the context (defaults to now)

        Returns:
            RecommendationResult; ``selected`` is None for an empty food list
        """
        context = build_context(now)
        message = thinking_message(context)
        model_load = self.model_store.load(self.model_source)

        warnings = []
        if model_load.is_fallback:
            warnings.append(f"Using default model: {model_load.reason}")

        if not foods:
            warnings.append("No foods loaded; nothing to recommend")
            return RecommendationResult(
                selected=None,
                scored=[],
                context=context,
                model_load=model_load,
                message=message,
                warnings=warnings,
            )

        scored = self.scorer.score_all(foods, model_load.model, context)

        logger.info(message)
        if self.thinking_delay > 0:
            self.sleep(self.thinking_delay)

        selected = select(scored, self.selection_mode, self.rng)
        self._record_selection(selected, scored, context)

        return RecommendationResult(
            selected=selected,
            scored=scored,
            context=context,
            model_load=model_load,
            message=message,
            warnings=warnings,
        )

    def ordered(self,
                foods: Sequence[FoodItem],
                sort_field: SortField = SortField.NAME,
                direction: SortDirection = SortDirection.ASC,
                param: Optional[str] = None,
                now: Optional[datetime] = None) -> List[FoodItem]:
        """Order foods for display; score ordering uses a fresh context."""
        model = self.model_store.current_model
        if sort_field is SortField.SCORE:
            model = self.model_store.load(self.model_source).model
        return order_foods(
            foods,
            sort_field,
            direction,
            param=param,
            scorer=self.scorer,
            model=model,
            context=build_context(now),
        )

    def record_feedback(self, food_id: str, liked: bool, note: Optional[str] = None) -> bool:
        """Store a like/dislike for a food. False when nothing could be saved."""
        if self.persistence is None:
            return False
        feedback: Dict[str, Any] = {"food_id": food_id, "liked": liked}
        if note:
            feedback["note"] = note
        return self.persistence.save_feedback(feedback)

    def _record_selection(self,
                          selected: FoodItem,
                          scored: List[ScoredItem],
                          context: Context) -> None:
        if self.persistence is None:
            return
        score = next(entry.score for entry in scored if entry.item is selected)
        saved = self.persistence.save_selection_history({
            "food_id": selected.id,
            "food_name": selected.name,
            "score": score,
            "season": context.season,
            "context": context.time,
            "strategy": self.scorer.strategy.value,
            "selection_mode": self.selection_mode.value,
        })
        if not saved:
            logger.warning("Selection of '%s' was not recorded", selected.id)


def build_recommender(settings, store: Optional[KeyValueStore] = None, rng: Optional[UniformSource] = None) -> Recommender:
    """Wire a Recommender from AppSettings.

    Args:
        settings: AppSettings instance
        store: Optional KeyValueStore (defaults to a JsonFileStore in settings.storage_dir)
        rng: Optional uniform [0, 1) source

    Returns:
        Recommender ready to use
    """
    if store is None:
        store = JsonFileStore(settings.storage_dir)
    model_store = ModelStore(
        store,
        SourceDispatchFetcher(),
        ttl=timedelta(hours=settings.model_ttl_hours),
    )
    scorer = FoodScorer(settings.scoring_strategy, settings.param_weights)
    return Recommender(
        model_store=model_store,
        scorer=scorer,
        persistence=DataPersistence(store),
        selection_mode=settings.selection_mode,
        model_source=settings.model_url,
        rng=rng,
        thinking_delay=settings.thinking_delay_seconds,
    )
