"""FastAPI server for the What to Eat recommender."""

import json
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from src.data_layer.food_db import FoodDB
from src.data_layer.models import FoodItem
from src.data_layer.settings_loader import AppSettingsLoader
from src.ordering.food_orderer import SortField, parse_sort
from src.output.formatters import format_recommendation_json
from src.recommender.recommender import Recommender, build_recommender
from src.scoring.context import build_context

SETTINGS_ENV_VAR = "WHATTOEAT_CONFIG"
settings_path = os.environ.get(SETTINGS_ENV_VAR, "config/settings.yaml")

app = FastAPI(title="What to Eat API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Local development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class FeedbackRequest(BaseModel):
    food_id: str
    liked: bool
    note: Optional[str] = None


class ImportRequest(BaseModel):
    history: Optional[List[Dict[str, Any]]] = None
    preferences: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    feedback: Optional[List[Dict[str, Any]]] = None


class FoodOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    score: Optional[float] = None


@lru_cache(maxsize=1)
def get_recommender() -> Recommender:
    settings = AppSettingsLoader(settings_path).load()
    recommender = build_recommender(settings)
    # The HTTP client renders its own waiting state
    recommender.thinking_delay = 0
    return recommender


@lru_cache(maxsize=1)
def get_foods() -> List[FoodItem]:
    settings = AppSettingsLoader(settings_path).load()
    return FoodDB(settings.foods_path).get_all_foods()


def _food_out(food: FoodItem, score: Optional[float] = None) -> FoodOut:
    return FoodOut(
        id=food.id,
        name=food.name,
        description=food.description,
        tags=list(food.tags),
        category=food.category,
        score=score,
    )


@app.post("/api/recommend")
def recommend(
    recommender: Recommender = Depends(get_recommender),
    foods: List[FoodItem] = Depends(get_foods),
) -> Dict[str, Any]:
    result = recommender.recommend(foods)
    if not result.success:
        raise HTTPException(status_code=409, detail="No foods loaded; nothing to recommend")
    return format_recommendation_json(result)


@app.get("/api/foods")
def list_foods(
    sort: str = "name-asc",
    recommender: Recommender = Depends(get_recommender),
    foods: List[FoodItem] = Depends(get_foods),
) -> List[FoodOut]:
    try:
        sort_field, direction, param = parse_sort(sort)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    ordered = recommender.ordered(foods, sort_field, direction, param=param)
    if sort_field is not SortField.SCORE:
        return [_food_out(food) for food in ordered]

    scores = {
        entry.item.id: entry.score
        for entry in recommender.scorer.score_all(
            foods, recommender.model_store.current_model, build_context()
        )
    }
    return [_food_out(food, scores.get(food.id)) for food in ordered]


@app.get("/api/model/stats")
def model_stats(recommender: Recommender = Depends(get_recommender)) -> Dict[str, Any]:
    return recommender.model_store.stats()


@app.post("/api/model/refresh")
def refresh_model(recommender: Recommender = Depends(get_recommender)) -> Dict[str, Any]:
    result = recommender.model_store.refresh(recommender.model_source)
    return {
        "source": result.source.value,
        "version": result.model.metadata.version,
        "fallback_reason": result.reason,
    }


@app.get("/api/history")
def history(recommender: Recommender = Depends(get_recommender)) -> List[Dict[str, Any]]:
    entries = recommender.persistence.get_selection_history()
    if entries is None:
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return entries


@app.post("/api/feedback")
def feedback(
    request: FeedbackRequest,
    recommender: Recommender = Depends(get_recommender),
) -> Dict[str, bool]:
    if not recommender.record_feedback(request.food_id, request.liked, request.note):
        raise HTTPException(status_code=503, detail="Feedback was not saved")
    return {"saved": True}


@app.get("/api/export")
def export_data(recommender: Recommender = Depends(get_recommender)) -> Dict[str, Any]:
    exported = recommender.persistence.export_all_data()
    if exported is None:
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return json.loads(exported)


@app.post("/api/import")
def import_data(
    request: ImportRequest,
    recommender: Recommender = Depends(get_recommender),
) -> Dict[str, bool]:
    payload = request.model_dump(exclude_none=True)
    if not recommender.persistence.import_data(json.dumps(payload)):
        raise HTTPException(status_code=503, detail="Import failed")
    return {"imported": True}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
