"""Context derivation from wall-clock time.

A Context is computed once per selection round and never cached across
calls, since the time-of-day bucket can change between calls.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from src.data_layer.models import Context

SPRING = "spring"
SUMMER = "summer"
AUTUMN = "autumn"
WINTER = "winter"

LUNCH = "lunch"
DINNER = "dinner"
GENERAL = "general"

# Half-open hour ranges [start, end) for each meal bucket
LUNCH_HOURS = (11, 14)
DINNER_HOURS = (17, 19)

_CONTEXT_LABELS = {
    LUNCH: "Lunch",
    DINNER: "Dinner",
    GENERAL: "",
}


def current_season(now: datetime) -> str:
    """Meteorological season for the month of *now* (northern hemisphere)."""
    month = now.month
    if 3 <= month <= 5:
        return SPRING
    if 6 <= month <= 8:
        return SUMMER
    if 9 <= month <= 11:
        return AUTUMN
    return WINTER


def current_time_bucket(now: datetime) -> str:
    """Meal bucket for the hour of *now*: lunch, dinner or general."""
    hour = now.hour
    if LUNCH_HOURS[0] <= hour < LUNCH_HOURS[1]:
        return LUNCH
    if DINNER_HOURS[0] <= hour < DINNER_HOURS[1]:
        return DINNER
    return GENERAL


def build_context(now: Optional[datetime] = None) -> Context:
    """Snapshot the season and time bucket for one selection round."""
    if now is None:
        now = datetime.now()
    return Context(season=current_season(now), time=current_time_bucket(now))


def context_label(time_bucket: Optional[str]) -> str:
    """Display label for a time bucket; empty for the general bucket."""
    return _CONTEXT_LABELS.get(time_bucket or "", "")


def thinking_message(context: Context) -> str:
    """Message shown while a recommendation is being picked."""
    label = context_label(context.time)
    if label:
        return f"Picking a good {label.lower()} for you..."
    return "Picking something good for you..."
