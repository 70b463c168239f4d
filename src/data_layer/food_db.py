"""Food database for loading food items from JSON."""
import json
from pathlib import Path
from typing import List, Optional

from src.data_layer.models import FoodItem


class FoodDB:
    """Database for managing food items loaded from JSON."""

    def __init__(self, json_path: str):
        """Initialize food database from JSON file.

        Args:
            json_path: Path to JSON file containing a list of foods, or an
                object with a ``foods`` list
        """
        self.json_path = Path(json_path)
        self._foods: List[FoodItem] = []
        self._load_foods()

    def _load_foods(self):
        """Load foods from JSON file."""
        with open(self.json_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        foods_data = data.get("foods", []) if isinstance(data, dict) else data
        seen = set()
        for food_data in foods_data:
            food = FoodItem.from_dict(food_data)
            if food.id in seen:
                raise ValueError(f"Duplicate food id '{food.id}' in {self.json_path}")
            seen.add(food.id)
            self._foods.append(food)

    def get_all_foods(self) -> List[FoodItem]:
        """Get all foods in file order.

        Returns:
            List of all FoodItem objects
        """
        return self._foods.copy()

    def get_food_by_id(self, food_id: str) -> Optional[FoodItem]:
        """Get a food by its ID.

        Args:
            food_id: Unique food identifier

        Returns:
            FoodItem if found, None otherwise
        """
        for food in self._foods:
            if food.id == food_id:
                return food
        return None
