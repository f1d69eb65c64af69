"""Supabase repository for reading saved meals."""

from dataclasses import dataclass

from supabase import Client

from calorie_assistant.adapters.supabase_errors import execute
from calorie_assistant.domain.foods import SavedMealItem
from calorie_assistant.services.current_meal import SavedMealRepository


@dataclass
class SupabaseSavedMealRepository(SavedMealRepository):
    """Supabase implementation for saved meal items."""

    client: Client

    def list_items(self, saved_meal_id: int) -> list[SavedMealItem] | None:
        """Return saved meal items in insertion order."""
        meal_response = execute(
            self.client.table("saved_meals")
            .select("id")
            .eq("id", saved_meal_id)
            .limit(1),
            "fetch saved meal",
        )
        if not meal_response.data:
            return None
        items_response = execute(
            self.client.table("saved_meal_items")
            .select("food_id, multiplier")
            .eq("meal_id", saved_meal_id)
            .order("id", desc=False),
            "fetch saved meal items",
        )
        return [
            SavedMealItem(
                food_id=int(row["food_id"]), multiplier=float(row["multiplier"])
            )
            for row in items_response.data or []
        ]
