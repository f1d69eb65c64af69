"""Supabase repository for the shared current meal."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from calorie_assistant.adapters.supabase_errors import execute
from calorie_assistant.domain.current_meal import (
    CatalogLineItem,
    LineItem,
    TemporaryFood,
    TemporaryLineItem,
)
from calorie_assistant.domain.errors import StorageError
from calorie_assistant.domain.foods import BaseUnit
from calorie_assistant.services.current_meal import CurrentMealRepository

CURRENT_MEAL_ID = 1

_ITEM_COLUMNS = (
    "id, food_id, multiplier, temp_food_name, temp_food_base_amount, "
    "temp_food_base_unit, temp_food_calories, temp_food_protein"
)


@dataclass
class SupabaseCurrentMealRepository(CurrentMealRepository):
    """Supabase implementation for current meal line items."""

    client: Client

    def ensure_meal(self) -> None:
        """Create the singleton meal row if it is missing."""
        execute(
            self.client.table("current_meal").upsert(
                {"id": CURRENT_MEAL_ID}, ignore_duplicates=True
            ),
            "initialize current meal",
        )

    def touch(self, updated_at: datetime) -> None:
        """Set the meal's updated timestamp."""
        execute(
            self.client.table("current_meal")
            .update({"updated_at": updated_at.isoformat()})
            .eq("id", CURRENT_MEAL_ID),
            "update current meal timestamp",
        )

    def list_items(self) -> list[LineItem]:
        """Return line items in insertion order."""
        response = execute(
            self.client.table("current_meal_items")
            .select(_ITEM_COLUMNS)
            .order("id", desc=False),
            "list current meal items",
        )
        return [_parse_item(row) for row in response.data or []]

    def get_item(self, item_id: int) -> LineItem | None:
        """Return a line item by id."""
        response = execute(
            self.client.table("current_meal_items")
            .select(_ITEM_COLUMNS)
            .eq("id", item_id)
            .limit(1),
            "fetch current meal item",
        )
        if not response.data:
            return None
        return _parse_item(response.data[0])

    def find_catalog_item(self, food_id: int) -> CatalogLineItem | None:
        """Return the line item referencing a food."""
        response = execute(
            self.client.table("current_meal_items")
            .select(_ITEM_COLUMNS)
            .eq("food_id", food_id)
            .limit(1),
            "fetch current meal item",
        )
        if not response.data:
            return None
        item = _parse_item(response.data[0])
        return item if isinstance(item, CatalogLineItem) else None

    def insert_catalog_item(self, food_id: int, multiplier: float) -> CatalogLineItem:
        """Append a catalog-linked line item."""
        response = execute(
            self.client.table("current_meal_items").insert(
                {"food_id": food_id, "multiplier": multiplier}
            ),
            "add current meal item",
        )
        if not response.data:
            raise StorageError("Failed to add current meal item")
        return CatalogLineItem(
            id=int(response.data[0]["id"]), food_id=food_id, multiplier=multiplier
        )

    def insert_temporary_item(
        self, food: TemporaryFood, multiplier: float
    ) -> TemporaryLineItem:
        """Append a temporary line item."""
        response = execute(
            self.client.table("current_meal_items").insert(
                {
                    "food_id": None,
                    "multiplier": multiplier,
                    "temp_food_name": food.name,
                    "temp_food_base_amount": food.base_amount,
                    "temp_food_base_unit": food.base_unit.value,
                    "temp_food_calories": food.calories,
                    "temp_food_protein": food.protein,
                }
            ),
            "add temporary item",
        )
        if not response.data:
            raise StorageError("Failed to add temporary item")
        return TemporaryLineItem(
            id=int(response.data[0]["id"]), food=food, multiplier=multiplier
        )

    def update_multiplier(self, item_id: int, multiplier: float) -> bool:
        """Set an item's multiplier."""
        response = execute(
            self.client.table("current_meal_items")
            .update({"multiplier": multiplier})
            .eq("id", item_id),
            "update current meal item",
        )
        return bool(response.data)

    def delete_item(self, item_id: int) -> bool:
        """Delete an item."""
        response = execute(
            self.client.table("current_meal_items").delete().eq("id", item_id),
            "delete current meal item",
        )
        return bool(response.data)

    def delete_items_for_food(self, food_id: int) -> int:
        """Delete items referencing a food."""
        response = execute(
            self.client.table("current_meal_items").delete().eq("food_id", food_id),
            "delete current meal items",
        )
        return len(response.data or [])

    def delete_all(self) -> None:
        """Delete every line item."""
        execute(
            self.client.table("current_meal_items").delete().gte("id", 0),
            "clear current meal",
        )


def _parse_item(row: dict[str, object]) -> LineItem:
    item_id = int(row["id"])
    multiplier = float(row.get("multiplier", 0.0))
    food_id = row.get("food_id")
    if food_id is not None:
        return CatalogLineItem(id=item_id, food_id=int(food_id), multiplier=multiplier)
    protein = row.get("temp_food_protein")
    return TemporaryLineItem(
        id=item_id,
        food=TemporaryFood(
            name=str(row.get("temp_food_name") or ""),
            base_amount=float(row.get("temp_food_base_amount") or 100.0),
            base_unit=BaseUnit(str(row.get("temp_food_base_unit") or "grams")),
            calories=float(row.get("temp_food_calories") or 0.0),
            protein=float(protein) if protein is not None else None,
        ),
        multiplier=multiplier,
    )
