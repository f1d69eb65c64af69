"""Supabase implementation for catalog foods."""

from dataclasses import dataclass

from supabase import Client

from calorie_assistant.adapters.supabase_errors import execute
from calorie_assistant.domain.foods import BaseUnit, FoodRecord
from calorie_assistant.services.catalog import FoodCatalogRepository

_FOOD_COLUMNS = "id, name, base_amount, base_unit, calories, protein"


@dataclass
class SupabaseFoodRepository(FoodCatalogRepository):
    """Supabase-backed repository for the food catalog."""

    client: Client

    def get_food(self, food_id: int) -> FoodRecord | None:
        """Return a food by id, if present."""
        response = execute(
            self.client.table("foods")
            .select(_FOOD_COLUMNS)
            .eq("id", food_id)
            .limit(1),
            "fetch food",
        )
        if not response.data:
            return None
        return _parse_food(response.data[0])

    def get_foods(self, food_ids: list[int]) -> dict[int, FoodRecord]:
        """Return foods keyed by id."""
        response = execute(
            self.client.table("foods").select(_FOOD_COLUMNS).in_("id", food_ids),
            "fetch foods",
        )
        foods = [_parse_food(row) for row in response.data or []]
        return {food.id: food for food in foods}

    def search_foods(self, query: str) -> list[FoodRecord]:
        """Search foods by name, ignoring case."""
        response = execute(
            self.client.table("foods")
            .select(_FOOD_COLUMNS)
            .ilike("name", f"%{_escape_like(query)}%")
            .order("id", desc=False),
            "search foods",
        )
        return [_parse_food(row) for row in response.data or []]

    def list_foods(self) -> list[FoodRecord]:
        """Return all foods ordered by id."""
        response = execute(
            self.client.table("foods").select(_FOOD_COLUMNS).order("id", desc=False),
            "list foods",
        )
        return [_parse_food(row) for row in response.data or []]

    def delete_food(self, food_id: int) -> bool:
        """Delete a food; current meal rows cascade in the database."""
        response = execute(
            self.client.table("foods").delete().eq("id", food_id),
            "delete food",
        )
        return bool(response.data)


def _escape_like(query: str) -> str:
    """Escape LIKE wildcards so the query matches literally."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_food(row: dict[str, object]) -> FoodRecord:
    protein = row.get("protein")
    return FoodRecord(
        id=int(row["id"]),
        name=str(row.get("name", "")),
        base_amount=float(row.get("base_amount", 0.0)),
        base_unit=BaseUnit(str(row.get("base_unit", BaseUnit.GRAMS.value))),
        calories=float(row.get("calories", 0.0)),
        protein=float(protein) if protein is not None else None,
    )
