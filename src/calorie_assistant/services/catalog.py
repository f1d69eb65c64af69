"""Read access and deletion hooks for the food catalog."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from calorie_assistant.domain.errors import NotFound
from calorie_assistant.domain.foods import FoodRecord

_logger = logging.getLogger(__name__)

DeletionListener = Callable[[int], Awaitable[None]]


class FoodCatalogRepository(Protocol):
    """Persistence interface for catalog foods."""

    def get_food(self, food_id: int) -> FoodRecord | None:
        """Return a food by id, if present."""

    def get_foods(self, food_ids: list[int]) -> dict[int, FoodRecord]:
        """Return foods keyed by id for the ids that exist."""

    def search_foods(self, query: str) -> list[FoodRecord]:
        """Return foods whose name contains the query, ignoring case."""

    def list_foods(self) -> list[FoodRecord]:
        """Return all foods in catalog order."""

    def delete_food(self, food_id: int) -> bool:
        """Delete a food and return whether it existed."""


@dataclass
class FoodCatalogService:
    """Catalog lookups used by the current meal and voice resolution."""

    repository: FoodCatalogRepository
    _listeners: list[DeletionListener] = field(default_factory=list)

    def find_by_id(self, food_id: int) -> FoodRecord | None:
        """Return a catalog food by id."""
        return self.repository.get_food(food_id)

    def find_many(self, food_ids: list[int]) -> dict[int, FoodRecord]:
        """Return catalog foods for a batch of ids."""
        if not food_ids:
            return {}
        return self.repository.get_foods(food_ids)

    def exists(self, food_id: int) -> bool:
        """Return true when the food is in the catalog."""
        return self.repository.get_food(food_id) is not None

    def search(self, query: str) -> list[FoodRecord]:
        """Case-insensitive substring search over food names."""
        cleaned = query.strip()
        if not cleaned:
            return []
        return self.repository.search_foods(cleaned)

    def best_match(self, name: str) -> FoodRecord | None:
        """Return the catalog food that best matches a spoken name.

        An exact case-insensitive name wins, then the first food whose name
        contains the query, then the first food whose name the query contains.
        """
        query = name.strip().lower()
        if not query:
            return None
        candidates = self.search(query)
        for food in candidates:
            if food.name.strip().lower() == query:
                return food
        if candidates:
            return candidates[0]
        for food in self.repository.list_foods():
            food_name = food.name.strip().lower()
            if food_name and food_name in query:
                return food
        return None

    def on_delete(self, listener: DeletionListener) -> None:
        """Register a callback invoked after a food is deleted."""
        self._listeners.append(listener)

    async def delete_food(self, food_id: int) -> None:
        """Delete a food and notify deletion listeners."""
        if not self.repository.delete_food(food_id):
            raise NotFound(f"Food {food_id} not found")
        _logger.info("Food deleted: food_id=%s", food_id)
        for listener in self._listeners:
            await listener(food_id)
