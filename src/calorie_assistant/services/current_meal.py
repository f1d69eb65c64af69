"""Shared current meal store."""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from calorie_assistant.domain.current_meal import (
    AddResult,
    CatalogLineItem,
    LineItem,
    MealView,
    ResolvedLineItem,
    TemporaryFood,
    TemporaryLineItem,
)
from calorie_assistant.domain.errors import InvalidArgument, NotFound, StorageError
from calorie_assistant.domain.foods import BaseUnit, SavedMealItem
from calorie_assistant.services.aggregator import build_view
from calorie_assistant.services.broadcaster import ChangeBroadcaster
from calorie_assistant.services.catalog import FoodCatalogService
from calorie_assistant.services.units import amount_to_multiplier, resolve_multiplier

_logger = logging.getLogger(__name__)


class CurrentMealRepository(Protocol):
    """Persistence interface for the current meal."""

    def ensure_meal(self) -> None:
        """Create the singleton meal row if it is missing."""

    def touch(self, updated_at: datetime) -> None:
        """Set the meal's updated timestamp."""

    def list_items(self) -> list[LineItem]:
        """Return line items in insertion order."""

    def get_item(self, item_id: int) -> LineItem | None:
        """Return a line item by id, if present."""

    def find_catalog_item(self, food_id: int) -> CatalogLineItem | None:
        """Return the line item referencing a food, if present."""

    def insert_catalog_item(self, food_id: int, multiplier: float) -> CatalogLineItem:
        """Append a catalog-linked line item."""

    def insert_temporary_item(
        self, food: TemporaryFood, multiplier: float
    ) -> TemporaryLineItem:
        """Append a temporary line item."""

    def update_multiplier(self, item_id: int, multiplier: float) -> bool:
        """Set an item's multiplier and return whether it existed."""

    def delete_item(self, item_id: int) -> bool:
        """Delete an item and return whether it existed."""

    def delete_items_for_food(self, food_id: int) -> int:
        """Delete items referencing a food and return the count."""

    def delete_all(self) -> None:
        """Delete every line item."""


class SavedMealRepository(Protocol):
    """Read interface for saved meals."""

    def list_items(self, saved_meal_id: int) -> list[SavedMealItem] | None:
        """Return a saved meal's items, or None when it does not exist."""


@dataclass
class CurrentMealService:
    """Single writer of the shared current meal.

    Mutations and reads are serialized by one lock, so two adds of the same
    food never both insert and readers never see a mutation without its
    timestamp bump. Every successful mutation publishes the recomputed view
    exactly once, queued before the lock is released, so observers receive
    views in mutation order without the mutation waiting on delivery.
    """

    repository: CurrentMealRepository
    catalog: FoodCatalogService
    broadcaster: ChangeBroadcaster
    saved_meals: SavedMealRepository
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def initialize(self) -> None:
        """Make sure the singleton meal exists."""
        self.repository.ensure_meal()

    async def list_items(self) -> list[ResolvedLineItem]:
        """Return line items joined with their nutrition data."""
        async with self._lock:
            return self._resolved_items()

    async def get_view(self) -> MealView:
        """Return the materialized current meal."""
        async with self._lock:
            return build_view(self._resolved_items())

    async def add_catalog_item(self, food_id: int, multiplier: float) -> AddResult:
        """Set the multiplier for a catalog food, inserting it if needed."""
        _require_positive(multiplier, "multiplier")
        async with self._lock:
            if not self.catalog.exists(food_id):
                raise NotFound(f"Food {food_id} not found")
            result = self._upsert_catalog_item(food_id, multiplier)
            self._after_mutation("add_catalog_item")
        return result

    async def add_catalog_amount(
        self, food_id: int, amount: float, unit: BaseUnit | None = None
    ) -> AddResult:
        """Add a catalog food by amount, converting it to a multiplier."""
        _require_positive(amount, "amount")
        food = self.catalog.find_by_id(food_id)
        if food is None:
            raise NotFound(f"Food {food_id} not found")
        multiplier = resolve_multiplier(amount, unit or food.base_unit, food)
        return await self.add_catalog_item(food_id, multiplier)

    async def add_temporary_item(  # noqa: PLR0913
        self,
        name: str,
        base_amount: float | None = None,
        base_unit: BaseUnit | None = None,
        calories: float | None = None,
        protein: float | None = None,
        multiplier: float = 1.0,
    ) -> TemporaryLineItem:
        """Append a food that is not in the catalog."""
        cleaned_name = name.strip() if name else ""
        if not cleaned_name:
            raise InvalidArgument("Temporary food name is required")
        _require_positive(multiplier, "multiplier")
        food = TemporaryFood(
            name=cleaned_name,
            base_amount=100.0 if base_amount is None else base_amount,
            base_unit=base_unit or BaseUnit.GRAMS,
            calories=0.0 if calories is None else calories,
            protein=protein,
        )
        _require_positive(food.base_amount, "base amount")
        _require_non_negative(food.calories, "calories")
        if food.protein is not None:
            _require_non_negative(food.protein, "protein")
        async with self._lock:
            item = self.repository.insert_temporary_item(food, multiplier)
            _logger.info("Temporary item added: id=%s name=%s", item.id, food.name)
            self._after_mutation("add_temporary_item")
        return item

    async def update_multiplier(self, item_id: int, multiplier: float) -> LineItem:
        """Change an item's multiplier."""
        _require_positive(multiplier, "multiplier")
        async with self._lock:
            if not self.repository.update_multiplier(item_id, multiplier):
                raise NotFound(f"Item {item_id} not found")
            _logger.info("Item updated: id=%s multiplier=%s", item_id, multiplier)
            self._after_mutation("update_multiplier")
            item = self.repository.get_item(item_id)
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        return item

    async def update_amount(self, item_id: int, amount: float) -> LineItem:
        """Change an item's amount, expressed in its food's base unit."""
        _require_positive(amount, "amount")
        async with self._lock:
            item = self.repository.get_item(item_id)
        if item is None:
            raise NotFound(f"Item {item_id} not found")
        if isinstance(item, TemporaryLineItem):
            food = item.food
        else:
            food = self.catalog.find_by_id(item.food_id)
            if food is None:
                raise NotFound(f"Food {item.food_id} not found")
        multiplier = amount_to_multiplier(amount, food.base_unit, food)
        return await self.update_multiplier(item_id, multiplier)

    async def remove_item(self, item_id: int) -> None:
        """Delete one line item."""
        async with self._lock:
            if not self.repository.delete_item(item_id):
                raise NotFound(f"Item {item_id} not found")
            _logger.info("Item removed: id=%s", item_id)
            self._after_mutation("remove_item")

    async def clear(self) -> None:
        """Delete every line item."""
        async with self._lock:
            self.repository.delete_all()
            _logger.info("Current meal cleared")
            self._after_mutation("clear")

    async def add_saved_meal(self, saved_meal_id: int) -> list[AddResult]:
        """Replay a saved meal's items as catalog-linked additions."""
        items = self.saved_meals.list_items(saved_meal_id)
        if items is None:
            raise NotFound(f"Saved meal {saved_meal_id} not found")
        added: list[AddResult] = []
        async with self._lock:
            foods = self.catalog.find_many([item.food_id for item in items])
            for saved in items:
                if saved.food_id not in foods or saved.multiplier <= 0:
                    _logger.warning(
                        "Skipping saved meal item: saved_meal_id=%s food_id=%s",
                        saved_meal_id,
                        saved.food_id,
                    )
                    continue
                added.append(
                    self._upsert_catalog_item(saved.food_id, saved.multiplier)
                )
            self._after_mutation("add_saved_meal")
        return added

    async def swap_item(
        self, item_id: int, food_id: int, multiplier: float
    ) -> AddResult:
        """Replace a line item with a catalog food in one step."""
        _require_positive(multiplier, "multiplier")
        async with self._lock:
            if self.repository.get_item(item_id) is None:
                raise NotFound(f"Item {item_id} not found")
            if not self.catalog.exists(food_id):
                raise NotFound(f"Food {food_id} not found")
            self.repository.delete_item(item_id)
            result = self._upsert_catalog_item(food_id, multiplier)
            _logger.info("Item swapped: removed=%s food_id=%s", item_id, food_id)
            self._after_mutation("swap_item")
        return result

    async def handle_food_deleted(self, food_id: int) -> None:
        """Remove items orphaned by a catalog deletion."""
        async with self._lock:
            removed = self.repository.delete_items_for_food(food_id)
            _logger.info(
                "Cascade removal: food_id=%s removed_items=%s", food_id, removed
            )
            self._after_mutation("handle_food_deleted")

    def _upsert_catalog_item(self, food_id: int, multiplier: float) -> AddResult:
        existing = self.repository.find_catalog_item(food_id)
        if existing is not None:
            self.repository.update_multiplier(existing.id, multiplier)
            _logger.info(
                "Catalog item replaced: id=%s food_id=%s multiplier=%s",
                existing.id,
                food_id,
                multiplier,
            )
            return AddResult(
                item=CatalogLineItem(
                    id=existing.id, food_id=food_id, multiplier=multiplier
                ),
                created=False,
            )
        item = self.repository.insert_catalog_item(food_id, multiplier)
        _logger.info(
            "Catalog item added: id=%s food_id=%s multiplier=%s",
            item.id,
            food_id,
            multiplier,
        )
        return AddResult(item=item, created=True)

    def _resolved_items(self) -> list[ResolvedLineItem]:
        items = self.repository.list_items()
        foods = self.catalog.find_many(
            sorted(
                {item.food_id for item in items if isinstance(item, CatalogLineItem)}
            )
        )
        resolved: list[ResolvedLineItem] = []
        for item in items:
            if isinstance(item, TemporaryLineItem):
                resolved.append(ResolvedLineItem(item=item, food=item.food))
                continue
            food = foods.get(item.food_id)
            if food is None:
                _logger.warning(
                    "Skipping orphaned item: id=%s food_id=%s", item.id, item.food_id
                )
                continue
            resolved.append(ResolvedLineItem(item=item, food=food))
        return resolved

    def _after_mutation(self, action: str) -> None:
        """Bump the timestamp and queue the new view for observers.

        The mutation is already applied; a failure to read back the view is
        logged and skips the broadcast without failing the caller.
        """
        self.repository.touch(datetime.now(tz=UTC))
        try:
            view = build_view(self._resolved_items())
        except StorageError:
            _logger.exception("Failed to build view for broadcast after %s", action)
            return
        self.broadcaster.publish(view)


def _require_positive(value: float, label: str) -> None:
    if not math.isfinite(value) or value <= 0:
        raise InvalidArgument(f"{label} must be greater than zero")


def _require_non_negative(value: float, label: str) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidArgument(f"{label} must not be negative")
