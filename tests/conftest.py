"""Shared test fixtures."""

import asyncio
from collections.abc import Coroutine
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypeVar

import pytest

from calorie_assistant.config import Settings
from calorie_assistant.containers import AppContainer
from calorie_assistant.domain.current_meal import (
    CatalogLineItem,
    LineItem,
    TemporaryFood,
    TemporaryLineItem,
)
from calorie_assistant.domain.errors import StorageError
from calorie_assistant.domain.foods import BaseUnit, FoodRecord, SavedMealItem
from calorie_assistant.services.broadcaster import ChangeBroadcaster
from calorie_assistant.services.catalog import FoodCatalogRepository, FoodCatalogService
from calorie_assistant.services.current_meal import (
    CurrentMealRepository,
    CurrentMealService,
    SavedMealRepository,
)
from calorie_assistant.services.voice import VoiceCommandService, VoiceExtractionClient

T = TypeVar("T")


@dataclass
class InMemoryFoodRepository(FoodCatalogRepository):
    """In-memory food catalog for tests."""

    foods: dict[int, FoodRecord] = field(default_factory=dict)

    def add(  # noqa: PLR0913
        self,
        food_id: int,
        name: str,
        base_amount: float = 100.0,
        base_unit: BaseUnit = BaseUnit.GRAMS,
        calories: float = 100.0,
        protein: float | None = None,
    ) -> FoodRecord:
        food = FoodRecord(
            id=food_id,
            name=name,
            base_amount=base_amount,
            base_unit=base_unit,
            calories=calories,
            protein=protein,
        )
        self.foods[food_id] = food
        return food

    def get_food(self, food_id: int) -> FoodRecord | None:
        return self.foods.get(food_id)

    def get_foods(self, food_ids: list[int]) -> dict[int, FoodRecord]:
        return {
            food_id: self.foods[food_id]
            for food_id in food_ids
            if food_id in self.foods
        }

    def search_foods(self, query: str) -> list[FoodRecord]:
        query_lower = query.lower()
        return [
            food for food in self.foods.values() if query_lower in food.name.lower()
        ]

    def list_foods(self) -> list[FoodRecord]:
        return list(self.foods.values())

    def delete_food(self, food_id: int) -> bool:
        return self.foods.pop(food_id, None) is not None


@dataclass
class InMemoryCurrentMealRepository(CurrentMealRepository):
    """In-memory current meal repository for tests."""

    items: dict[int, LineItem] = field(default_factory=dict)
    updated_at: datetime | None = None
    initialized: bool = False
    fail_reads: bool = False
    _next_id: int = 1

    def ensure_meal(self) -> None:
        self.initialized = True

    def touch(self, updated_at: datetime) -> None:
        self.updated_at = updated_at

    def list_items(self) -> list[LineItem]:
        if self.fail_reads:
            raise StorageError("Failed to list current meal items")
        return [self.items[item_id] for item_id in sorted(self.items)]

    def get_item(self, item_id: int) -> LineItem | None:
        return self.items.get(item_id)

    def find_catalog_item(self, food_id: int) -> CatalogLineItem | None:
        for item in self.items.values():
            if isinstance(item, CatalogLineItem) and item.food_id == food_id:
                return item
        return None

    def insert_catalog_item(self, food_id: int, multiplier: float) -> CatalogLineItem:
        item = CatalogLineItem(
            id=self._take_id(), food_id=food_id, multiplier=multiplier
        )
        self.items[item.id] = item
        return item

    def insert_temporary_item(
        self, food: TemporaryFood, multiplier: float
    ) -> TemporaryLineItem:
        item = TemporaryLineItem(id=self._take_id(), food=food, multiplier=multiplier)
        self.items[item.id] = item
        return item

    def update_multiplier(self, item_id: int, multiplier: float) -> bool:
        item = self.items.get(item_id)
        if item is None:
            return False
        if isinstance(item, CatalogLineItem):
            self.items[item_id] = CatalogLineItem(
                id=item.id, food_id=item.food_id, multiplier=multiplier
            )
        else:
            self.items[item_id] = TemporaryLineItem(
                id=item.id, food=item.food, multiplier=multiplier
            )
        return True

    def delete_item(self, item_id: int) -> bool:
        return self.items.pop(item_id, None) is not None

    def delete_items_for_food(self, food_id: int) -> int:
        doomed = [
            item.id
            for item in self.items.values()
            if isinstance(item, CatalogLineItem) and item.food_id == food_id
        ]
        for item_id in doomed:
            del self.items[item_id]
        return len(doomed)

    def delete_all(self) -> None:
        self.items.clear()

    def _take_id(self) -> int:
        item_id = self._next_id
        self._next_id += 1
        return item_id


@dataclass
class InMemorySavedMealRepository(SavedMealRepository):
    """In-memory saved meals for tests."""

    meals: dict[int, list[SavedMealItem]] = field(default_factory=dict)

    def list_items(self, saved_meal_id: int) -> list[SavedMealItem] | None:
        return self.meals.get(saved_meal_id)


@dataclass
class RecordingObserver:
    """Observer that records every message it receives."""

    messages: list[Any] = field(default_factory=list)

    async def send_json(self, data: Any) -> None:
        self.messages.append(data)


@dataclass
class FailingObserver:
    """Observer whose connection has gone away."""

    attempts: int = 0

    async def send_json(self, data: Any) -> None:
        self.attempts += 1
        raise ConnectionError("observer disconnected")


@dataclass
class StalledObserver:
    """Observer whose connection never drains."""

    release: asyncio.Event = field(default_factory=asyncio.Event)
    attempts: int = 0

    async def send_json(self, data: Any) -> None:
        self.attempts += 1
        await self.release.wait()


@dataclass
class FakeExtractionClient(VoiceExtractionClient):
    """Fake extraction client returning a fixed payload."""

    payload: Any = field(default_factory=lambda: foods_extract())
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def extract(
        self,
        *,
        model: str,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.payload


def food_payload(
    name: str, amount: float | None = None, unit: str | None = None
) -> dict[str, object]:
    return {"name": name, "amount": amount, "unit": unit}


def foods_extract(*foods: dict[str, object]) -> dict[str, object]:
    return {"command": None, "from": None, "to": None, "foods": list(foods)}


@dataclass
class MealFixture:
    """Wired services backed by in-memory repositories."""

    foods: InMemoryFoodRepository
    repository: InMemoryCurrentMealRepository
    saved_meals: InMemorySavedMealRepository
    broadcaster: ChangeBroadcaster
    observer: RecordingObserver
    catalog: FoodCatalogService
    service: CurrentMealService

    def run(self, coroutine: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine and wait for the updates it queued."""

        async def run_and_flush() -> T:
            result = await coroutine
            await self.broadcaster.flush()
            return result

        return asyncio.run(run_and_flush())


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
    )


@pytest.fixture
def meal() -> MealFixture:
    foods = InMemoryFoodRepository()
    repository = InMemoryCurrentMealRepository()
    saved_meals = InMemorySavedMealRepository()
    broadcaster = ChangeBroadcaster()
    observer = RecordingObserver()
    broadcaster.subscribe(observer)
    catalog = FoodCatalogService(foods)
    service = CurrentMealService(
        repository=repository,
        catalog=catalog,
        broadcaster=broadcaster,
        saved_meals=saved_meals,
    )
    catalog.on_delete(service.handle_food_deleted)
    return MealFixture(
        foods=foods,
        repository=repository,
        saved_meals=saved_meals,
        broadcaster=broadcaster,
        observer=observer,
        catalog=catalog,
        service=service,
    )


@pytest.fixture
def extraction_client() -> FakeExtractionClient:
    return FakeExtractionClient()


@pytest.fixture
def voice_service(
    meal: MealFixture, extraction_client: FakeExtractionClient
) -> VoiceCommandService:
    return VoiceCommandService(
        client=extraction_client,
        catalog=meal.catalog,
        current_meal=meal.service,
        model="gpt-4o-mini",
    )


@pytest.fixture
def container(
    settings: Settings,
    meal: MealFixture,
    voice_service: VoiceCommandService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        catalog_service=meal.catalog,
        broadcaster=meal.broadcaster,
        current_meal_service=meal.service,
        voice_service=voice_service,
        close_resources=close_resources,
    )
