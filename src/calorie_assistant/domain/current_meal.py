"""Domain models for the shared current meal."""

from dataclasses import dataclass

from calorie_assistant.domain.foods import BaseUnit, FoodRecord


@dataclass(frozen=True)
class TemporaryFood:
    """Nutrition data inlined on a line item instead of the catalog."""

    name: str
    base_amount: float
    base_unit: BaseUnit
    calories: float
    protein: float | None = None


@dataclass(frozen=True)
class CatalogLineItem:
    """Line item that references a catalog food."""

    id: int
    food_id: int
    multiplier: float


@dataclass(frozen=True)
class TemporaryLineItem:
    """Line item carrying its own nutrition data."""

    id: int
    food: TemporaryFood
    multiplier: float


LineItem = CatalogLineItem | TemporaryLineItem


@dataclass(frozen=True)
class ResolvedLineItem:
    """Line item joined with the nutrition data it is computed from."""

    item: LineItem
    food: FoodRecord | TemporaryFood

    @property
    def is_temporary(self) -> bool:
        return isinstance(self.item, TemporaryLineItem)


@dataclass(frozen=True)
class MealItemView:
    """Client-ready line item with computed macros."""

    id: int
    food_id: int | None
    is_temporary: bool
    name: str
    base_amount: float
    base_unit: BaseUnit
    calories: float
    protein: float | None
    multiplier: float
    amount: float
    item_calories: float
    item_protein: float


@dataclass(frozen=True)
class MealView:
    """Materialized view of the current meal."""

    items: list[MealItemView]
    total_calories: float
    total_protein: float


@dataclass(frozen=True)
class AddResult:
    """Outcome of adding a catalog item."""

    item: CatalogLineItem
    created: bool
