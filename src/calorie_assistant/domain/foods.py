"""Domain models for the food catalog."""

from dataclasses import dataclass
from enum import Enum


class BaseUnit(str, Enum):
    """Unit a food's base amount is expressed in."""

    GRAMS = "grams"
    ML = "ml"
    SERVINGS = "servings"


@dataclass(frozen=True)
class FoodRecord:
    """Nutrition values for a catalog food, per base amount."""

    id: int
    name: str
    base_amount: float
    base_unit: BaseUnit
    calories: float
    protein: float | None = None


@dataclass(frozen=True)
class SavedMealItem:
    """Catalog food and multiplier stored in a saved meal."""

    food_id: int
    multiplier: float
