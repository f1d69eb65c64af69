"""Conversions between entered amounts and stored multipliers."""

import logging

from calorie_assistant.domain.current_meal import TemporaryFood
from calorie_assistant.domain.errors import IncompatibleUnits, InvalidUnit
from calorie_assistant.domain.foods import BaseUnit, FoodRecord

_logger = logging.getLogger(__name__)

Food = FoodRecord | TemporaryFood


def amount_to_multiplier(amount: float, unit: BaseUnit, food: Food) -> float:
    """Convert an amount in the food's own unit to a multiplier.

    Servings are already a count of base portions, so the amount is the
    multiplier. Grams and millilitres are divided by the base amount. There is
    no conversion between different units.
    """
    if unit != food.base_unit:
        raise IncompatibleUnits(
            f"Cannot convert {unit.value} to {food.base_unit.value}"
        )
    if food.base_unit == BaseUnit.SERVINGS:
        return amount
    if food.base_amount <= 0:
        raise InvalidUnit(f"Base amount must be positive for {food.name!r}")
    return amount / food.base_amount


def multiplier_to_amount(multiplier: float, food: Food) -> float:
    """Return the display amount for a multiplier in the food's base unit."""
    if food.base_unit == BaseUnit.SERVINGS:
        return multiplier
    return multiplier * food.base_amount


def resolve_multiplier(amount: float, unit: BaseUnit, food: Food) -> float:
    """Convert a user-entered amount, falling back to one base portion.

    An explicit servings count is used as-is regardless of the food's unit.
    """
    if unit == BaseUnit.SERVINGS:
        return amount
    try:
        return amount_to_multiplier(amount, unit, food)
    except IncompatibleUnits:
        _logger.info(
            "Unit fallback: food=%s unit=%s base_unit=%s",
            food.name,
            unit.value,
            food.base_unit.value,
        )
        return 1.0


def parse_unit(value: object) -> BaseUnit | None:
    """Parse a unit string, returning None when it is not a known unit."""
    if isinstance(value, BaseUnit):
        return value
    if not isinstance(value, str):
        return None
    try:
        return BaseUnit(value.strip().lower())
    except ValueError:
        return None
