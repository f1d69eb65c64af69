"""Macro totals for the current meal."""

from calorie_assistant.domain.current_meal import (
    CatalogLineItem,
    MealItemView,
    MealView,
    ResolvedLineItem,
)
from calorie_assistant.services.units import multiplier_to_amount


def build_view(items: list[ResolvedLineItem]) -> MealView:
    """Compute per-item and total macros in line item order."""
    views: list[MealItemView] = []
    total_calories = 0.0
    total_protein = 0.0
    for resolved in items:
        view = _item_view(resolved)
        views.append(view)
        total_calories += view.item_calories
        total_protein += view.item_protein
    return MealView(
        items=views,
        total_calories=total_calories,
        total_protein=total_protein,
    )


def _item_view(resolved: ResolvedLineItem) -> MealItemView:
    item = resolved.item
    food = resolved.food
    multiplier = item.multiplier
    return MealItemView(
        id=item.id,
        food_id=item.food_id if isinstance(item, CatalogLineItem) else None,
        is_temporary=resolved.is_temporary,
        name=food.name,
        base_amount=food.base_amount,
        base_unit=food.base_unit,
        calories=food.calories,
        protein=food.protein,
        multiplier=multiplier,
        amount=multiplier_to_amount(multiplier, food),
        item_calories=food.calories * multiplier,
        item_protein=(food.protein or 0.0) * multiplier,
    )
