"""Voice transcript resolution into current meal changes."""

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx
import openai
from pydantic import ValidationError

from calorie_assistant.domain.current_meal import AddResult, ResolvedLineItem
from calorie_assistant.domain.errors import ExtractionFailed, FoodNotFound, NotFound
from calorie_assistant.domain.foods import BaseUnit
from calorie_assistant.domain.voice import (
    ExtractedFood,
    FoodIntent,
    IntentResolution,
    MatchedIntent,
    SwapCommand,
    VoiceExtract,
)
from calorie_assistant.services.catalog import FoodCatalogService
from calorie_assistant.services.current_meal import CurrentMealService
from calorie_assistant.services.units import (
    multiplier_to_amount,
    parse_unit,
    resolve_multiplier,
)

BEVERAGE_KEYWORDS = (
    "coffee",
    "latte",
    "cappuccino",
    "flat white",
    "espresso",
    "mocha",
    "americano",
    "tea",
    "juice",
    "soda",
    "drink",
)
FAST_FOOD_KEYWORDS = ("burger", "sandwich", "pizza", "wrap", "taco")

_DEFAULT_AMOUNTS = {
    BaseUnit.GRAMS: 100.0,
    BaseUnit.ML: 250.0,
    BaseUnit.SERVINGS: 1.0,
}

_nullable_string = {"anyOf": [{"type": "string"}, {"type": "null"}]}

VOICE_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "command": {
            "anyOf": [{"type": "string", "enum": ["change"]}, {"type": "null"}]
        },
        "from": _nullable_string,
        "to": _nullable_string,
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "amount": {"anyOf": [{"type": "number"}, {"type": "null"}]},
                    "unit": {
                        "anyOf": [
                            {"type": "string", "enum": ["grams", "ml", "servings"]},
                            {"type": "null"},
                        ]
                    },
                },
                "required": ["name", "amount", "unit"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["command", "from", "to", "foods"],
    "additionalProperties": False,
}

VOICE_PROMPT = (
    "You are parsing spoken text to search for foods in a database. "
    "Extract the food names and any amounts the speaker mentioned.\n"
    "If the text asks to change, replace or swap one food for another, set "
    'command to "change", "from" to the original food and "to" to the new '
    "food, and leave foods empty.\n"
    "Otherwise add one entry per food (foods joined by 'and' or '&' are "
    "separate entries). Capitalize names properly. Use unit grams, ml or "
    "servings only when the speaker gave one; counts of items are servings.\n"
    "Examples: '2 apples' -> Apple, 2, servings; "
    "'200 grams chicken breast' -> Chicken Breast, 200, grams; "
    "'250ml skinny flat white' -> Skinny Flat White, 250, ml; "
    "'a cheeseburger' -> Cheeseburger, null, null.\n"
    "Do not estimate calories or protein.\n"
    "Spoken text: "
)

_logger = logging.getLogger(__name__)


class VoiceExtractionClient(Protocol):
    """Interface for LLM text extraction."""

    async def extract(
        self,
        *,
        model: str,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured extraction data for a prompt."""


@dataclass(frozen=True)
class SwapResult:
    """Outcome of applying a swap command."""

    command: SwapCommand
    removed_item_id: int
    added: AddResult


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of applying resolved intents to the current meal."""

    resolution: IntentResolution
    added: list[AddResult]


@dataclass
class VoiceCommandService:
    """Turns transcripts into swap commands or catalog-matched intents."""

    client: VoiceExtractionClient
    catalog: FoodCatalogService
    current_meal: CurrentMealService
    model: str
    store: bool = False

    async def extract(self, text: str) -> SwapCommand | list[FoodIntent]:
        """Extract and normalize intents without touching the catalog."""
        try:
            raw = await self.client.extract(
                model=self.model,
                store=self.store,
                schema=VOICE_SCHEMA,
                prompt=f"{VOICE_PROMPT}{text!r}",
            )
            parsed = VoiceExtract.model_validate(raw)
        except (
            ValueError,
            ValidationError,
            openai.OpenAIError,
            httpx.HTTPError,
        ) as exc:
            raise ExtractionFailed(f"Could not parse voice input: {exc}") from exc

        if parsed.command == "change" and parsed.from_name and parsed.to_name:
            _logger.info(
                "Voice swap command: from=%s to=%s", parsed.from_name, parsed.to_name
            )
            return SwapCommand(from_name=parsed.from_name, to_name=parsed.to_name)
        return [
            normalize_intent(food) for food in parsed.foods if food.name.strip()
        ]

    async def resolve(self, text: str) -> SwapCommand | IntentResolution:
        """Extract intents and match each against the catalog."""
        extracted = await self.extract(text)
        if isinstance(extracted, SwapCommand):
            return extracted
        return self.match_intents(extracted)

    def match_intents(self, intents: list[FoodIntent]) -> IntentResolution:
        """Match intents to catalog foods, collecting misses."""
        resolution = IntentResolution()
        for intent in intents:
            food = self.catalog.best_match(intent.name)
            if food is None:
                _logger.info("Voice intent not found: name=%s", intent.name)
                resolution.not_found.append(FoodNotFound(name=intent.name))
                continue
            multiplier = resolve_multiplier(intent.amount, intent.unit, food)
            resolution.matches.append(
                MatchedIntent(intent=intent, food=food, multiplier=multiplier)
            )
        return resolution

    async def apply(self, text: str) -> SwapResult | ApplyResult:
        """Resolve a transcript and apply it to the current meal."""
        resolved = await self.resolve(text)
        if isinstance(resolved, SwapCommand):
            return await self.apply_swap(resolved)
        added = [
            await self.current_meal.add_catalog_item(match.food.id, match.multiplier)
            for match in resolved.matches
        ]
        return ApplyResult(resolution=resolved, added=added)

    async def apply_swap(self, command: SwapCommand) -> SwapResult:
        """Replace the matching current meal item with a catalog food.

        The displayed amount of the removed item carries over to the new food
        when the units agree; otherwise one base portion is used.
        """
        current = _find_current_item(await self.current_meal.list_items(), command)
        if current is None:
            raise NotFound(f"No current meal item matches {command.from_name!r}")
        replacement = self.catalog.best_match(command.to_name)
        if replacement is None:
            raise NotFound(f"No food matches {command.to_name!r}")
        amount = multiplier_to_amount(current.item.multiplier, current.food)
        multiplier = resolve_multiplier(amount, current.food.base_unit, replacement)
        added = await self.current_meal.swap_item(
            current.item.id, replacement.id, multiplier
        )
        return SwapResult(
            command=command, removed_item_id=current.item.id, added=added
        )


def normalize_intent(food: ExtractedFood) -> FoodIntent:
    """Apply unit and amount corrections to an extracted food."""
    name = food.name.strip()
    lower_name = name.lower()
    amount = food.amount if food.amount is not None and food.amount > 0 else None
    unit = parse_unit(food.unit)

    if _matches_any(lower_name, BEVERAGE_KEYWORDS) and unit != BaseUnit.ML:
        if amount is None or amount == 1:
            amount = _beverage_amount(lower_name)
        _logger.info("Corrected beverage unit: name=%s amount=%s", name, amount)
        return FoodIntent(name=name, amount=amount, unit=BaseUnit.ML)
    if _matches_any(lower_name, FAST_FOOD_KEYWORDS) and unit != BaseUnit.SERVINGS:
        _logger.info("Corrected fast food unit: name=%s", name)
        return FoodIntent(name=name, amount=amount or 1.0, unit=BaseUnit.SERVINGS)
    if unit is None:
        if amount is not None and amount > 1:
            return FoodIntent(name=name, amount=amount, unit=BaseUnit.GRAMS)
        return FoodIntent(name=name, amount=amount or 1.0, unit=BaseUnit.SERVINGS)
    if amount is None or amount == 1:
        amount = _DEFAULT_AMOUNTS[unit]
    return FoodIntent(name=name, amount=amount, unit=unit)


def _matches_any(name: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in name for keyword in keywords)


def _beverage_amount(name: str) -> float:
    if "large" in name:
        return 350.0
    if "small" in name:
        return 200.0
    return 250.0


def _find_current_item(
    items: list[ResolvedLineItem], command: SwapCommand
) -> ResolvedLineItem | None:
    query = command.from_name.strip().lower()
    for resolved in items:
        if resolved.food.name.strip().lower() == query:
            return resolved
    for resolved in items:
        name = resolved.food.name.strip().lower()
        if name and (query in name or name in query):
            return resolved
    return None

