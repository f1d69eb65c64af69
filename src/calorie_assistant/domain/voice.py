"""Models for voice command extraction and resolution."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from calorie_assistant.domain.errors import FoodNotFound
from calorie_assistant.domain.foods import BaseUnit, FoodRecord


class ExtractedFood(BaseModel):
    """Food candidate returned by the extraction call."""

    name: str = ""
    amount: float | None = None
    unit: str | None = None


class VoiceExtract(BaseModel):
    """Structured output for voice extraction."""

    command: str | None = None
    from_name: str | None = Field(default=None, alias="from")
    to_name: str | None = Field(default=None, alias="to")
    foods: list[ExtractedFood] = Field(default_factory=list)


@dataclass(frozen=True)
class SwapCommand:
    """Request to replace one current meal item with another food."""

    from_name: str
    to_name: str


@dataclass(frozen=True)
class FoodIntent:
    """Normalized food name, amount and unit."""

    name: str
    amount: float
    unit: BaseUnit


@dataclass(frozen=True)
class MatchedIntent:
    """Intent matched to a catalog food with its multiplier."""

    intent: FoodIntent
    food: FoodRecord
    multiplier: float


@dataclass(frozen=True)
class IntentResolution:
    """Per-intent matches and misses for a transcript."""

    matches: list[MatchedIntent] = field(default_factory=list)
    not_found: list[FoodNotFound] = field(default_factory=list)
