"""Pydantic models for current meal and voice requests."""

from pydantic import BaseModel, Field

from calorie_assistant.domain.foods import BaseUnit


class TemporaryFoodPayload(BaseModel):
    """Inline nutrition data for a food that is not in the catalog."""

    name: str = ""
    base_amount: float | None = Field(default=None, gt=0)
    base_unit: BaseUnit | None = None
    calories: float | None = Field(default=None, ge=0)
    protein: float | None = Field(default=None, ge=0)


class AddItemRequest(BaseModel):
    """Add a catalog food by multiplier or amount, or a temporary food."""

    food_id: int | None = None
    multiplier: float | None = None
    amount: float | None = None
    unit: BaseUnit | None = None
    is_temporary: bool = False
    food: TemporaryFoodPayload | None = None


class UpdateItemRequest(BaseModel):
    """Change an item by multiplier or by amount in its base unit."""

    multiplier: float | None = None
    amount: float | None = None


class VoiceRequest(BaseModel):
    """Transcribed voice input."""

    text: str = Field(min_length=1)
