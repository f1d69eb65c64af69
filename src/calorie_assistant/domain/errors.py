"""Error taxonomy for current meal operations."""

from dataclasses import dataclass


class CalorieAssistantError(Exception):
    """Base class for application errors."""


class InvalidArgument(CalorieAssistantError):
    """Input is malformed or out of range."""


class InvalidUnit(InvalidArgument):
    """A food's base quantity cannot be used for unit conversion."""


class IncompatibleUnits(InvalidArgument):
    """No conversion is defined between two units."""


class NotFound(CalorieAssistantError):
    """A referenced line item, food or saved meal does not exist."""


class StorageError(CalorieAssistantError):
    """The durable store failed to complete an operation."""


class ExtractionFailed(CalorieAssistantError):
    """The text extraction call returned unusable output."""


@dataclass(frozen=True)
class FoodNotFound:
    """A voice intent with no catalog match."""

    name: str
