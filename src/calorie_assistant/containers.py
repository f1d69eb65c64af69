"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from calorie_assistant.adapters.openai_extraction_client import (
    OpenAIExtractionClient,
)
from calorie_assistant.adapters.supabase_current_meal_repository import (
    SupabaseCurrentMealRepository,
)
from calorie_assistant.adapters.supabase_food_repository import (
    SupabaseFoodRepository,
)
from calorie_assistant.adapters.supabase_saved_meal_repository import (
    SupabaseSavedMealRepository,
)
from calorie_assistant.config import Settings
from calorie_assistant.services.broadcaster import ChangeBroadcaster
from calorie_assistant.services.catalog import FoodCatalogService
from calorie_assistant.services.current_meal import CurrentMealService
from calorie_assistant.services.voice import VoiceCommandService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog_service: FoodCatalogService
    broadcaster: ChangeBroadcaster
    current_meal_service: CurrentMealService
    voice_service: VoiceCommandService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    catalog_service = FoodCatalogService(SupabaseFoodRepository(supabase_client))
    broadcaster = ChangeBroadcaster()
    current_meal_service = CurrentMealService(
        repository=SupabaseCurrentMealRepository(supabase_client),
        catalog=catalog_service,
        broadcaster=broadcaster,
        saved_meals=SupabaseSavedMealRepository(supabase_client),
    )
    catalog_service.on_delete(current_meal_service.handle_food_deleted)
    extraction_client = OpenAIExtractionClient.create(resolved_settings.openai_api_key)
    voice_service = VoiceCommandService(
        client=extraction_client,
        catalog=catalog_service,
        current_meal=current_meal_service,
        model=resolved_settings.openai_model,
        store=resolved_settings.openai_store,
    )

    async def close_resources() -> None:
        await extraction_client.close()

    return AppContainer(
        settings=resolved_settings,
        catalog_service=catalog_service,
        broadcaster=broadcaster,
        current_meal_service=current_meal_service,
        voice_service=voice_service,
        close_resources=close_resources,
    )
