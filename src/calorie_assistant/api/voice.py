"""Voice command endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder

from calorie_assistant.api.models import VoiceRequest
from calorie_assistant.domain.voice import IntentResolution, SwapCommand
from calorie_assistant.services.voice import ApplyResult, SwapResult

if TYPE_CHECKING:
    from calorie_assistant.containers import AppContainer

router = APIRouter(prefix="/api/voice", tags=["voice"])


@router.post("/resolve")
async def resolve_voice(payload: VoiceRequest, request: Request) -> dict[str, object]:
    """Resolve a transcript into a swap command or catalog matches."""
    container: AppContainer = request.app.state.container
    resolved = await container.voice_service.resolve(payload.text)
    if isinstance(resolved, SwapCommand):
        return _swap_payload(resolved)
    return _resolution_payload(resolved)


@router.post("/apply")
async def apply_voice(payload: VoiceRequest, request: Request) -> dict[str, object]:
    """Resolve a transcript and apply it to the current meal."""
    container: AppContainer = request.app.state.container
    result = await container.voice_service.apply(payload.text)
    if isinstance(result, SwapResult):
        return {
            **_swap_payload(result.command),
            "removed_item_id": result.removed_item_id,
            "item_id": result.added.item.id,
            "multiplier": result.added.item.multiplier,
        }
    return _applied_payload(result)


def _swap_payload(command: SwapCommand) -> dict[str, object]:
    return {"command": "change", "from": command.from_name, "to": command.to_name}


def _resolution_payload(resolution: IntentResolution) -> dict[str, object]:
    return {
        "matches": [
            {
                "name": match.intent.name,
                "amount": match.intent.amount,
                "unit": match.intent.unit.value,
                "food": jsonable_encoder(match.food),
                "multiplier": match.multiplier,
            }
            for match in resolution.matches
        ],
        "not_found": [miss.name for miss in resolution.not_found],
    }


def _applied_payload(result: ApplyResult) -> dict[str, object]:
    payload = _resolution_payload(result.resolution)
    payload["items"] = [
        {
            "id": added.item.id,
            "food_id": added.item.food_id,
            "multiplier": added.item.multiplier,
            "created": added.created,
        }
        for added in result.added
    ]
    return payload
