"""Current meal endpoints and live update channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Request,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)

from calorie_assistant.api.models import AddItemRequest, UpdateItemRequest
from calorie_assistant.domain.current_meal import MealView  # noqa: TC001
from calorie_assistant.domain.errors import InvalidArgument

if TYPE_CHECKING:
    from calorie_assistant.containers import AppContainer

router = APIRouter(tags=["current-meal"])

_logger = logging.getLogger(__name__)


@router.get("/api/current-meal")
async def get_current_meal(request: Request) -> MealView:
    """Return the materialized current meal."""
    container: AppContainer = request.app.state.container
    return await container.current_meal_service.get_view()


@router.post("/api/current-meal/items", status_code=status.HTTP_201_CREATED)
async def add_item(
    payload: AddItemRequest, request: Request, response: Response
) -> dict[str, object]:
    """Add a catalog or temporary item to the current meal."""
    service = request.app.state.container.current_meal_service
    if payload.is_temporary:
        if payload.food is None:
            raise InvalidArgument("Temporary items require food details")
        item = await service.add_temporary_item(
            name=payload.food.name,
            base_amount=payload.food.base_amount,
            base_unit=payload.food.base_unit,
            calories=payload.food.calories,
            protein=payload.food.protein,
            multiplier=1.0 if payload.multiplier is None else payload.multiplier,
        )
        return {
            "id": item.id,
            "food_id": None,
            "is_temporary": True,
            "multiplier": item.multiplier,
        }

    if payload.food_id is None:
        raise InvalidArgument("food_id is required")
    if payload.multiplier is not None:
        result = await service.add_catalog_item(payload.food_id, payload.multiplier)
    elif payload.amount is not None:
        result = await service.add_catalog_amount(
            payload.food_id, payload.amount, payload.unit
        )
    else:
        raise InvalidArgument("multiplier or amount is required")
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return {
        "id": result.item.id,
        "food_id": result.item.food_id,
        "is_temporary": False,
        "multiplier": result.item.multiplier,
    }


@router.put("/api/current-meal/items/{item_id}")
async def update_item(
    item_id: int, payload: UpdateItemRequest, request: Request
) -> dict[str, object]:
    """Change an item's multiplier or amount."""
    service = request.app.state.container.current_meal_service
    if payload.multiplier is not None:
        item = await service.update_multiplier(item_id, payload.multiplier)
    elif payload.amount is not None:
        item = await service.update_amount(item_id, payload.amount)
    else:
        raise InvalidArgument("multiplier or amount is required")
    return {"id": item.id, "multiplier": item.multiplier}


@router.delete(
    "/api/current-meal/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_item(item_id: int, request: Request) -> None:
    """Remove one item from the current meal."""
    await request.app.state.container.current_meal_service.remove_item(item_id)


@router.delete("/api/current-meal", status_code=status.HTTP_204_NO_CONTENT)
async def clear_current_meal(request: Request) -> None:
    """Remove every item from the current meal."""
    await request.app.state.container.current_meal_service.clear()


@router.post("/api/current-meal/saved-meals/{saved_meal_id}")
async def add_saved_meal(saved_meal_id: int, request: Request) -> dict[str, object]:
    """Replay a saved meal into the current meal."""
    service = request.app.state.container.current_meal_service
    added = await service.add_saved_meal(saved_meal_id)
    return {
        "items": [
            {
                "id": result.item.id,
                "food_id": result.item.food_id,
                "multiplier": result.item.multiplier,
                "created": result.created,
            }
            for result in added
        ]
    }


@router.delete("/api/foods/{food_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_food(food_id: int, request: Request) -> None:
    """Delete a catalog food and drop current meal items that reference it."""
    await request.app.state.container.catalog_service.delete_food(food_id)


@router.websocket("/ws/current-meal")
async def current_meal_updates(websocket: WebSocket) -> None:
    """Push every current meal update until the client disconnects."""
    container: AppContainer = websocket.app.state.container
    await websocket.accept()
    container.broadcaster.subscribe(websocket)
    _logger.info(
        "Observer connected: observers=%s", container.broadcaster.observer_count
    )
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        container.broadcaster.unsubscribe(websocket)
        _logger.info(
            "Observer disconnected: observers=%s",
            container.broadcaster.observer_count,
        )
