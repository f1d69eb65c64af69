"""Tests for current meal HTTP and WebSocket endpoints."""

from fastapi.testclient import TestClient

from calorie_assistant.api.app import create_app
from calorie_assistant.domain.foods import BaseUnit, SavedMealItem
from tests.conftest import (
    FakeExtractionClient,
    MealFixture,
    food_payload,
    foods_extract,
)


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_add_catalog_item_then_replace(container, meal: MealFixture) -> None:
    meal.foods.add(7, "Pasta", base_amount=100, calories=200)
    client = TestClient(create_app(container))

    created = client.post(
        "/api/current-meal/items", json={"food_id": 7, "amount": 50, "unit": "grams"}
    )
    replaced = client.post(
        "/api/current-meal/items", json={"food_id": 7, "multiplier": 2}
    )
    view = client.get("/api/current-meal").json()

    assert created.status_code == 201
    assert created.json()["multiplier"] == 0.5
    assert replaced.status_code == 200
    assert replaced.json()["id"] == created.json()["id"]
    assert len(view["items"]) == 1
    assert view["items"][0]["item_calories"] == 400
    assert view["total_calories"] == 400


def test_add_temporary_item(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/current-meal/items",
        json={
            "is_temporary": True,
            "multiplier": 2,
            "food": {
                "name": "Homemade Soup",
                "base_amount": 300,
                "base_unit": "ml",
                "calories": 180,
                "protein": 9,
            },
        },
    )
    view = client.get("/api/current-meal").json()

    assert response.status_code == 201
    assert response.json()["is_temporary"] is True
    item = view["items"][0]
    assert item["is_temporary"] is True
    assert item["food_id"] is None
    assert item["base_unit"] == "ml"
    assert item["amount"] == 600
    assert view["total_protein"] == 18


def test_add_item_validation_errors(container, meal: MealFixture) -> None:
    meal.foods.add(1, "Rice")
    client = TestClient(create_app(container))

    zero = client.post("/api/current-meal/items", json={"food_id": 1, "multiplier": 0})
    missing = client.post("/api/current-meal/items", json={"food_id": 1})
    unknown = client.post(
        "/api/current-meal/items", json={"food_id": 404, "multiplier": 1}
    )
    nameless = client.post(
        "/api/current-meal/items", json={"is_temporary": True, "food": {"name": ""}}
    )

    assert zero.status_code == 400
    assert missing.status_code == 400
    assert unknown.status_code == 404
    assert nameless.status_code == 400


def test_update_and_remove_item(container, meal: MealFixture) -> None:
    meal.foods.add(1, "Rice", calories=130)
    client = TestClient(create_app(container))
    item_id = client.post(
        "/api/current-meal/items", json={"food_id": 1, "multiplier": 1}
    ).json()["id"]

    by_amount = client.put(f"/api/current-meal/items/{item_id}", json={"amount": 150})
    by_multiplier = client.put(
        f"/api/current-meal/items/{item_id}", json={"multiplier": 3}
    )
    removed = client.delete(f"/api/current-meal/items/{item_id}")
    removed_again = client.delete(f"/api/current-meal/items/{item_id}")
    update_missing = client.put(
        f"/api/current-meal/items/{item_id}", json={"multiplier": 1}
    )

    assert by_amount.json() == {"id": item_id, "multiplier": 1.5}
    assert by_multiplier.json() == {"id": item_id, "multiplier": 3}
    assert removed.status_code == 204
    assert removed_again.status_code == 404
    assert update_missing.status_code == 404


def test_clear_is_always_successful(container) -> None:
    client = TestClient(create_app(container))

    first = client.delete("/api/current-meal")
    second = client.delete("/api/current-meal")

    assert first.status_code == 204
    assert second.status_code == 204


def test_add_saved_meal(container, meal: MealFixture) -> None:
    meal.foods.add(1, "Rice", calories=130)
    meal.saved_meals.meals[3] = [SavedMealItem(food_id=1, multiplier=2)]
    client = TestClient(create_app(container))

    response = client.post("/api/current-meal/saved-meals/3")
    missing = client.post("/api/current-meal/saved-meals/4")

    assert response.status_code == 200
    assert response.json()["items"] == [
        {"id": 1, "food_id": 1, "multiplier": 2, "created": True}
    ]
    assert client.get("/api/current-meal").json()["total_calories"] == 260
    assert missing.status_code == 404


def test_delete_food_cascades(container, meal: MealFixture) -> None:
    meal.foods.add(1, "Rice")
    client = TestClient(create_app(container))
    client.post("/api/current-meal/items", json={"food_id": 1, "multiplier": 1})

    response = client.delete("/api/foods/1")
    missing = client.delete("/api/foods/1")

    assert response.status_code == 204
    assert missing.status_code == 404
    assert client.get("/api/current-meal").json()["items"] == []


def test_websocket_receives_updates(container, meal: MealFixture) -> None:
    meal.foods.add(1, "Banana", base_amount=1, base_unit=BaseUnit.SERVINGS)
    meal.broadcaster.unsubscribe(meal.observer)
    app = create_app(container)

    with TestClient(app) as client:
        with client.websocket_connect("/ws/current-meal") as websocket:
            client.post("/api/current-meal/items", json={"food_id": 1, "multiplier": 2})
            added = websocket.receive_json()
            client.delete("/api/current-meal")
            cleared = websocket.receive_json()

    assert added["event"] == "meal-updated"
    assert added["data"]["items"][0]["name"] == "Banana"
    assert added["data"]["items"][0]["multiplier"] == 2
    assert cleared["data"] == {"items": [], "total_calories": 0, "total_protein": 0}
    assert meal.repository.initialized is True
    assert meal.broadcaster.observer_count == 0


def test_voice_resolve_endpoint(
    container, meal: MealFixture, extraction_client: FakeExtractionClient
) -> None:
    meal.foods.add(1, "Flat White", base_amount=250, base_unit=BaseUnit.ML)
    extraction_client.payload = foods_extract(
        food_payload("Flat White"), food_payload("Croissant")
    )
    client = TestClient(create_app(container))

    response = client.post("/api/voice/resolve", json={"text": "flat white"})

    assert response.status_code == 200
    data = response.json()
    assert data["matches"][0]["unit"] == "ml"
    assert data["matches"][0]["amount"] == 250
    assert data["matches"][0]["multiplier"] == 1
    assert data["matches"][0]["food"]["id"] == 1
    assert data["not_found"] == ["Croissant"]
    assert client.get("/api/current-meal").json()["items"] == []


def test_voice_resolve_swap(
    container, extraction_client: FakeExtractionClient
) -> None:
    extraction_client.payload = {
        "command": "change",
        "from": "Latte",
        "to": "Tea",
        "foods": [],
    }
    client = TestClient(create_app(container))

    response = client.post("/api/voice/resolve", json={"text": "swap latte for tea"})

    assert response.json() == {"command": "change", "from": "Latte", "to": "Tea"}


def test_voice_apply_endpoint(
    container, meal: MealFixture, extraction_client: FakeExtractionClient
) -> None:
    meal.foods.add(1, "Cheeseburger", base_amount=1, base_unit=BaseUnit.SERVINGS)
    extraction_client.payload = foods_extract(food_payload("Cheeseburger"))
    client = TestClient(create_app(container))

    response = client.post("/api/voice/apply", json={"text": "a cheeseburger"})

    assert response.status_code == 200
    assert response.json()["items"][0]["created"] is True
    assert client.get("/api/current-meal").json()["items"][0]["multiplier"] == 1


def test_voice_extraction_failure_maps_to_bad_gateway(
    container, extraction_client: FakeExtractionClient
) -> None:
    extraction_client.payload = {"foods": 7}
    client = TestClient(create_app(container))

    response = client.post("/api/voice/resolve", json={"text": "anything"})

    assert response.status_code == 502
    assert "error" in response.json()
