"""ASGI entrypoint for the calorie assistant API."""

from calorie_assistant.api.app import create_app
from calorie_assistant.containers import build_container

app = create_app(build_container())
