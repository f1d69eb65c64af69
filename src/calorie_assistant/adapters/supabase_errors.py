"""Shared error translation for Supabase queries."""

from typing import Any, Protocol

import httpx
from postgrest.exceptions import APIError

from calorie_assistant.domain.errors import StorageError


class _Executable(Protocol):
    def execute(self) -> Any: ...


def execute(query: _Executable, action: str) -> Any:
    """Execute a query, translating client failures into StorageError."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StorageError(f"Failed to {action}") from exc
