"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calorie_assistant.api.current_meal import router as current_meal_router
from calorie_assistant.api.voice import router as voice_router
from calorie_assistant.app_logging import configure_logging
from calorie_assistant.config import cors_origin_regex
from calorie_assistant.containers import AppContainer
from calorie_assistant.domain.errors import (
    CalorieAssistantError,
    ExtractionFailed,
    InvalidArgument,
    NotFound,
    StorageError,
)

_ERROR_STATUS: list[tuple[type[CalorieAssistantError], int]] = [
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ExtractionFailed, status.HTTP_502_BAD_GATEWAY),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]

_SHUTDOWN_FLUSH_SECONDS = 1.0


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.current_meal_service.initialize()
        yield
        await app.state.container.broadcaster.flush(timeout=_SHUTDOWN_FLUSH_SECONDS)
        app.state.container.broadcaster.close()
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[container.settings.frontend_origin],
        allow_origin_regex=cors_origin_regex(container.settings.frontend_origin),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    app.include_router(current_meal_router)
    app.include_router(voice_router)

    @app.exception_handler(CalorieAssistantError)
    async def handle_app_error(
        request: Request, exc: CalorieAssistantError
    ) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "%s %s failed",
                request.method,
                request.url.path,
                exc_info=exc,
            )
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _status_for(exc: CalorieAssistantError) -> int:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
