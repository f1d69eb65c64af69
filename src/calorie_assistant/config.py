"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_store: bool = False
    frontend_origin: str = "http://localhost:3000"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def cors_origin_regex(frontend_origin: str) -> str | None:
    """Allow any Vercel deployment when the frontend is hosted on Vercel."""
    if "vercel.app" in frontend_origin:
        return r"https://[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.vercel\.app"
    return None
