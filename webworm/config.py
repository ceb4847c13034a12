"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import SyncMode

LOG_LEVELS: tuple[str, ...] = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Webworm", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    tmdb_api_token: str | None = Field(default=None, alias="TMDB_API_TOKEN")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: HttpUrl = Field(
        default="https://image.tmdb.org/t/p/w500", alias="TMDB_IMAGE_URL"
    )
    tmdb_language: str = Field(default="en-US", alias="TMDB_LANGUAGE")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./webworm.db", alias="DATABASE_URL"
    )

    default_sync_mode: SyncMode = Field(
        default=SyncMode.TMDB, alias="DEFAULT_SYNC_MODE"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("default_sync_mode", mode="before")
    @classmethod
    def _parse_sync_mode(cls, value: object) -> SyncMode:
        if value is None or (isinstance(value, str) and not value.strip()):
            return SyncMode.TMDB
        return SyncMode.parse(value)

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return level

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
