"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite:///./messaging.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    db_echo: bool = False
    jwt_secret_key: str = Field(
        description="Secret shared with the identity provider to verify bearer tokens",
        min_length=1,
    )
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(
        default=60,
        description="Lifetime of development tokens minted by the helper scripts",
        gt=0,
    )
    app_timezone: str = "UTC"
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    azure_storage_connection_string: str | None = Field(
        default=None,
        description="Connection string for the blob container holding message attachments",
    )
    azure_storage_container_name: str = "message-attachments"

    messages_page_size: int = Field(default=50, gt=0)
    max_messages_page_size: int = Field(default=200, gt=0)
    notification_preview_length: int = Field(default=120, ge=10)
    typing_timeout_seconds: float = Field(default=5.0, gt=0)
    presence_timeout_seconds: float = Field(default=90.0, gt=0)
    max_image_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    max_file_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
