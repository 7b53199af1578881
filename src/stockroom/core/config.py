# src/stockroom/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    app_name: str = "Stockroom API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Record store
    database_url: str = "sqlite+aiosqlite:///./stockroom.db"
    # Number of random products inserted into an empty store on startup
    seed_sample_products: int = Field(default=0, ge=0)

    # Display
    currency_code: str = "PHP"

    # Photo sources
    photo_fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    # Upper bound for a single photo, uploaded or fetched
    max_photo_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    # Hosts photos may be fetched from; empty allows any host
    photo_fetch_allowed_hosts: list[str] = Field(default=[])

    # CORS
    cors_origins: list[str] = Field(default=["*"])

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
