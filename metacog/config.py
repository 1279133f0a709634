"""Configuration management for the metacog server."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="METACOG_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    host: str = "127.0.0.1"
    port: int = 3333
    debug: bool = False

    # Identity surfaced on initialize
    server_name: str = "metacog"
    icon_url: str | None = None

    # Logging
    log_level: str = "INFO"
    log_invocations: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
