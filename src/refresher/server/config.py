"""Configuration for the refresh server."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080
    debug: bool = False

    # Push webhook settings
    webhook_secret: str = ""

    # Repositories
    repositories_root: str = ""

    # Merge request hooks, e.g. HOOK_URLS='["https://ci.example.com/hook"]'
    hook_urls: list[str] = []
    hook_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
