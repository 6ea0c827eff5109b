# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads all settings from environment variables and .env file.

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    db_path: Path = Path("./podcast_ingest.db")

    # Feed fetching
    feed_timeout: int = 15
    feed_user_agent: str = "podcast-ingest/0.1"

    # OPML export
    opml_export_title: str = "Podcast Subscriptions"
    opml_owner_name: str = "podcast-ingest"

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Build async SQLite connection URL."""
        return f"sqlite+aiosqlite:///{self.db_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
