"""Configuration management for the news aggregator."""

import json
from pathlib import Path
from typing import Annotated, Any, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from news_aggregator.models.schemas import DeduplicationStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # NewsAPI (optional - source is skipped without a key)
    newsapi_key: Optional[str] = None

    # RSS/Atom feeds (optional - comma-separated in the environment)
    rss_feed_urls: Annotated[List[str], NoDecode] = []
    rss_display_name: str = "RSS Feed"

    # Aggregation
    deduplication_strategy: DeduplicationStrategy = DeduplicationStrategy.COMBINED
    default_limit: int = 20

    # Timeouts
    request_timeout: int = 30

    # Application Settings
    log_level: str = "INFO"
    cache_dir: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("rss_feed_urls", mode="before")
    @classmethod
    def _split_feed_urls(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            value = value.strip()
            if value.startswith("["):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def has_newsapi(self) -> bool:
        """Check if NewsAPI is configured."""
        return bool(self.newsapi_key)

    @property
    def has_rss(self) -> bool:
        """Check if any RSS feeds are configured."""
        return bool(self.rss_feed_urls)

    @property
    def has_sources(self) -> bool:
        """Check if any news source is configured."""
        return self.has_newsapi or self.has_rss


def get_settings() -> Settings:
    """Get application settings from the environment and ``.env`` file."""
    return Settings()
