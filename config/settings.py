"""Configuration management using pydantic-settings."""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # TMDB content-metadata API
    tmdb_api_key: Optional[str] = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p"
    tmdb_language: str = "pt-BR"
    tmdb_fallback_language: str = "en-US"
    tmdb_region: str = "BR"

    # Top-10 rankings/listings API
    top10_api_key: Optional[str] = None
    top10_base_url: str = "https://top-10-streamings.onrender.com"

    # Shared secret for the cron trigger endpoint
    cron_secret: Optional[str] = None

    # Cache store
    cache_db_path: Path = Path("./data/catalog_cache.db")

    # Rate limiting
    enrich_delay_seconds: float = 0.1
    request_queue_delay_seconds: float = 0.25
    request_queue_max_pending: int = 100
    request_timeout_seconds: int = 30

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
